"""Tests for RankRecalculator -- ranking a stored scope."""
from unittest.mock import MagicMock

import pytest

from typefall.application.recalculate_ranks import RankRecalculator, read_entries
from typefall.application.scope_locks import ScopeLocks
from typefall.domain.enums import TrimPolicy
from typefall.domain.errors import StorageUnavailable
from typefall.infrastructure.storage.base import CellWrite
from tests.conftest import LEVEL_1, ts


def _append(store, scope, player_id, score, second):
    store.append(scope, [0, player_id, player_id, score, ts(second)])


def _positions(store, scope):
    return {e.player_id: e.position for e in read_entries(store, scope)}


@pytest.fixture
def recalculator(store):
    return RankRecalculator(store, ScopeLocks(timeout=5))


class TestRecalculate:
    def test_empty_scope(self, recalculator):
        assert recalculator.recalculate(LEVEL_1) == 0

    def test_scenario_b_c_a(self, store, recalculator):
        _append(store, LEVEL_1, "A", 500, 1)
        _append(store, LEVEL_1, "B", 800, 2)
        _append(store, LEVEL_1, "C", 500, 3)
        assert recalculator.recalculate(LEVEL_1) == 3
        assert _positions(store, LEVEL_1) == {"B": 1, "C": 2, "A": 3}

    def test_header_untouched(self, store, recalculator):
        _append(store, LEVEL_1, "A", 500, 1)
        recalculator.recalculate(LEVEL_1)
        assert store.read_all(LEVEL_1)[0][0] == "position"

    def test_storage_order_is_not_changed(self, store, recalculator):
        for i, score in enumerate([10, 30, 20]):
            _append(store, LEVEL_1, f"p{i}", score, i)
        recalculator.recalculate(LEVEL_1)
        assert [r[1] for r in store.read_all(LEVEL_1)[1:]] == ["p0", "p1", "p2"]

    def test_idempotent(self, store, recalculator):
        for i, score in enumerate([5, 5, 9, 1]):
            _append(store, LEVEL_1, f"p{i}", score, i)
        recalculator.recalculate(LEVEL_1)
        first = store.read_all(LEVEL_1)
        recalculator.recalculate(LEVEL_1)
        assert store.read_all(LEVEL_1) == first

    def test_only_changed_positions_are_written(self, store):
        for i, score in enumerate([30, 20, 10]):
            store.append(LEVEL_1, [i + 1, f"p{i}", f"p{i}", score, ts(i)])
        spy = MagicMock(wraps=store)
        RankRecalculator(spy, ScopeLocks()).recalculate(LEVEL_1)
        spy.batch_write_cells.assert_not_called()

    def test_single_batched_write(self, store):
        for i, score in enumerate([10, 20, 30]):
            _append(store, LEVEL_1, f"p{i}", score, i)
        spy = MagicMock(wraps=store)
        RankRecalculator(spy, ScopeLocks()).recalculate(LEVEL_1)
        spy.batch_write_cells.assert_called_once_with(
            LEVEL_1, [CellWrite(1, 0, [3]), CellWrite(2, 0, [2]), CellWrite(3, 0, [1])],
        )

    def test_max_entries_must_be_positive(self, store):
        with pytest.raises(ValueError):
            RankRecalculator(store, ScopeLocks(), max_entries=0)


class TestTrimming:
    def test_scope_holds_exactly_max_entries(self, store):
        recalculator = RankRecalculator(store, ScopeLocks(), max_entries=10)
        for i in range(25):
            _append(store, LEVEL_1, f"p{i}", 100 + i, i)
            recalculator.recalculate(LEVEL_1)
        assert len(store.read_all(LEVEL_1)) == 1 + 10

    def test_insertion_policy_drops_oldest_even_if_best(self, store):
        recalculator = RankRecalculator(store, ScopeLocks(), max_entries=2)
        _append(store, LEVEL_1, "champion", 9999, 1)
        _append(store, LEVEL_1, "low", 1, 2)
        _append(store, LEVEL_1, "mid", 50, 3)
        recalculator.recalculate(LEVEL_1)
        assert _positions(store, LEVEL_1) == {"mid": 1, "low": 2}

    def test_rank_policy_keeps_the_best(self, store):
        recalculator = RankRecalculator(
            store, ScopeLocks(), max_entries=2, trim_policy=TrimPolicy.RANK,
        )
        _append(store, LEVEL_1, "champion", 9999, 1)
        _append(store, LEVEL_1, "low", 1, 2)
        _append(store, LEVEL_1, "mid", 50, 3)
        recalculator.recalculate(LEVEL_1)
        assert _positions(store, LEVEL_1) == {"champion": 1, "mid": 2}

    def test_positions_gap_free_after_trim(self, store):
        recalculator = RankRecalculator(store, ScopeLocks(), max_entries=3)
        for i, score in enumerate([100, 90, 80, 70, 60]):
            _append(store, LEVEL_1, f"p{i}", score, i)
            recalculator.recalculate(LEVEL_1)
        assert sorted(_positions(store, LEVEL_1).values()) == [1, 2, 3]


class TestFailures:
    def test_read_failure_surfaces(self):
        store = MagicMock()
        store.read_all.side_effect = StorageUnavailable("timeout")
        with pytest.raises(StorageUnavailable):
            RankRecalculator(store, ScopeLocks()).recalculate(LEVEL_1)

    def test_write_failure_then_retry_converges(self, store):
        for i, score in enumerate([10, 20]):
            _append(store, LEVEL_1, f"p{i}", score, i)
        flaky = MagicMock(wraps=store)
        flaky.batch_write_cells.side_effect = StorageUnavailable("timeout")
        with pytest.raises(StorageUnavailable):
            RankRecalculator(flaky, ScopeLocks()).recalculate(LEVEL_1)

        RankRecalculator(store, ScopeLocks()).recalculate(LEVEL_1)
        assert _positions(store, LEVEL_1) == {"p1": 1, "p0": 2}

    def test_lock_released_after_failure(self):
        store = MagicMock()
        store.read_all.side_effect = StorageUnavailable("timeout")
        locks = ScopeLocks(timeout=0.1)
        with pytest.raises(StorageUnavailable):
            RankRecalculator(store, locks).recalculate(LEVEL_1)
        with locks.hold(LEVEL_1):
            pass
