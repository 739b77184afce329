"""Tests for score ingestion."""
from unittest.mock import MagicMock

import pytest

from typefall.application.submit_score import build_entry, submit_score
from typefall.domain.errors import ValidationError
from tests.conftest import LEVEL_1


class TestBuildEntry:
    def test_valid(self):
        entry = build_entry("p1", "  Alice  ", "120")
        assert entry.player_id == "p1"
        assert entry.player_name == "Alice"
        assert entry.score == 120
        assert entry.position == 0
        assert entry.levels_completed is None

    def test_global_entry_carries_levels(self):
        entry = build_entry("p1", "Alice", 10, levels_completed=None, with_levels=True)
        assert entry.levels_completed == 0

    @pytest.mark.parametrize("score", [None, "abc", -5, 0, 1.5, True])
    def test_bad_scores(self, score):
        with pytest.raises(ValidationError):
            build_entry("p1", "Alice", score)

    def test_missing_player_id(self):
        with pytest.raises(ValidationError, match="player_id"):
            build_entry(None, "Alice", 10)


class TestSubmitScore:
    def test_appends_unranked_row(self, store):
        entry = submit_score(store, LEVEL_1, build_entry("p1", "Alice", 10))
        assert entry.row_index == 1
        row = store.read_all(LEVEL_1)[1]
        assert row[0] == 0
        assert row[1:4] == ["p1", "Alice", 10]

    def test_validation_failure_never_reaches_storage(self):
        store = MagicMock()
        with pytest.raises(ValidationError):
            submit_score(store, LEVEL_1, build_entry("p1", "Alice", -1))
        assert store.mock_calls == []
