"""Use case: re-derive positions for a scope and trim it to its bound."""
import logging
from typing import List

from typefall.application.scope_locks import ScopeLocks
from typefall.domain.entry import COL_POSITION, ScoreEntry, is_header
from typefall.domain.enums import TrimPolicy
from typefall.domain.ranking import (
    MAX_ENTRIES,
    changed_positions,
    compact,
    delete_runs,
    rank,
    select_trimmed,
)
from typefall.domain.scope import GLOBAL_SCOPE
from typefall.infrastructure.storage.base import CellWrite

log = logging.getLogger("typefall.ranking")


def read_entries(store, scope_id: str) -> List[ScoreEntry]:
    """Snapshot a scope's rows as entries, header skipped."""
    rows = store.read_all(scope_id)
    first = 1 if rows and is_header(rows[0]) else 0
    with_levels = scope_id == GLOBAL_SCOPE
    return [
        ScoreEntry.from_row(row, first + i, with_levels)
        for i, row in enumerate(rows[first:])
    ]


class RankRecalculator:
    """Recomputes a scope from a fresh full read and writes absolute positions.

    Safe to retry after a failure: nothing depends on the previous state of
    the position column.
    """

    def __init__(
        self,
        store,
        locks: ScopeLocks,
        max_entries: int = MAX_ENTRIES,
        trim_policy: TrimPolicy = TrimPolicy.INSERTION,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store = store
        self._locks = locks
        self._max_entries = max_entries
        self._trim_policy = trim_policy

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def recalculate(self, scope_id: str) -> int:
        """Rank ``scope_id``; returns the number of ranked entries."""
        return len(self.recalculate_entries(scope_id))

    def recalculate_entries(self, scope_id: str) -> List[ScoreEntry]:
        """Rank ``scope_id`` and return its entries in rank order."""
        with self._locks.hold(scope_id):
            snapshot = read_entries(self._store, scope_id)
            if not snapshot:
                return []
            first_row = snapshot[0].row_index

            # Trim before writing positions so survivors end up with 1..N.
            kept, evicted = select_trimmed(snapshot, self._max_entries, self._trim_policy)
            for start, end in delete_runs(e.row_index for e in evicted):
                self._store.delete_rows(scope_id, start, end)

            stored = compact(kept, first_row)
            ranked = rank(stored)
            moves = changed_positions(stored, ranked)
            if moves:
                self._store.batch_write_cells(
                    scope_id,
                    [CellWrite(row, COL_POSITION, [pos]) for row, pos in moves],
                )

        log.info(
            "Ranked %d entries in %s (%d moved, %d trimmed)",
            len(ranked), scope_id, len(moves), len(evicted),
        )
        return ranked
