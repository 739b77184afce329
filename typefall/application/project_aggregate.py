"""Use case: fold a player's per-level bests into their global standing."""
import logging
from typing import Dict, List, Tuple

from typefall.application.recalculate_ranks import RankRecalculator, read_entries
from typefall.application.scope_locks import ScopeLocks
from typefall.domain.entry import (
    COL_PLAYER_NAME,
    PLAYER_HEADER,
    PlayerAggregate,
    ScoreEntry,
    is_header,
    utcnow_iso,
)
from typefall.domain.errors import ScopeNotFound
from typefall.domain.ranking import best_position
from typefall.domain.scope import GLOBAL_SCOPE, PLAYERS_TABLE, ScopeResolver
from typefall.infrastructure.storage.base import CellWrite

log = logging.getLogger("typefall.aggregate")


def aggregate_totals(bests: Dict[str, int]) -> Tuple[int, int]:
    """(total_score, levels_completed) from per-scope best scores."""
    total = sum(bests.values())
    completed = sum(1 for score in bests.values() if score > 0)
    return total, completed


class AggregateProjector:
    """Rebuilds one player's totals from every level scope.

    Each projection re-reads all level scopes, so its cost grows with
    (level scopes x rows per scope). There is no incremental index.
    """

    def __init__(
        self,
        store,
        resolver: ScopeResolver,
        recalculator: RankRecalculator,
        locks: ScopeLocks,
    ):
        self._store = store
        self._resolver = resolver
        self._recalculator = recalculator
        self._locks = locks

    def best_scores(self, player_id: str) -> Dict[str, int]:
        """Best score per level scope; 0 where the player has no entry."""
        bests: Dict[str, int] = {}
        for scope_id in self._resolver.level_scopes():
            scores = [
                e.score for e in read_entries(self._store, scope_id)
                if e.player_id == player_id
            ]
            bests[scope_id] = max(scores) if scores else 0
        return bests

    def project(self, player_id: str, player_name: str) -> int:
        """Recompute totals, upsert the aggregate and global rows, re-rank.

        Takes ``players`` and then ``global`` for the whole read-modify-write,
        so projections run one at a time and the last one sees every row
        appended before it.
        """
        self._resolver.ensure_global()
        with self._locks.hold(PLAYERS_TABLE):
            total, completed = aggregate_totals(self.best_scores(player_id))
            now = utcnow_iso()
            self._upsert_player(
                player_id, player_name, now,
                totals=(total, completed),
            )

            with self._locks.hold(GLOBAL_SCOPE):
                self._upsert_global_row(player_id, player_name, total, completed, now)
                ranked = self._recalculator.recalculate_entries(GLOBAL_SCOPE)
                self.sync_global_positions(ranked)

        log.info(
            "Projected %s: total=%d levels=%d", player_id, total, completed,
        )
        return total

    def touch_player(self, player_id: str, player_name: str, global_position: int) -> PlayerAggregate:
        """Create or refresh a player's identity fields without touching totals."""
        with self._locks.hold(PLAYERS_TABLE):
            return self._upsert_player(
                player_id, player_name, utcnow_iso(),
                global_position=global_position,
            )

    def sync_global_positions(self, ranked: List[ScoreEntry]) -> int:
        """Mirror every player's best global position; returns rows rewritten.

        Callers hold ``players`` and then ``global`` so no newer ranking
        lands in between.
        """
        column = PLAYER_HEADER.index("global_position")
        with self._locks.hold(PLAYERS_TABLE):
            writes = []
            for aggregate in self._read_players():
                position = best_position(ranked, aggregate.player_id)
                if position != aggregate.global_position:
                    writes.append(CellWrite(aggregate.row_index, column, [position]))
            if writes:
                self._store.batch_write_cells(PLAYERS_TABLE, writes)
        return len(writes)

    def find_player(self, player_id: str) -> PlayerAggregate | None:
        for aggregate in self._read_players():
            if aggregate.player_id == player_id:
                return aggregate
        return None

    # ------------------------------------------------------------------
    # Upserts (callers hold the table's lock)
    # ------------------------------------------------------------------

    def _upsert_player(
        self,
        player_id: str,
        player_name: str,
        now: str,
        totals: Tuple[int, int] | None = None,
        global_position: int | None = None,
    ) -> PlayerAggregate:
        aggregate = self.find_player(player_id)
        if aggregate is None:
            aggregate = PlayerAggregate(player_id, player_name, created_at=now)
            if totals is not None:
                aggregate.total_score, aggregate.levels_completed = totals
            if global_position is not None:
                aggregate.global_position = global_position
            aggregate.row_index = self._store.append(PLAYERS_TABLE, aggregate.to_row())
            log.info("Created aggregate for %s", player_id)
            return aggregate

        aggregate.player_name = player_name
        aggregate.last_record_at = now
        if totals is not None:
            aggregate.total_score, aggregate.levels_completed = totals
        if global_position is not None:
            aggregate.global_position = global_position
        # Column 0 (player_id) and 2 (created_at) never change.
        row = aggregate.to_row()
        self._store.batch_write_cells(
            PLAYERS_TABLE,
            [
                CellWrite(aggregate.row_index, 1, [row[1]]),
                CellWrite(aggregate.row_index, 3, row[3:]),
            ],
        )
        return aggregate

    def _upsert_global_row(
        self, player_id: str, player_name: str, total: int, completed: int, now: str,
    ) -> None:
        existing = self._first_global_row(read_entries(self._store, GLOBAL_SCOPE), player_id)
        if existing is None:
            entry = ScoreEntry(
                player_id=player_id,
                player_name=player_name,
                score=total,
                timestamp=now,
                levels_completed=completed,
            )
            self._store.append(GLOBAL_SCOPE, entry.to_row())
            return
        self._store.batch_write_cells(
            GLOBAL_SCOPE,
            [CellWrite(existing.row_index, COL_PLAYER_NAME, [player_name, total, completed, now])],
        )

    @staticmethod
    def _first_global_row(entries: List[ScoreEntry], player_id: str) -> ScoreEntry | None:
        for entry in entries:
            if entry.player_id == player_id:
                return entry
        return None

    def _read_players(self) -> List[PlayerAggregate]:
        try:
            rows = self._store.read_all(PLAYERS_TABLE)
        except ScopeNotFound:
            self._store.create_scope(PLAYERS_TABLE, PLAYER_HEADER)
            return []
        first = 1 if rows and is_header(rows[0]) else 0
        return [
            PlayerAggregate.from_row(row, first + i)
            for i, row in enumerate(rows[first:])
        ]
