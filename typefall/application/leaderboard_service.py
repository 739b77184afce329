"""Leaderboard pipeline: ingest -> rank scope -> project -> rank global."""
import logging
from typing import List

from typefall.application.project_aggregate import AggregateProjector
from typefall.application.query_leaderboard import player_info, query
from typefall.application.recalculate_ranks import RankRecalculator
from typefall.application.scope_locks import DEFAULT_LOCK_TIMEOUT, ScopeLocks
from typefall.application.submit_score import build_entry, submit_score
from typefall.domain.entry import ScoreEntry
from typefall.domain.enums import ScopeKind, TrimPolicy
from typefall.domain.invariant import validate_player_id, validate_scope_part
from typefall.domain.ranking import MAX_ENTRIES, best_position
from typefall.domain.scope import GLOBAL_SCOPE, PLAYERS_TABLE, ScopeResolver
from typefall.infrastructure.audit import log_event

log = logging.getLogger("typefall.service")


def _position_of(ranked: List[ScoreEntry], appended: ScoreEntry) -> int:
    """Position of the appended row, 0 if trimming evicted it."""
    for entry in ranked:
        if entry.player_id == appended.player_id and entry.timestamp == appended.timestamp:
            return entry.position
    return 0


class LeaderboardService:
    """Runs every submission synchronously, one step after another.

    Each step starts from a fresh read, so a caller may retry a failed
    request as a whole.
    """

    def __init__(
        self,
        store,
        max_entries: int = MAX_ENTRIES,
        trim_policy: TrimPolicy = TrimPolicy.INSERTION,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        self._store = store
        self._locks = ScopeLocks(timeout=lock_timeout)
        self._resolver = ScopeResolver(store)
        self._recalculator = RankRecalculator(store, self._locks, max_entries, trim_policy)
        self._projector = AggregateProjector(
            store, self._resolver, self._recalculator, self._locks,
        )

    @property
    def store(self):
        return self._store

    @property
    def resolver(self) -> ScopeResolver:
        return self._resolver

    @property
    def recalculator(self) -> RankRecalculator:
        return self._recalculator

    @property
    def projector(self) -> AggregateProjector:
        return self._projector

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def submit_level(self, player_id, player_name, level_id, language, difficulty, score) -> dict:
        entry = build_entry(player_id, player_name, score)
        for field, value in (("level_id", level_id), ("language", language), ("difficulty", difficulty)):
            validate_scope_part(field, value)

        scope_id = self._resolver.resolve(ScopeKind.LEVEL, level_id, language, difficulty)
        with self._locks.hold(scope_id):
            appended = submit_score(self._store, scope_id, entry)
            ranked = self._recalculator.recalculate_entries(scope_id)
        position = _position_of(ranked, appended)

        total = self._projector.project(entry.player_id, entry.player_name)
        self._audit("level_score_submitted", entry.player_id, {
            "scope": scope_id,
            "score": entry.score,
            "position": position,
            "total_score": total,
        })
        return {"success": True, "position": position, "scope": scope_id, "total_score": total}

    def submit_global(self, player_id, player_name, score, levels_completed=None) -> dict:
        entry = build_entry(player_id, player_name, score, levels_completed, with_levels=True)

        scope_id = self._resolver.resolve(ScopeKind.GLOBAL)
        # Same order as the projector: players, then global.
        with self._locks.hold(PLAYERS_TABLE), self._locks.hold(scope_id):
            appended = submit_score(self._store, scope_id, entry)
            ranked = self._recalculator.recalculate_entries(scope_id)
            self._projector.touch_player(
                entry.player_id, entry.player_name, best_position(ranked, entry.player_id),
            )
            self._projector.sync_global_positions(ranked)
        position = _position_of(ranked, appended)

        self._audit("global_score_submitted", entry.player_id, {
            "score": entry.score,
            "position": position,
        })
        return {"success": True, "position": position}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def global_leaderboard(self, limit: int | None = None) -> List[dict]:
        self._resolver.ensure_global()
        return [e.to_dict() for e in self._query(GLOBAL_SCOPE, limit)]

    def level_leaderboard(self, level_id, language, difficulty, limit: int | None = None) -> List[dict]:
        scope_id = self._resolver.resolve(ScopeKind.LEVEL, level_id, language, difficulty)
        return [e.to_dict() for e in self._query(scope_id, limit)]

    def player_info(self, player_id) -> dict:
        return player_info(self._projector, validate_player_id(player_id))

    def scopes(self) -> dict:
        return {"global": GLOBAL_SCOPE, "levels": self._resolver.level_scopes()}

    def ping(self) -> dict:
        return self._store.ping()

    @staticmethod
    def _audit(action: str, player_id: str, payload: dict) -> None:
        # Rows are already written at this point.
        try:
            log_event(action, player_id, payload)
        except OSError as exc:
            log.warning("Audit write failed for %s: %s", action, exc)

    def _query(self, scope_id: str, limit) -> List[ScoreEntry]:
        if limit is None:
            limit = self._recalculator.max_entries
        return query(
            self._store, scope_id, limit,
            max_limit=self._recalculator.max_entries,
        )
