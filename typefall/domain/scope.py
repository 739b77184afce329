"""Scope identifiers: which table a submission or query belongs to."""
from typing import List, Tuple

from typefall.domain.entry import GLOBAL_HEADER
from typefall.domain.enums import ScopeKind
from typefall.domain.errors import ScopeNotFound, ValidationError
from typefall.domain.invariant import SCOPE_SEPARATOR, validate_scope_part

GLOBAL_SCOPE = ScopeKind.GLOBAL.value
PLAYERS_TABLE = "players"


def level_scope_id(level_id: str, language: str, difficulty: str) -> str:
    """``level|<level_id>|<language>|<difficulty>``."""
    parts = (
        ScopeKind.LEVEL.value,
        validate_scope_part("level_id", level_id),
        validate_scope_part("language", language),
        validate_scope_part("difficulty", difficulty),
    )
    return SCOPE_SEPARATOR.join(parts)


def is_level_scope(scope_id: str) -> bool:
    return scope_id.startswith(ScopeKind.LEVEL.value + SCOPE_SEPARATOR)


def parse_level_scope(scope_id: str) -> Tuple[str, str, str]:
    """Inverse of level_scope_id: (level_id, language, difficulty)."""
    parts = scope_id.split(SCOPE_SEPARATOR)
    if len(parts) != 4 or parts[0] != ScopeKind.LEVEL.value:
        raise ValidationError(f"Not a level scope: {scope_id!r}")
    return parts[1], parts[2], parts[3]


class ScopeResolver:
    """Maps (kind, level, language, difficulty) to a provisioned scope.

    Level scopes must already exist in storage. The global scope is created
    on first use.
    """

    def __init__(self, store):
        self._store = store

    def resolve(
        self,
        kind,
        level_id: str | None = None,
        language: str | None = None,
        difficulty: str | None = None,
    ) -> str:
        try:
            kind = ScopeKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown scope kind: {kind!r}")

        if kind == ScopeKind.GLOBAL:
            self.ensure_global()
            return GLOBAL_SCOPE

        scope_id = level_scope_id(level_id, language, difficulty)
        if scope_id not in self._store.list_scopes():
            raise ScopeNotFound(
                f"No leaderboard for level {level_id} "
                f"({language}, {difficulty})."
            )
        return scope_id

    def ensure_global(self) -> None:
        if GLOBAL_SCOPE not in self._store.list_scopes():
            self._store.create_scope(GLOBAL_SCOPE, GLOBAL_HEADER)

    def level_scopes(self) -> List[str]:
        """Every provisioned level scope, sorted for a stable scan order."""
        return sorted(s for s in self._store.list_scopes() if is_level_scope(s))
