"""Error taxonomy shared by the ranking core and the HTTP layer."""


class LeaderboardError(Exception):
    """Base class. ``kind`` is the machine-readable name sent to clients."""

    kind = "leaderboard_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(LeaderboardError, ValueError):
    """Missing or malformed input. Raised before any storage call."""

    kind = "validation_error"


class ScopeNotFound(LeaderboardError, LookupError):
    """Unknown level/language/difficulty combination."""

    kind = "scope_not_found"


class PlayerNotFound(LeaderboardError, LookupError):
    kind = "player_not_found"


class StorageUnavailable(LeaderboardError, RuntimeError):
    """Transient backend failure. Safe to retry the whole pipeline step."""

    kind = "storage_unavailable"


class Conflict(LeaderboardError, RuntimeError):
    """A scope stayed locked by another writer past the lock timeout."""

    kind = "conflict"
