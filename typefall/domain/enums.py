"""Enums used across the domain."""
from enum import Enum


class ScopeKind(str, Enum):
    GLOBAL = "global"
    LEVEL = "level"


class TrimPolicy(str, Enum):
    """Which rows are evicted once a scope grows past its bound."""

    INSERTION = "insertion"  # oldest-inserted rows first
    RANK = "rank"            # lowest-ranked rows first

    @staticmethod
    def from_env(value: str | None) -> "TrimPolicy":
        if not value:
            return TrimPolicy.INSERTION
        try:
            return TrimPolicy(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid trim policy: {value!r}. "
                f"Expected one of: {', '.join(p.value for p in TrimPolicy)}."
            )
