"""Provision leaderboard tables from the levels catalogue."""
import json
import os

from typefall.domain.entry import GLOBAL_HEADER, LEVEL_HEADER, PLAYER_HEADER
from typefall.domain.scope import GLOBAL_SCOPE, PLAYERS_TABLE, level_scope_id


def load_levels(json_path: str) -> list:
    """Read ``[{"level_id", "languages": [...], "difficulties": [...]}]``."""
    if not os.path.exists(json_path):
        return []
    with open(json_path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"{json_path} must hold a list of levels.")
    return raw


def provision_scopes(store, json_path: str | None = None) -> int:
    """Create the global and players tables and every catalogued level table.

    Idempotent. Returns the number of tables created by this call.
    """
    created = 0
    if store.create_scope(GLOBAL_SCOPE, GLOBAL_HEADER):
        created += 1
    if store.create_scope(PLAYERS_TABLE, PLAYER_HEADER):
        created += 1

    for item in load_levels(json_path) if json_path else []:
        level_id = str(item["level_id"])
        for language in item.get("languages", []):
            for difficulty in item.get("difficulties", []):
                scope = level_scope_id(level_id, language, difficulty)
                if store.create_scope(scope, LEVEL_HEADER):
                    created += 1
    return created
