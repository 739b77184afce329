"""Read-only leaderboard projections."""
from typing import List

from typefall.application.recalculate_ranks import read_entries
from typefall.domain.entry import ScoreEntry
from typefall.domain.errors import PlayerNotFound, ScopeNotFound
from typefall.domain.ranking import MAX_ENTRIES
from typefall.domain.invariant import validate_limit
from typefall.domain.scope import parse_level_scope


def query(store, scope_id: str, limit: int = MAX_ENTRIES, max_limit: int = MAX_ENTRIES) -> List[ScoreEntry]:
    """Top ``limit`` rows by stored position.

    Trusts the last recalculation instead of re-sorting. Rows still at
    position 0 (appended, not yet ranked) come last in storage order.
    """
    limit = validate_limit(limit, max_limit)
    if scope_id not in store.list_scopes():
        raise ScopeNotFound(f"No leaderboard named {scope_id}.")
    entries = read_entries(store, scope_id)
    entries.sort(key=lambda e: (e.position == 0, e.position, e.row_index))
    return entries[:limit]


def player_info(projector, player_id: str) -> dict:
    """Aggregate row plus the player's best score in every level played."""
    aggregate = projector.find_player(player_id)
    if aggregate is None:
        raise PlayerNotFound(f"Player {player_id} not found.")

    level_scores = {}
    for scope_id, score in projector.best_scores(player_id).items():
        if score <= 0:
            continue
        level_id, language, difficulty = parse_level_scope(scope_id)
        level_scores[scope_id] = {
            "level_id": level_id,
            "language": language,
            "difficulty": difficulty,
            "score": score,
        }

    info = aggregate.to_dict()
    info["level_scores"] = level_scores
    return info
