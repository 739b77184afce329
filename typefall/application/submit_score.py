"""Use case: validate a score and append it to a scope, unranked."""
from typefall.domain.entry import ScoreEntry, utcnow_iso
from typefall.domain.invariant import (
    validate_levels_completed,
    validate_player_id,
    validate_player_name,
    validate_score,
)


def build_entry(
    player_id,
    player_name,
    score,
    levels_completed=None,
    with_levels: bool = False,
) -> ScoreEntry:
    """Validate raw submission fields. Touches no storage."""
    player_id = validate_player_id(player_id)
    player_name = validate_player_name(player_name)
    score = validate_score(score)
    levels = validate_levels_completed(levels_completed) if with_levels else None
    return ScoreEntry(
        player_id=player_id,
        player_name=player_name,
        score=score,
        timestamp=utcnow_iso(),
        position=0,
        levels_completed=levels,
    )


def submit_score(store, scope_id: str, entry: ScoreEntry) -> ScoreEntry:
    """Append ``entry`` with position 0, pending recalculation.

    Recalculation is a separate step so it can be retried on its own.
    """
    row_index = store.append(scope_id, entry.with_position(0).to_row())
    return entry.with_position(0).with_row_index(row_index)
