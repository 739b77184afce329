"""Ranking rules: total order, positions, trimming.

Everything here works on in-memory snapshots and returns new lists; nothing
touches storage and no input list is reordered in place.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from typefall.domain.entry import ScoreEntry
from typefall.domain.enums import TrimPolicy

MAX_ENTRIES = 100

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_key(entry: ScoreEntry) -> tuple:
    """Key for a descending sort: score, then timestamp, then storage order.

    The later submission wins a score tie. Storage order only breaks ties
    between identical timestamps so that the order stays total.
    """
    row_index = entry.row_index if entry.row_index is not None else -1
    return (entry.score, _parse_timestamp(entry.timestamp), row_index)


def rank(entries: Iterable[ScoreEntry]) -> List[ScoreEntry]:
    """Return the entries in rank order with 1-based positions assigned."""
    ordered = sorted(entries, key=sort_key, reverse=True)
    return [entry.with_position(i + 1) for i, entry in enumerate(ordered)]


def select_trimmed(
    entries: List[ScoreEntry],
    max_entries: int = MAX_ENTRIES,
    policy: TrimPolicy = TrimPolicy.INSERTION,
) -> Tuple[List[ScoreEntry], List[ScoreEntry]]:
    """Split a snapshot into (kept, evicted), both in storage order."""
    excess = len(entries) - max_entries
    if excess <= 0:
        return list(entries), []

    if policy == TrimPolicy.RANK:
        losers = rank(entries)[-excess:]
        evicted_rows = {e.row_index for e in losers}
    else:
        by_storage = sorted(entries, key=lambda e: e.row_index)
        evicted_rows = {e.row_index for e in by_storage[:excess]}

    kept = [e for e in entries if e.row_index not in evicted_rows]
    evicted = [e for e in entries if e.row_index in evicted_rows]
    kept.sort(key=lambda e: e.row_index)
    evicted.sort(key=lambda e: e.row_index)
    return kept, evicted


def compact(kept: List[ScoreEntry], first_row: int = 1) -> List[ScoreEntry]:
    """Reassign row indices as storage will number them after the deletes."""
    ordered = sorted(kept, key=lambda e: e.row_index)
    return [e.with_row_index(first_row + i) for i, e in enumerate(ordered)]


def delete_runs(row_indices: Iterable[int]) -> List[Tuple[int, int]]:
    """Group row indices into contiguous [start, end) runs, last run first.

    Deleting in this order never shifts a run that is still pending.
    """
    runs: List[Tuple[int, int]] = []
    for index in sorted(set(row_indices)):
        if runs and runs[-1][1] == index:
            runs[-1] = (runs[-1][0], index + 1)
        else:
            runs.append((index, index + 1))
    runs.reverse()
    return runs


def changed_positions(
    stored: Iterable[ScoreEntry], ranked: Iterable[ScoreEntry]
) -> List[Tuple[int, int]]:
    """(row_index, new_position) for every row whose position moved."""
    before = {e.row_index: e.position for e in stored}
    return [
        (e.row_index, e.position)
        for e in sorted(ranked, key=lambda e: e.row_index)
        if before.get(e.row_index) != e.position
    ]


def best_position(entries: Iterable[ScoreEntry], player_id: str) -> int:
    """Smallest non-zero position held by the player, 0 when unranked."""
    positions = [
        e.position for e in entries
        if e.player_id == player_id and e.position > 0
    ]
    return min(positions) if positions else 0
