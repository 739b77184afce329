"""Score entries and player aggregates, and their row layouts in storage."""
from datetime import datetime, timezone

LEVEL_HEADER = ["position", "player_id", "player_name", "score", "timestamp"]
GLOBAL_HEADER = [
    "position", "player_id", "player_name", "score", "levels_completed", "timestamp",
]
PLAYER_HEADER = [
    "player_id", "player_name", "created_at", "last_record_at",
    "levels_completed", "total_score", "global_position",
]

# Column offsets shared by level and global rows.
COL_POSITION = 0
COL_PLAYER_ID = 1
COL_PLAYER_NAME = 2
COL_SCORE = 3

HEADER_SENTINELS = {LEVEL_HEADER[0], PLAYER_HEADER[0]}


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_int(value) -> int:
    """Read a stored cell as an integer; unparseable cells read as 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def is_header(row: list) -> bool:
    return bool(row) and str(row[0]) in HEADER_SENTINELS


def _cell(row: list, index: int, default=""):
    return row[index] if index < len(row) else default


class ScoreEntry:
    """One row of a scope. Immutable; ``with_position`` returns a copy.

    ``row_index`` is the row's index in the scope's storage order (header
    included) at the time it was read, or None for a row not yet stored.
    """

    def __init__(
        self,
        player_id: str,
        player_name: str,
        score: int,
        timestamp: str | None = None,
        position: int = 0,
        levels_completed: int | None = None,
        row_index: int | None = None,
    ):
        self._player_id = str(player_id)
        self._player_name = str(player_name)
        self._score = score
        self._timestamp = timestamp or utcnow_iso()
        self._position = position
        self._levels_completed = levels_completed
        self._row_index = row_index

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def player_name(self) -> str:
        return self._player_name

    @property
    def score(self) -> int:
        return self._score

    @property
    def timestamp(self) -> str:
        return self._timestamp

    @property
    def position(self) -> int:
        return self._position

    @property
    def levels_completed(self) -> int | None:
        return self._levels_completed

    @property
    def row_index(self) -> int | None:
        return self._row_index

    def with_position(self, position: int) -> "ScoreEntry":
        return self._copy(position=position)

    def with_row_index(self, row_index: int) -> "ScoreEntry":
        return self._copy(row_index=row_index)

    def _copy(self, **changes) -> "ScoreEntry":
        fields = {
            "player_id": self._player_id,
            "player_name": self._player_name,
            "score": self._score,
            "timestamp": self._timestamp,
            "position": self._position,
            "levels_completed": self._levels_completed,
            "row_index": self._row_index,
        }
        fields.update(changes)
        return ScoreEntry(**fields)

    @classmethod
    def from_row(cls, row: list, row_index: int, with_levels: bool) -> "ScoreEntry":
        if with_levels:
            levels = parse_int(_cell(row, 4, 0))
            timestamp = str(_cell(row, 5))
        else:
            levels = None
            timestamp = str(_cell(row, 4))
        return cls(
            player_id=str(_cell(row, COL_PLAYER_ID)),
            player_name=str(_cell(row, COL_PLAYER_NAME)),
            score=parse_int(_cell(row, COL_SCORE, 0)),
            timestamp=timestamp,
            position=parse_int(_cell(row, COL_POSITION, 0)),
            levels_completed=levels,
            row_index=row_index,
        )

    def to_row(self) -> list:
        row = [self._position, self._player_id, self._player_name, self._score]
        if self._levels_completed is not None:
            row.append(self._levels_completed)
        row.append(self._timestamp)
        return row

    def to_dict(self) -> dict:
        d = {
            "position": self._position,
            "player_id": self._player_id,
            "player_name": self._player_name,
            "score": self._score,
            "timestamp": self._timestamp,
        }
        if self._levels_completed is not None:
            d["levels_completed"] = self._levels_completed
        return d

    def __repr__(self) -> str:
        return (
            f"ScoreEntry(player_id={self._player_id!r}, score={self._score}, "
            f"position={self._position}, timestamp={self._timestamp!r})"
        )


class PlayerAggregate:
    """Per-player summary row of the ``players`` table."""

    def __init__(
        self,
        player_id: str,
        player_name: str,
        created_at: str | None = None,
        last_record_at: str | None = None,
        levels_completed: int = 0,
        total_score: int = 0,
        global_position: int = 0,
        row_index: int | None = None,
    ):
        now = utcnow_iso()
        self.player_id = str(player_id)
        self.player_name = str(player_name)
        self.created_at = created_at or now
        self.last_record_at = last_record_at or self.created_at
        self.levels_completed = levels_completed
        self.total_score = total_score
        self.global_position = global_position
        self.row_index = row_index

    @classmethod
    def from_row(cls, row: list, row_index: int) -> "PlayerAggregate":
        return cls(
            player_id=str(_cell(row, 0)),
            player_name=str(_cell(row, 1)),
            created_at=str(_cell(row, 2)) or None,
            last_record_at=str(_cell(row, 3)) or None,
            levels_completed=parse_int(_cell(row, 4, 0)),
            total_score=parse_int(_cell(row, 5, 0)),
            global_position=parse_int(_cell(row, 6, 0)),
            row_index=row_index,
        )

    def to_row(self) -> list:
        return [
            self.player_id,
            self.player_name,
            self.created_at,
            self.last_record_at,
            self.levels_completed,
            self.total_score,
            self.global_position,
        ]

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "created_at": self.created_at,
            "last_record_at": self.last_record_at,
            "levels_completed": self.levels_completed,
            "total_score": self.total_score,
            "global_position": self.global_position,
        }
