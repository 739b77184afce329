"""Tabular storage contract consumed by the ranking core.

A store holds named tables ("scopes"). Each table is an ordered list of rows
(lists of cells); row 0 is the header written at provisioning time. There are
no transactions across calls and the last write to a cell wins.
"""
from abc import ABC, abstractmethod
from typing import List, NamedTuple, Sequence, Set


class CellWrite(NamedTuple):
    """Overwrite ``values`` starting at ``column`` of row ``row_index``."""

    row_index: int
    column: int
    values: list


class TableStore(ABC):

    @abstractmethod
    def list_scopes(self) -> Set[str]:
        ...

    @abstractmethod
    def create_scope(self, scope: str, header: Sequence) -> bool:
        """Provision a table. Returns False when it already existed."""

    @abstractmethod
    def append(self, scope: str, row: Sequence) -> int:
        """Add one row at the end; returns its row index."""

    @abstractmethod
    def read_all(self, scope: str) -> List[list]:
        """Every row in insertion order, header included."""

    @abstractmethod
    def batch_write_cells(self, scope: str, writes: Sequence[CellWrite]) -> None:
        """Apply all writes as one group."""

    @abstractmethod
    def delete_rows(self, scope: str, start: int, end: int) -> None:
        """Delete rows ``start`` (inclusive) to ``end`` (exclusive)."""

    @abstractmethod
    def ping(self) -> dict:
        """Connectivity diagnostics; raises StorageUnavailable when down."""


def apply_cell_write(row: list, write: CellWrite) -> list:
    """Return ``row`` with ``write`` applied, padding short rows with ''."""
    end = write.column + len(write.values)
    updated = list(row) + [""] * max(0, end - len(row))
    updated[write.column:end] = list(write.values)
    return updated
