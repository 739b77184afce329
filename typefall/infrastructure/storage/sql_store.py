"""Table storage in a SQL database (PostgreSQL in production)."""
import logging
from typing import List, Sequence, Set

from sqlalchemy import text

from typefall.domain.errors import ScopeNotFound, StorageUnavailable
from typefall.infrastructure.database.models import RowModel, TableModel
from typefall.infrastructure.storage.base import CellWrite, TableStore, apply_cell_write

log = logging.getLogger("typefall.storage")


class SqlTableStore(TableStore):
    """Rows live in ``leaderboard_rows``; storage order is the row id.

    Row index 0 is the table header kept on ``leaderboard_tables``, so row
    indices line up with the JSON backend.
    """

    def __init__(self, session_factory):
        self._sf = session_factory

    def list_scopes(self) -> Set[str]:
        with self._sf() as session:
            return {name for (name,) in session.query(TableModel.name).all()}

    def create_scope(self, scope: str, header: Sequence) -> bool:
        with self._sf() as session:
            if session.get(TableModel, scope) is not None:
                return False
            session.add(TableModel(name=scope, header=list(header)))
            session.commit()
        log.info("Provisioned table %s", scope)
        return True

    def append(self, scope: str, row: Sequence) -> int:
        with self._sf() as session:
            self._require(session, scope)
            model = RowModel(table_name=scope, cells=list(row))
            session.add(model)
            session.flush()
            # Rows are ordered by id, so the new row's index is the number of
            # rows up to and including it (header at 0).
            row_index = (
                session.query(RowModel)
                .filter(RowModel.table_name == scope, RowModel.id <= model.id)
                .count()
            )
            session.commit()
            return row_index

    def read_all(self, scope: str) -> List[list]:
        with self._sf() as session:
            table = self._require(session, scope)
            rows = self._rows(session, scope)
            return [list(table.header)] + [list(r.cells) for r in rows]

    def batch_write_cells(self, scope: str, writes: Sequence[CellWrite]) -> None:
        if not writes:
            return
        with self._sf() as session:
            table = self._require(session, scope)
            rows = self._rows(session, scope)
            for write in writes:
                if write.row_index == 0:
                    table.header = apply_cell_write(table.header, write)
                    continue
                if not 0 < write.row_index <= len(rows):
                    raise StorageUnavailable(
                        f"Row {write.row_index} is out of range for {scope}."
                    )
                model = rows[write.row_index - 1]
                # Reassign so the JSON column is flagged dirty
                model.cells = apply_cell_write(model.cells, write)
            session.commit()

    def delete_rows(self, scope: str, start: int, end: int) -> None:
        if end <= start:
            return
        if start < 1:
            raise StorageUnavailable(f"The header of {scope} cannot be deleted.")
        with self._sf() as session:
            self._require(session, scope)
            rows = self._rows(session, scope)
            for model in rows[start - 1:end - 1]:
                session.delete(model)
            session.commit()

    def ping(self) -> dict:
        with self._sf() as session:
            session.execute(text("SELECT 1"))
            tables = session.query(TableModel).count()
        return {"backend": "sql", "tables": tables}

    @staticmethod
    def _require(session, scope: str) -> TableModel:
        table = session.get(TableModel, scope)
        if table is None:
            raise ScopeNotFound(f"Table {scope} does not exist.")
        return table

    @staticmethod
    def _rows(session, scope: str) -> List[RowModel]:
        return (
            session.query(RowModel)
            .filter(RowModel.table_name == scope)
            .order_by(RowModel.id)
            .all()
        )
