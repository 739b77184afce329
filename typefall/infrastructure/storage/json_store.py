"""Table storage in a single JSON file (development and tests)."""
import json
import logging
import os
import threading
from typing import Dict, List, Sequence, Set

from typefall.domain.errors import ScopeNotFound, StorageUnavailable
from typefall.infrastructure.storage.base import CellWrite, TableStore, apply_cell_write

log = logging.getLogger("typefall.storage")


class JsonTableStore(TableStore):
    """File-backed tables: ``{"<scope>": [[header...], [row...], ...]}``.

    Every call re-reads the file so several workers can share it; a lock
    serialises the load-modify-save cycle of each call within one process.
    """

    def __init__(self, data_path: str = "data/leaderboard.json"):
        self._data_path = data_path
        self._lock = threading.Lock()

    @property
    def data_path(self) -> str:
        return self._data_path

    def list_scopes(self) -> Set[str]:
        with self._lock:
            return set(self._load())

    def create_scope(self, scope: str, header: Sequence) -> bool:
        with self._lock:
            tables = self._load()
            if scope in tables:
                return False
            tables[scope] = [list(header)]
            self._save(tables)
        log.info("Provisioned table %s", scope)
        return True

    def append(self, scope: str, row: Sequence) -> int:
        with self._lock:
            tables = self._load()
            rows = self._table(tables, scope)
            rows.append(list(row))
            self._save(tables)
            return len(rows) - 1

    def read_all(self, scope: str) -> List[list]:
        with self._lock:
            return [list(r) for r in self._table(self._load(), scope)]

    def batch_write_cells(self, scope: str, writes: Sequence[CellWrite]) -> None:
        if not writes:
            return
        with self._lock:
            tables = self._load()
            rows = self._table(tables, scope)
            for write in writes:
                if not 0 <= write.row_index < len(rows):
                    raise StorageUnavailable(
                        f"Row {write.row_index} is out of range for {scope}."
                    )
                rows[write.row_index] = apply_cell_write(rows[write.row_index], write)
            self._save(tables)

    def delete_rows(self, scope: str, start: int, end: int) -> None:
        if end <= start:
            return
        with self._lock:
            tables = self._load()
            rows = self._table(tables, scope)
            del rows[start:end]
            self._save(tables)

    def ping(self) -> dict:
        with self._lock:
            tables = self._load()
        return {
            "backend": "json",
            "path": self._data_path,
            "tables": len(tables),
        }

    @staticmethod
    def _table(tables: Dict[str, list], scope: str) -> list:
        if scope not in tables:
            raise ScopeNotFound(f"Table {scope} does not exist.")
        return tables[scope]

    def _load(self) -> Dict[str, list]:
        if not os.path.exists(self._data_path):
            return {}
        try:
            with open(self._data_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            raise StorageUnavailable(
                f"Could not read {self._data_path}: {type(exc).__name__}"
            ) from exc
        if not isinstance(data, dict):
            raise StorageUnavailable(f"{self._data_path} is not a table map.")
        return data

    def _save(self, tables: Dict[str, list]) -> None:
        directory = os.path.dirname(self._data_path)
        tmp_path = f"{self._data_path}.tmp"
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            # Write to a temp file then replace so readers never see half a file
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(tables, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._data_path)
        except OSError as exc:
            raise StorageUnavailable(
                f"Could not write {self._data_path}: {type(exc).__name__}"
            ) from exc
