"""
Storage Backend Module

Record persistence for users and loans. Records are JSON documents keyed by
id within a named table; monetary values are kept as Decimal strings.
Backends: in-memory (tests, demos) and SQLite (persistence).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from decimal import Decimal
from datetime import datetime, timezone
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager


Record = Dict[str, Any]


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Record:
        """Convert to a JSON-ready dictionary"""
        result = asdict(self)
        result['created_at'] = self.created_at.isoformat()
        result['updated_at'] = self.updated_at.isoformat()
        for key, value in result.items():
            if isinstance(value, Decimal):
                result[key] = str(value)
        return result

    @classmethod
    def from_dict(cls, data: Record) -> 'StorageRecord':
        data = dict(data)
        for key in ('created_at', 'updated_at'):
            if isinstance(data.get(key), str):
                data[key] = datetime.fromisoformat(data[key])
        return cls(**data)


def _matches(record: Record, filters: Record) -> bool:
    return all(key in record and record[key] == value for key, value in filters.items())


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Record) -> None:
        """Insert or replace a record"""

    @abstractmethod
    def save_if_match(self, table: str, record_id: str, data: Record, expected: Record) -> bool:
        """
        Replace an existing record only if its stored fields equal `expected`

        The check and the write happen as one step, so of several writers
        expecting the same prior state exactly one succeeds.

        Returns:
            True if the record was written, False if it is missing or changed
        """

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Record]:
        """Load a record, or None"""

    @abstractmethod
    def load_all(self, table: str) -> List[Record]:
        """Every record in a table"""

    @abstractmethod
    def find(self, table: str, filters: Record) -> List[Record]:
        """Records whose top-level fields equal every filter value"""

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record; False if it did not exist"""

    @abstractmethod
    def count(self, table: str) -> int:
        pass

    def exists(self, table: str, record_id: str) -> bool:
        return self.load(table, record_id) is not None

    def close(self) -> None:
        """Release backend resources"""


class InMemoryStorage(StorageInterface):
    """Dictionary-backed storage; records are copied in and out"""

    def __init__(self):
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.RLock()

    def _table(self, table: str) -> Dict[str, Record]:
        return self._tables.setdefault(table, {})

    @staticmethod
    def _copy(record: Record) -> Record:
        return json.loads(json.dumps(record, default=str))

    def save(self, table: str, record_id: str, data: Record) -> None:
        with self._lock:
            self._table(table)[record_id] = self._copy(data)

    def save_if_match(self, table: str, record_id: str, data: Record, expected: Record) -> bool:
        with self._lock:
            records = self._table(table)
            current = records.get(record_id)
            if current is None or not _matches(current, expected):
                return False
            records[record_id] = self._copy(data)
            return True

    def load(self, table: str, record_id: str) -> Optional[Record]:
        with self._lock:
            record = self._table(table).get(record_id)
            return self._copy(record) if record is not None else None

    def load_all(self, table: str) -> List[Record]:
        with self._lock:
            return [self._copy(record) for record in self._table(table).values()]

    def find(self, table: str, filters: Record) -> List[Record]:
        with self._lock:
            return [
                self._copy(record)
                for record in self._table(table).values()
                if _matches(record, filters)
            ]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._table(table).pop(record_id, None) is not None

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            return record_id in self._table(table)

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))


class SQLiteStorage(StorageInterface):
    """
    SQLite storage, one table per record type

    Each row holds the record as JSON text. Field filters and conditional
    writes are evaluated in SQL with json_extract.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._tables = set()

        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    @contextmanager
    def _cursor(self, table: str, write: bool = False) -> Iterator[sqlite3.Cursor]:
        """Locked cursor on an existing table; writes are committed on exit"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.cursor()
            yield cursor
            if write:
                self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        if table in self._tables:
            return
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._connection.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._connection.commit()
        self._tables.add(table)

    @staticmethod
    def _where(filters: Record) -> Tuple[str, List[Any]]:
        """SQL conditions matching top-level JSON fields"""
        conditions = []
        params: List[Any] = []
        for key, value in filters.items():
            if value is None:
                conditions.append("json_extract(data, ?) IS NULL")
                params.append(f"$.{key}")
            else:
                conditions.append("json_extract(data, ?) = ?")
                params.extend([f"$.{key}", value])
        return " AND ".join(conditions), params

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def save(self, table: str, record_id: str, data: Record) -> None:
        now = self._now()
        with self._cursor(table, write=True) as cursor:
            cursor.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
            """, (record_id, json.dumps(data, default=str), now, now))

    def save_if_match(self, table: str, record_id: str, data: Record, expected: Record) -> bool:
        conditions, params = self._where(expected)
        where_clause = "id = ?" + (f" AND {conditions}" if conditions else "")
        with self._cursor(table, write=True) as cursor:
            cursor.execute(
                f"UPDATE {table} SET data = ?, updated_at = ? WHERE {where_clause}",
                [json.dumps(data, default=str), self._now(), record_id] + params
            )
            return cursor.rowcount > 0

    def load(self, table: str, record_id: str) -> Optional[Record]:
        with self._cursor(table) as cursor:
            row = cursor.execute(f"SELECT data FROM {table} WHERE id = ?", (record_id,)).fetchone()
            return json.loads(row['data']) if row else None

    def load_all(self, table: str) -> List[Record]:
        with self._cursor(table) as cursor:
            rows = cursor.execute(f"SELECT data FROM {table} ORDER BY created_at").fetchall()
            return [json.loads(row['data']) for row in rows]

    def find(self, table: str, filters: Record) -> List[Record]:
        if not filters:
            return self.load_all(table)
        conditions, params = self._where(filters)
        with self._cursor(table) as cursor:
            rows = cursor.execute(
                f"SELECT data FROM {table} WHERE {conditions} ORDER BY created_at", params
            ).fetchall()
            return [json.loads(row['data']) for row in rows]

    def delete(self, table: str, record_id: str) -> bool:
        with self._cursor(table, write=True) as cursor:
            cursor.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        with self._cursor(table) as cursor:
            return cursor.execute(
                f"SELECT 1 FROM {table} WHERE id = ? LIMIT 1", (record_id,)
            ).fetchone() is not None

    def count(self, table: str) -> int:
        with self._cursor(table) as cursor:
            return cursor.execute(f"SELECT COUNT(*) AS count FROM {table}").fetchone()['count']

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(backend: str, database_path: Union[str, Path] = ":memory:") -> StorageInterface:
    """Create a storage backend by name ("memory" or "sqlite")"""
    if backend == "memory":
        return InMemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(database_path)
    raise ValueError(f"Unknown storage backend: {backend}")
