"""
SQLite document driver storing JSON documents, one table per namespace.
"""

from __future__ import annotations

import base64
import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set

from ..identity import IdentityGenerator, UUIDIdentityGenerator
from ..utils import get_logger, time_call
from .base import (
    ConnectionConfig,
    DocumentDriver,
    DocumentUpdate,
    DriverConnectionError,
    DriverExecutionError,
    Namespace,
    VersionConflictError,
)


def _encode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"$binary": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_object(obj: Dict[str, Any]) -> Any:
    if len(obj) == 1:
        if "$binary" in obj:
            return base64.b64decode(obj["$binary"])
        if "$date" in obj:
            return datetime.fromisoformat(obj["$date"])
    return obj


def dumps(document: Dict[str, Any]) -> str:
    return json.dumps(document, default=_encode_value, sort_keys=True)


def loads(text: str) -> Dict[str, Any]:
    return json.loads(text, object_hook=_decode_object)


@dataclass
class SQLiteConnectionState:
    connection: sqlite3.Connection


class SQLiteDriver(DocumentDriver):
    """
    Driver wrapping the Python stdlib sqlite3 module.

    Every batch runs in its own transaction: it is applied completely or not
    at all.
    """

    def __init__(
        self,
        identity_generator: Optional[IdentityGenerator] = None,
        slow_batch_ms: int = 200,
    ) -> None:
        self.identity_generator = identity_generator or UUIDIdentityGenerator()
        self.slow_batch_ms = slow_batch_ms
        self._state: SQLiteConnectionState | None = None
        self._tables: Set[str] = set()
        self._lock = RLock()
        self.logger = get_logger("drivers.sqlite")

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    def connect(self, config: ConnectionConfig) -> sqlite3.Connection:
        path = self._normalize_path(config.url)
        timeout = config.timeout if config.timeout is not None else 5.0
        try:
            connection = sqlite3.connect(path, isolation_level=None, timeout=timeout, check_same_thread=False)
        except sqlite3.Error as exc:
            raise DriverConnectionError(f"Failed to open SQLite database '{path}'.") from exc
        self.logger.info("Connected to SQLite %s", config.descriptive_label())
        self._state = SQLiteConnectionState(connection)
        self._tables.clear()
        return connection

    def close(self) -> None:
        if self._state:
            self._state.connection.close()
            self._state = None

    def _ensure_connection(self) -> sqlite3.Connection:
        if not self._state:
            raise DriverConnectionError("SQLiteDriver is not connected.")
        return self._state.connection

    def create_identity(self) -> Any:
        return self.identity_generator.generate()

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #
    def insert_many(self, namespace: Namespace, documents: Sequence[Dict[str, Any]]) -> int:
        table = self._table(namespace)
        rows = [(self._key(document.get("_id")), dumps(document)) for document in documents]
        with self._transaction("sqlite.insert_many", namespace, len(rows)) as connection:
            try:
                connection.executemany(f"INSERT INTO {table} (id, body) VALUES (?, ?)", rows)
            except sqlite3.IntegrityError as exc:
                raise DriverExecutionError(f"Duplicate key in '{namespace}'.") from exc
        return len(rows)

    def update_many(self, namespace: Namespace, updates: Sequence[DocumentUpdate]) -> int:
        table = self._table(namespace)
        applied = 0
        with self._transaction("sqlite.update_many", namespace, len(updates)) as connection:
            conflicts: List[Any] = []
            for update in updates:
                key = self._key(update.identity)
                row = connection.execute(f"SELECT body FROM {table} WHERE id = ?", (key,)).fetchone()
                if row is None:
                    if update.expected_version is not None:
                        conflicts.append(update.identity)
                    continue
                stored = loads(row[0])
                if not update.matches(stored):
                    conflicts.append(update.identity)
                    continue
                connection.execute(
                    f"UPDATE {table} SET body = ? WHERE id = ?", (dumps(update.apply_to(stored)), key)
                )
                applied += 1
            if conflicts:
                raise VersionConflictError(namespace, conflicts)
        return applied

    def delete_many(self, namespace: Namespace, identities: Sequence[Any]) -> int:
        table = self._table(namespace)
        keys = [(self._key(identity),) for identity in identities]
        with self._transaction("sqlite.delete_many", namespace, len(keys)) as connection:
            cursor = connection.executemany(f"DELETE FROM {table} WHERE id = ?", keys)
        return cursor.rowcount

    def find_one(self, namespace: Namespace, identity: Any) -> Optional[Dict[str, Any]]:
        table = self._table(namespace)
        with self._lock:
            connection = self._ensure_connection()
            row = connection.execute(
                f"SELECT body FROM {table} WHERE id = ?", (self._key(identity),)
            ).fetchone()
        return loads(row[0]) if row else None

    def count(self, namespace: Namespace) -> int:
        table = self._table(namespace)
        with self._lock:
            connection = self._ensure_connection()
            return connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

    # ------------------------------------------------------------------ #
    @contextmanager
    def _transaction(self, name: str, namespace: Namespace, count: int) -> Iterator[sqlite3.Connection]:
        with self._lock:
            connection = self._ensure_connection()
            with time_call(
                name,
                self.logger,
                namespace=str(namespace),
                count=count,
                threshold_ms=self.slow_batch_ms,
            ):
                connection.execute("BEGIN")
                try:
                    yield connection
                except BaseException:
                    connection.execute("ROLLBACK")
                    raise
                connection.execute("COMMIT")

    def _table(self, namespace: Namespace) -> str:
        name = '"' + str(namespace).replace('"', '""') + '"'
        if name not in self._tables:
            with self._lock:
                connection = self._ensure_connection()
                connection.execute(
                    f"CREATE TABLE IF NOT EXISTS {name} (id TEXT PRIMARY KEY, body TEXT NOT NULL)"
                )
                self._tables.add(name)
        return name

    @staticmethod
    def _key(identity: Any) -> str:
        if identity is None:
            raise DriverExecutionError("Documents require an '_id' value.")
        return str(identity)

    @staticmethod
    def _normalize_path(url: str) -> str:
        if url == "sqlite:///:memory:":
            return ":memory:"
        prefix = "sqlite:///"
        if url.startswith(prefix):
            return url[len(prefix) :]
        return url

    def tables(self) -> Iterator[str]:
        return iter(sorted(self._tables))
