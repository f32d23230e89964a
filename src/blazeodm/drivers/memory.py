"""
In-process document driver.
"""

from __future__ import annotations

import copy
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..identity import IdentityGenerator, UUIDIdentityGenerator
from ..utils import get_logger
from .base import (
    ConnectionConfig,
    DocumentDriver,
    DocumentUpdate,
    DriverConnectionError,
    DriverExecutionError,
    Namespace,
    VersionConflictError,
)


class MemoryDriver(DocumentDriver):
    """
    Keeps documents in dictionaries, one per namespace.

    Each batch is validated before it is applied, so a failing batch leaves the
    store untouched. Every applied batch is recorded in :attr:`operations` as
    ``(operation, namespace, count)``.
    """

    def __init__(self, identity_generator: Optional[IdentityGenerator] = None) -> None:
        self.identity_generator = identity_generator or UUIDIdentityGenerator()
        self.operations: List[Tuple[str, Namespace, int]] = []
        self._collections: Dict[Namespace, Dict[Any, Dict[str, Any]]] = {}
        self._lock = RLock()
        self._connected = False
        self.logger = get_logger("drivers.memory")

    def connect(self, config: Optional[ConnectionConfig] = None) -> "MemoryDriver":
        self._connected = True
        return self

    def close(self) -> None:
        self._connected = False

    def create_identity(self) -> Any:
        return self.identity_generator.generate()

    # ------------------------------------------------------------------ #
    def insert_many(self, namespace: Namespace, documents: Sequence[Dict[str, Any]]) -> int:
        with self._lock:
            collection = self._collection(namespace)
            seen = set()
            for document in documents:
                identity = document.get("_id")
                if identity is None:
                    raise DriverExecutionError(f"Cannot insert a document without '_id' into '{namespace}'.")
                if identity in collection or identity in seen:
                    raise DriverExecutionError(f"Duplicate key '{identity}' in '{namespace}'.")
                seen.add(identity)
            for document in documents:
                collection[document["_id"]] = copy.deepcopy(dict(document))
            self._record("insert", namespace, len(documents))
            return len(documents)

    def update_many(self, namespace: Namespace, updates: Sequence[DocumentUpdate]) -> int:
        with self._lock:
            collection = self._collection(namespace)
            conflicts = [
                update.identity
                for update in updates
                if update.expected_version is not None
                and (update.identity not in collection or not update.matches(collection[update.identity]))
            ]
            if conflicts:
                raise VersionConflictError(namespace, conflicts)
            applied = 0
            for update in updates:
                stored = collection.get(update.identity)
                if stored is None:
                    continue
                collection[update.identity] = copy.deepcopy(update.apply_to(stored))
                applied += 1
            self._record("update", namespace, applied)
            return applied

    def delete_many(self, namespace: Namespace, identities: Sequence[Any]) -> int:
        with self._lock:
            collection = self._collection(namespace)
            removed = 0
            for identity in identities:
                if collection.pop(identity, None) is not None:
                    removed += 1
            self._record("delete", namespace, removed)
            return removed

    def find_one(self, namespace: Namespace, identity: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            collection = self._collection(namespace)
            document = collection.get(identity)
            return copy.deepcopy(document) if document is not None else None

    # ------------------------------------------------------------------ #
    def documents(self, namespace: Namespace) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(document) for document in self._collection(namespace).values()]

    def _collection(self, namespace: Namespace) -> Dict[Any, Dict[str, Any]]:
        if not self._connected:
            raise DriverConnectionError("MemoryDriver is not connected.")
        return self._collections.setdefault(namespace, {})

    def _record(self, operation: str, namespace: Namespace, count: int) -> None:
        self.operations.append((operation, namespace, count))
        self.logger.debug("%s %d document(s) in %s", operation, count, namespace)
