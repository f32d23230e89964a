"""
Identity map ensuring a single in-memory instance per document.
"""

from __future__ import annotations

from threading import RLock
from typing import Any, Dict, Iterator, List, Optional, Tuple


class IdentityMap:
    """
    Stores managed objects keyed by identity, together with the document
    snapshot taken when the object was loaded or last written.
    """

    def __init__(self) -> None:
        self._store: Dict[Any, Tuple[Any, Dict[str, Any]]] = {}
        self._lock = RLock()

    def add(self, identity: Any, obj: Any, snapshot: Dict[str, Any]) -> bool:
        """
        Register ``obj``; returns ``False`` when the identity is already taken.
        """
        with self._lock:
            if identity in self._store:
                return False
            self._store[identity] = (obj, snapshot)
            return True

    def get(self, identity: Any) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(identity)
            return entry[0] if entry else None

    def snapshot(self, identity: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._store.get(identity)
            return entry[1] if entry else None

    def update_snapshot(self, identity: Any, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            obj, _ = self._store[identity]
            self._store[identity] = (obj, snapshot)

    def remove(self, identity: Any) -> Optional[Any]:
        with self._lock:
            entry = self._store.pop(identity, None)
            return entry[0] if entry else None

    def holds(self, identity: Any, obj: Any) -> bool:
        """True when ``identity`` maps to this very object."""
        with self._lock:
            entry = self._store.get(identity)
            return entry is not None and entry[0] is obj

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def items(self) -> List[Tuple[Any, Any]]:
        with self._lock:
            return [(identity, entry[0]) for identity, entry in self._store.items()]

    def values(self) -> List[Any]:
        with self._lock:
            return [entry[0] for entry in self._store.values()]

    def __contains__(self, identity: Any) -> bool:
        with self._lock:
            return identity in self._store

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
