"""
Unit of Work tracking object states and batching writes per collection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from threading import Lock, RLock
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from ..drivers.base import DocumentDriver, DocumentUpdate, DriverError, Namespace, PartialWriteError
from ..mapping import IDENTITY_FIELD, ChangeTracking, MappingRegistry, TypeMapping
from ..utils import get_logger, time_call
from .errors import (
    DetachedObjectError,
    FlushError,
    FlushInProgressError,
    InvalidStateError,
    MissingIdentityError,
    UnknownDiscriminatorError,
)
from .identity_map import IdentityMap
from .serializer import DocumentSerializer, identity_of

if TYPE_CHECKING:
    from ..config import Configuration
    from ..hooks import HookDispatcher


class ObjectState(Enum):
    NEW = "new"
    MANAGED = "managed"
    DETACHED = "detached"
    REMOVED = "removed"


@dataclass
class FlushResult:
    """
    Identities written by one flush, per operation.
    """

    inserted: List[Any] = field(default_factory=list)
    updated: List[Any] = field(default_factory=list)
    deleted: List[Any] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.inserted) + len(self.updated) + len(self.deleted)


_Batch = Tuple[Namespace, List[Tuple[Any, Any, TypeMapping]]]


class UnitOfWork:
    """
    Tracks new, managed and removed objects and writes their changes on
    :meth:`flush`.

    Object state is derived from the bookkeeping tables:

    * no identity: ``NEW``;
    * scheduled for deletion, or deleted by a flush: ``REMOVED``;
    * held by the identity map: ``MANAGED``;
    * anything else: ``DETACHED``.

    A unit of work is a sequential state machine. In-memory operations are
    serialized by a re-entrant lock and never perform I/O; ``flush`` performs
    I/O outside that lock while a flush guard rejects concurrent flushes and
    mutations.
    """

    def __init__(
        self,
        driver: DocumentDriver,
        registry: MappingRegistry,
        *,
        config: Optional["Configuration"] = None,
        hooks: Optional["HookDispatcher"] = None,
    ) -> None:
        self.driver = driver
        self.registry = registry
        self.config = config
        self.serializer = DocumentSerializer(registry)
        self.identity_map = IdentityMap()

        self._insertions: Dict[Any, Any] = {}
        self._updates: Dict[Any, Any] = {}
        self._deletions: Dict[Any, Any] = {}
        self._dirty_checks: Dict[Any, Any] = {}
        self._removed: Dict[Any, Any] = {}

        self._lock = RLock()
        self._flush_guard = Lock()
        self._flushing = False

        if hooks is None:
            from ..hooks import hooks as global_hooks

            hooks = global_hooks
        self.hooks = hooks
        self.logger = get_logger("persistence.unit_of_work")

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #
    def get_state(self, obj: Any) -> ObjectState:
        mapping = self.registry.resolve_document(obj)
        with self._lock:
            return self._state_of(mapping, obj)

    def contains(self, obj: Any) -> bool:
        return self.get_state(obj) is ObjectState.MANAGED

    def _state_of(self, mapping: TypeMapping, obj: Any) -> ObjectState:
        identity = identity_of(mapping, obj)
        if identity is None:
            return ObjectState.NEW
        if self._deletions.get(identity) is obj or self._removed.get(identity) is obj:
            return ObjectState.REMOVED
        if self.identity_map.holds(identity, obj):
            return ObjectState.MANAGED
        return ObjectState.DETACHED

    @property
    def scheduled_insertions(self) -> List[Any]:
        with self._lock:
            return list(self._insertions)

    @property
    def scheduled_updates(self) -> List[Any]:
        with self._lock:
            return list(self._updates)

    @property
    def scheduled_deletions(self) -> List[Any]:
        with self._lock:
            return list(self._deletions)

    @property
    def scheduled_dirty_checks(self) -> List[Any]:
        with self._lock:
            return list(self._dirty_checks)

    @property
    def is_flushing(self) -> bool:
        return self._flushing

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def save(self, obj: Any) -> None:
        mapping = self.registry.resolve_document(obj)
        with self._lock:
            self._check_not_flushing("save")
            state = self._state_of(mapping, obj)
            if state is ObjectState.NEW:
                identity = self._generate_identity()
                self._schedule_insert(identity, obj)
                setattr(obj, mapping.identifier.name, identity)
                self.identity_map.add(identity, obj, {})
                self.logger.debug("Scheduled insert of %s %s", mapping.name, identity)
            elif state is ObjectState.MANAGED:
                if mapping.change_tracking is ChangeTracking.DEFERRED_EXPLICIT:
                    identity = identity_of(mapping, obj)
                    self._dirty_checks[identity] = obj
                    self.logger.debug("Scheduled dirty check of %s %s", mapping.name, identity)
            elif state is ObjectState.DETACHED:
                raise DetachedObjectError(obj, "save")
            else:
                raise InvalidStateError(f"Cannot save a removed object: {obj!r}")

    def remove(self, obj: Any) -> None:
        mapping = self.registry.resolve_document(obj)
        with self._lock:
            self._check_not_flushing("remove")
            state = self._state_of(mapping, obj)
            if state is ObjectState.DETACHED:
                raise DetachedObjectError(obj, "remove")
            if state is not ObjectState.MANAGED:
                return

            identity = identity_of(mapping, obj)
            self.identity_map.remove(identity)
            self._dirty_checks.pop(identity, None)
            if self._insertions.pop(identity, None) is not None:
                self.logger.debug("Cancelled insert of %s %s", mapping.name, identity)
                return
            self._updates.pop(identity, None)
            self._deletions[identity] = obj
            self.logger.debug("Scheduled delete of %s %s", mapping.name, identity)

    def detach(self, obj: Any) -> None:
        """
        Stop tracking ``obj``; pending operations for it are discarded.
        """
        mapping = self.registry.resolve_document(obj)
        with self._lock:
            self._check_not_flushing("detach")
            identity = identity_of(mapping, obj)
            if identity is None:
                return
            if self.identity_map.holds(identity, obj):
                self.identity_map.remove(identity)
                for table in (self._insertions, self._updates, self._dirty_checks):
                    table.pop(identity, None)
            for table in (self._deletions, self._removed):
                if table.get(identity) is obj:
                    del table[identity]

    def clear(self) -> None:
        with self._lock:
            self._check_not_flushing("clear")
            self.identity_map.clear()
            self._insertions.clear()
            self._updates.clear()
            self._deletions.clear()
            self._dirty_checks.clear()
            self._removed.clear()

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #
    def load(self, type_: type, document: Dict[str, Any]) -> Any:
        """
        Return the managed instance for ``document``, creating it when the
        identity is not in the identity map.

        ``type_`` is the expected type; the discriminator stored in the
        document selects the concrete type within its hierarchy.
        """
        expected = self.registry.resolve_document(type_)
        identity = document.get(IDENTITY_FIELD)
        if identity is None:
            raise MissingIdentityError(f"Document for '{expected.name}' has no '{IDENTITY_FIELD}' value.")

        with self._lock:
            existing = self.identity_map.get(identity)
            if existing is not None:
                if not isinstance(existing, expected.type):
                    raise InvalidStateError(
                        f"Identity {identity!r} is already managed as '{type(existing).__name__}', "
                        f"not '{expected.name}'."
                    )
                return existing

            mapping = self._resolve_concrete(expected, document)
            obj = self.serializer.from_document(mapping, document)
            self.identity_map.add(identity, obj, self.serializer.snapshot(document))

        self.hooks.fire("after_load", obj, unit_of_work=self)
        return obj

    def find(self, type_: type, identity: Any) -> Optional[Any]:
        """
        Return the object with ``identity``, from the identity map or the
        driver; ``None`` when no such document exists.
        """
        expected = self.registry.resolve_document(type_)
        existing = self.identity_map.get(identity)
        if existing is not None and isinstance(existing, expected.type):
            return existing

        document = self.driver.find_one(self._namespace(expected), identity)
        if document is None:
            return None
        return self.load(type_, document)

    def _resolve_concrete(self, expected: TypeMapping, document: Dict[str, Any]) -> TypeMapping:
        if not expected.is_polymorphic:
            return expected
        value = document.get(expected.discriminator_field)
        if value is None:
            return expected
        mapping = expected.resolve_by_discriminator(value)
        if mapping is None:
            raise UnknownDiscriminatorError(value, expected.root_type.name)
        if not mapping.is_subtype_of(expected):
            raise InvalidStateError(
                f"Document {document.get(IDENTITY_FIELD)!r} is a '{mapping.name}', not a '{expected.name}'."
            )
        return mapping

    # ------------------------------------------------------------------ #
    # Flush
    # ------------------------------------------------------------------ #
    def flush(self) -> FlushResult:
        """
        Write scheduled insertions, updates and deletions, grouped per
        collection, in that order.

        A failing batch raises :class:`FlushError`; batches written before it
        are kept, as are documents the driver reports as written through
        :class:`PartialWriteError`. Everything not yet written stays scheduled,
        so a later flush retries it.
        """
        if not self._flush_guard.acquire(blocking=False):
            raise FlushInProgressError("A flush is already in progress.")
        try:
            self._flushing = True
            result = FlushResult()
            with time_call("unit_of_work.flush", self.logger, threshold_ms=500):
                with self._lock:
                    self._compute_change_sets()
                try:
                    for namespace, batch in self._batches(self._insertions):
                        self._flush_insertions(namespace, batch, result)
                    for namespace, batch in self._batches(self._updates):
                        self._flush_updates(namespace, batch, result)
                    for namespace, batch in self._batches(self._deletions):
                        self._flush_deletions(namespace, batch, result)
                except DriverError as exc:
                    self.logger.error(
                        "Flush failed after %d insert(s), %d update(s), %d delete(s): %s",
                        len(result.inserted),
                        len(result.updated),
                        len(result.deleted),
                        exc,
                    )
                    raise FlushError(f"Flush failed: {exc}", result) from exc
        finally:
            self._flushing = False
            self._flush_guard.release()

        if result.total:
            self.logger.info(
                "Flushed %d insert(s), %d update(s), %d delete(s)",
                len(result.inserted),
                len(result.updated),
                len(result.deleted),
            )
        self.hooks.fire("after_flush", None, unit_of_work=self, result=result)
        return result

    def _compute_change_sets(self) -> None:
        for identity, obj in self.identity_map.items():
            if identity in self._insertions or identity in self._deletions:
                continue
            mapping = self.registry.resolve(obj)
            if mapping.change_tracking is not ChangeTracking.DEFERRED_IMPLICIT and identity not in self._dirty_checks:
                continue
            changes = self._changes_for(mapping, identity, obj)
            if changes:
                self._schedule_update(identity, obj)
            else:
                self._updates.pop(identity, None)
                self._dirty_checks.pop(identity, None)

    def _changes_for(self, mapping: TypeMapping, identity: Any, obj: Any):
        snapshot = self.identity_map.snapshot(identity) or {}
        current = self.serializer.to_document(mapping, obj)
        return self.serializer.compute_changes(mapping, current, snapshot)

    def _batches(self, table: Dict[Any, Any]) -> List[_Batch]:
        grouped: Dict[Namespace, List[Tuple[Any, Any, TypeMapping]]] = {}
        with self._lock:
            for identity, obj in table.items():
                mapping = self.registry.resolve(obj)
                grouped.setdefault(self._namespace(mapping), []).append((identity, obj, mapping))
        return list(grouped.items())

    def _flush_insertions(self, namespace: Namespace, batch, result: FlushResult) -> None:
        documents = []
        for identity, obj, mapping in batch:
            self.hooks.fire("before_save", obj, unit_of_work=self, created=True)
            document = self.serializer.to_document(mapping, obj)
            if mapping.versioned:
                document[mapping.version_field] = 1
            documents.append(document)

        entries = list(zip(batch, documents))
        try:
            self.driver.insert_many(namespace, documents)
        except PartialWriteError as exc:
            applied = set(exc.applied)
            written = [(item, document) for item, document in entries if item[0] in applied]
            self._complete_insertions(written, result)
            raise
        self._complete_insertions(entries, result)

    def _complete_insertions(self, entries, result: FlushResult) -> None:
        with self._lock:
            for (identity, obj, _), document in entries:
                self._insertions.pop(identity, None)
                self._dirty_checks.pop(identity, None)
                if identity in self.identity_map:
                    self.identity_map.update_snapshot(identity, self.serializer.snapshot(document))
                result.inserted.append(identity)
        self._fire_each("after_save", [item for item, _ in entries], created=True)

    def _flush_updates(self, namespace: Namespace, batch, result: FlushResult) -> None:
        updates: List[DocumentUpdate] = []
        written = []
        for identity, obj, mapping in batch:
            self.hooks.fire("before_save", obj, unit_of_work=self, created=False)
            changes = self._changes_for(mapping, identity, obj)
            if not changes:
                continue
            update = DocumentUpdate(
                identity=identity,
                set_fields=dict(changes.set_fields),
                unset_fields=list(changes.unset_fields),
            )
            if mapping.versioned:
                snapshot = self.identity_map.snapshot(identity) or {}
                current_version = snapshot.get(mapping.version_field)
                update.version_field = mapping.version_field
                update.expected_version = current_version
                update.set_fields[mapping.version_field] = (current_version or 0) + 1
            updates.append(update)
            written.append((identity, obj, mapping))

        if updates:
            self.driver.update_many(namespace, updates)

        with self._lock:
            for identity, _, _ in batch:
                self._updates.pop(identity, None)
                self._dirty_checks.pop(identity, None)
            for update in updates:
                snapshot = self.identity_map.snapshot(update.identity)
                if snapshot is not None:
                    self.identity_map.update_snapshot(
                        update.identity, self.serializer.snapshot(update.apply_to(snapshot))
                    )
                result.updated.append(update.identity)
        self._fire_each("after_save", written, created=False)

    def _flush_deletions(self, namespace: Namespace, batch, result: FlushResult) -> None:
        self._fire_each("before_delete", batch)
        identities = [identity for identity, _, _ in batch]
        self.driver.delete_many(namespace, identities)

        with self._lock:
            for identity, obj, _ in batch:
                self._deletions.pop(identity, None)
                self._removed[identity] = obj
                # A fresh instance loaded after the remove no longer has a document.
                self.identity_map.remove(identity)
                self._updates.pop(identity, None)
                self._dirty_checks.pop(identity, None)
                result.deleted.append(identity)
        self._fire_each("after_delete", batch)

    def _fire_each(self, event: str, batch, **context: Any) -> None:
        for _, obj, _ in batch:
            self.hooks.fire(event, obj, unit_of_work=self, **context)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _schedule_insert(self, identity: Any, obj: Any) -> None:
        if identity in self._updates:
            raise InvalidStateError("Dirty object cannot be scheduled for insertion.")
        if identity in self._deletions:
            raise InvalidStateError("Removed object cannot be scheduled for insertion.")
        if identity in self._insertions:
            raise InvalidStateError("Object is already scheduled for insertion.")
        self._insertions[identity] = obj

    def _schedule_update(self, identity: Any, obj: Any) -> None:
        if identity in self._deletions:
            raise InvalidStateError("Removed object cannot be scheduled for update.")
        self._updates[identity] = obj

    def _generate_identity(self) -> Any:
        generator = self.config.identity_generator if self.config is not None else None
        create: Callable[[], Any] = generator.generate if generator is not None else self.driver.create_identity
        return create()

    def _check_not_flushing(self, operation: str) -> None:
        if self._flushing:
            raise FlushInProgressError(f"Cannot {operation} while a flush is in progress.")

    @staticmethod
    def _namespace(mapping: TypeMapping) -> Namespace:
        return Namespace(mapping.collection_name, mapping.database_name)
