"""
MongoDB document driver implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from ..utils import get_logger, time_call
from .base import (
    ConnectionConfig,
    DocumentDriver,
    DocumentUpdate,
    DriverConfigurationError,
    DriverConnectionError,
    DriverExecutionError,
    Namespace,
    PartialWriteError,
    VersionConflictError,
)


def _load_driver():
    try:
        import pymongo

        return pymongo
    except ImportError:
        return None


def _load_bson():
    try:
        import bson

        return bson
    except ImportError:
        return None


class ObjectIdGenerator:
    """
    Identity generator producing BSON ObjectIds.
    """

    def __init__(self) -> None:
        bson = _load_bson()
        if bson is None:
            raise DriverConfigurationError("pymongo is required to generate ObjectId identities.")
        self._object_id = bson.ObjectId

    def generate(self) -> Any:
        return self._object_id()

    def validate(self, value: Any) -> bool:
        return isinstance(value, self._object_id) or self._object_id.is_valid(value)

    def from_string(self, text: str) -> Any:
        if not self._object_id.is_valid(text):
            raise ValueError(f"Invalid ObjectId: {text!r}")
        return self._object_id(text)

    def are_equal(self, a: Any, b: Any) -> bool:
        return a == b


@dataclass
class MongoConnectionState:
    client: Any
    config: ConnectionConfig
    driver: Any


class MongoDriver(DocumentDriver):
    """
    Driver wrapping the pymongo client.
    """

    def __init__(self, identity_generator: Any = None, slow_batch_ms: int = 200) -> None:
        self._identity_generator = identity_generator
        self.slow_batch_ms = slow_batch_ms
        self._state: MongoConnectionState | None = None
        self.logger = get_logger("drivers.mongo")

    def connect(self, config: ConnectionConfig) -> Any:
        driver = _load_driver()
        if driver is None:
            raise DriverConfigurationError("pymongo is required to use MongoDriver.")

        options = dict(config.options or {})
        if config.timeout and "serverSelectionTimeoutMS" not in options:
            options["serverSelectionTimeoutMS"] = int(config.timeout * 1000)

        self.logger.info("Connecting to MongoDB %s", config.descriptive_label())
        try:
            client = driver.MongoClient(config.url, **options)
        except Exception as exc:
            raise DriverConnectionError("Failed to connect to MongoDB.") from exc

        self._state = MongoConnectionState(client, config, driver)
        return client

    def close(self) -> None:
        if self._state:
            try:
                self._state.client.close()
            finally:
                self._state = None

    def create_identity(self) -> Any:
        if self._identity_generator is None:
            self._identity_generator = ObjectIdGenerator()
        return self._identity_generator.generate()

    # ------------------------------------------------------------------ #
    def insert_many(self, namespace: Namespace, documents: Sequence[Dict[str, Any]]) -> int:
        collection = self._collection(namespace)
        state = self._ensure_state()
        with time_call(
            "mongo.insert_many",
            self.logger,
            namespace=str(namespace),
            count=len(documents),
            threshold_ms=self.slow_batch_ms,
        ):
            try:
                result = collection.insert_many([dict(document) for document in documents], ordered=True)
            except state.driver.errors.BulkWriteError as exc:
                # Ordered inserts stop at the first error; everything before it was written.
                written = (exc.details or {}).get("nInserted", 0)
                applied = [document["_id"] for document in documents[:written]]
                raise PartialWriteError(
                    f"Insert into '{namespace}' failed after {written} document(s).", applied
                ) from exc
            except state.driver.errors.PyMongoError as exc:
                raise DriverExecutionError(f"Insert into '{namespace}' failed.") from exc
        return len(result.inserted_ids)

    def update_many(self, namespace: Namespace, updates: Sequence[DocumentUpdate]) -> int:
        collection = self._collection(namespace)
        state = self._ensure_state()
        requests = []
        for update in updates:
            query: Dict[str, Any] = {"_id": update.identity}
            if update.version_field and update.expected_version is not None:
                query[update.version_field] = update.expected_version
            operation: Dict[str, Any] = {}
            if update.set_fields:
                operation["$set"] = dict(update.set_fields)
            if update.unset_fields:
                operation["$unset"] = {name: "" for name in update.unset_fields}
            if operation:
                requests.append(state.driver.UpdateOne(query, operation))
        if not requests:
            return 0

        with time_call(
            "mongo.update_many",
            self.logger,
            namespace=str(namespace),
            count=len(requests),
            threshold_ms=self.slow_batch_ms,
        ):
            try:
                result = collection.bulk_write(requests, ordered=True)
            except state.driver.errors.PyMongoError as exc:
                raise DriverExecutionError(f"Update of '{namespace}' failed.") from exc

        versioned = [update.identity for update in updates if update.expected_version is not None]
        if versioned and result.matched_count < len(requests):
            raise VersionConflictError(namespace, versioned)
        return result.modified_count

    def delete_many(self, namespace: Namespace, identities: Sequence[Any]) -> int:
        collection = self._collection(namespace)
        state = self._ensure_state()
        with time_call(
            "mongo.delete_many",
            self.logger,
            namespace=str(namespace),
            count=len(identities),
            threshold_ms=self.slow_batch_ms,
        ):
            try:
                result = collection.delete_many({"_id": {"$in": list(identities)}})
            except state.driver.errors.PyMongoError as exc:
                raise DriverExecutionError(f"Delete from '{namespace}' failed.") from exc
        return result.deleted_count

    def find_one(self, namespace: Namespace, identity: Any) -> Optional[Dict[str, Any]]:
        collection = self._collection(namespace)
        state = self._ensure_state()
        try:
            document = collection.find_one({"_id": identity})
        except state.driver.errors.PyMongoError as exc:
            raise DriverExecutionError(f"Lookup in '{namespace}' failed.") from exc
        return dict(document) if document is not None else None

    # ------------------------------------------------------------------ #
    def _ensure_state(self) -> MongoConnectionState:
        if not self._state:
            raise DriverConnectionError("MongoDriver is not connected.")
        return self._state

    def _collection(self, namespace: Namespace) -> Any:
        state = self._ensure_state()
        database = namespace.database or state.config.database
        if not database:
            raise DriverConfigurationError(
                f"No database configured for '{namespace}'; set one on the mapping or in the DSN."
            )
        return state.client[database][namespace.collection]
