"""
Session management coordinating the driver, mapping registry and unit of work.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from ..drivers.base import ConnectionConfig, DocumentDriver
from ..mapping import MappingRegistry
from ..utils import get_logger
from .unit_of_work import FlushResult, ObjectState, UnitOfWork

if TYPE_CHECKING:
    from ..config import Configuration
    from ..hooks import HookDispatcher
    from ..mapping import MappingProvider


class Session:
    """
    Coordinates persistence operations for a set of documents.

    Used as a context manager the session flushes on a clean exit and
    discards pending work when the block raises.
    """

    def __init__(
        self,
        driver: DocumentDriver,
        registry: MappingRegistry,
        *,
        hooks: Optional["HookDispatcher"] = None,
        connection_config: Optional[ConnectionConfig] = None,
        config: Optional["Configuration"] = None,
    ) -> None:
        self.driver = driver
        self.registry = registry
        self.connection_config = connection_config
        self.unit_of_work = UnitOfWork(driver, registry, config=config, hooks=hooks)
        self.logger = get_logger("persistence.session")
        self._owns_connection = connection_config is not None
        self._closed = False
        if connection_config is not None:
            self.driver.connect(connection_config)

    # ------------------------------------------------------------------ #
    # Context management
    # ------------------------------------------------------------------ #
    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type:
                self.logger.debug("Discarding pending work after %s", exc_type.__name__)
                self.unit_of_work.clear()
            else:
                self.flush()
        finally:
            self.close()

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def add(self, instance: Any) -> Any:
        self.unit_of_work.save(instance)
        return instance

    save = add

    def delete(self, instance: Any) -> None:
        self.unit_of_work.remove(instance)

    remove = delete

    def detach(self, instance: Any) -> None:
        self.unit_of_work.detach(instance)

    # ------------------------------------------------------------------ #
    def load(self, document_type: type, document: Dict[str, Any]) -> Any:
        return self.unit_of_work.load(document_type, document)

    def find(self, document_type: type, identity: Any) -> Optional[Any]:
        return self.unit_of_work.find(document_type, identity)

    def flush(self) -> FlushResult:
        return self.unit_of_work.flush()

    def state_of(self, instance: Any) -> ObjectState:
        return self.unit_of_work.get_state(instance)

    def __contains__(self, instance: Any) -> bool:
        return self.unit_of_work.contains(instance)

    def clear(self) -> None:
        self.unit_of_work.clear()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.unit_of_work.clear()
        if self._owns_connection:
            self.driver.close()


class SessionFactory:
    """
    Builds the mapping registry once and hands out sessions sharing it and
    the driver.
    """

    def __init__(
        self,
        configuration: "Configuration",
        provider: "MappingProvider",
        driver: DocumentDriver,
        *,
        connection_config: Optional[ConnectionConfig] = None,
        hooks: Optional["HookDispatcher"] = None,
    ) -> None:
        self.configuration = configuration
        self.driver = driver
        self.hooks = hooks
        self.logger = get_logger("persistence.session_factory")
        self.registry = MappingRegistry.build(provider.get_mapping(configuration), configuration)
        if connection_config is not None:
            self.driver.connect(connection_config)
        self.logger.debug("Session factory ready with %d mapped types", len(self.registry))

    def create_session(self) -> Session:
        return Session(self.driver, self.registry, hooks=self.hooks, config=self.configuration)

    __call__ = create_session

    def close(self) -> None:
        self.driver.close()
