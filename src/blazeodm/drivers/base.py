"""
Document driver protocol definitions for BlazeODM.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..security.dsns import DSNConfig, parse_dsn


class DriverError(RuntimeError):
    """Base error for driver-related failures."""


class DriverConfigurationError(DriverError):
    """Raised when configuration or required dependencies are invalid."""


class DriverConnectionError(DriverError):
    """Raised when establishing or using a connection fails."""


class DriverExecutionError(DriverError):
    """Raised when a write batch or lookup fails."""


class PartialWriteError(DriverExecutionError):
    """Raised when a batch failed after some of its documents were written."""

    def __init__(self, message: str, applied: Sequence[Any]) -> None:
        self.applied = list(applied)
        super().__init__(message)


class VersionConflictError(DriverExecutionError):
    """Raised when a versioned update no longer matches the stored version."""

    def __init__(self, namespace: "Namespace", identities: Sequence[Any]) -> None:
        self.namespace = namespace
        self.identities = list(identities)
        super().__init__(
            f"Version conflict in '{namespace}' for {len(self.identities)} document(s): "
            f"{', '.join(str(identity) for identity in self.identities)}"
        )


@dataclass(frozen=True)
class Namespace:
    """
    A collection, optionally qualified by database name.
    """

    collection: str
    database: Optional[str] = None

    def __str__(self) -> str:
        if self.database:
            return f"{self.database}.{self.collection}"
        return self.collection


@dataclass
class DocumentUpdate:
    """
    Field-level change set for one stored document.

    When ``expected_version`` is set the driver must only apply the update if
    the stored ``version_field`` still holds that value.
    """

    identity: Any
    set_fields: Dict[str, Any] = field(default_factory=dict)
    unset_fields: List[str] = field(default_factory=list)
    version_field: Optional[str] = None
    expected_version: Optional[int] = None

    def apply_to(self, document: Dict[str, Any]) -> Dict[str, Any]:
        updated = dict(document)
        updated.update(self.set_fields)
        for name in self.unset_fields:
            updated.pop(name, None)
        return updated

    def matches(self, document: Dict[str, Any]) -> bool:
        if self.version_field is None or self.expected_version is None:
            return True
        return document.get(self.version_field) == self.expected_version


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: str, *, key: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise DriverConfigurationError(f"Invalid boolean value for '{key}': {value!r}")


def _parse_float(value: str, *, key: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise DriverConfigurationError(f"Invalid float value for '{key}': {value!r}") from exc


@dataclass
class ConnectionConfig:
    """
    Normalized connection configuration for drivers.
    """

    url: str
    database: Optional[str] = None
    timeout: Optional[float] = None
    options: Optional[Dict[str, Any]] = None
    dsn: Optional[DSNConfig] = None
    source: Optional[str] = None

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a connection config by parsing the DSN string.

        ``timeout`` is read from the query string; every other query
        parameter is passed through to the driver as an option.
        """

        parsed = parse_dsn(dsn)
        query = dict(parsed.query)

        parsed_timeout = _parse_float(query.pop("timeout"), key="timeout") if "timeout" in query else None
        options: Dict[str, Any] = {}
        for key, value in query.items():
            if value.strip().lower() in _TRUE_VALUES | _FALSE_VALUES:
                options[key] = _parse_bool(value, key=key)
            else:
                options[key] = value
        options.update(kwargs.pop("options", None) or {})

        database = kwargs.pop("database", None)
        if database is None and parsed.scheme != "sqlite":
            database = parsed.database
        timeout = kwargs.pop("timeout", parsed_timeout)

        return cls(
            url=dsn,
            dsn=parsed,
            database=database,
            timeout=timeout,
            options=options or None,
            **kwargs,
        )

    @classmethod
    def from_env(cls, env_var: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a config from an environment variable containing a DSN.
        """

        value = os.getenv(env_var)
        if not value:
            raise DriverConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **kwargs)

    def redacted_dsn(self) -> str:
        """
        Return a DSN safe for logging (credentials removed).
        """

        if self.dsn:
            return self.dsn.redacted()
        return self.url

    def descriptive_label(self) -> str:
        redacted = self.redacted_dsn()
        if self.source:
            return f"{self.source} ({redacted})"
        return redacted


class DocumentDriver(Protocol):
    """
    Driver interface exposing the document operations used by the unit of work.
    """

    def connect(self, config: ConnectionConfig) -> Any:
        """
        Establish a connection handle using the supplied configuration.
        """

    def close(self) -> None:
        """
        Close underlying resources. Implementations should be idempotent.
        """

    def create_identity(self) -> Any:
        """
        Generate a new document identity.
        """

    def insert_many(self, namespace: Namespace, documents: Sequence[Dict[str, Any]]) -> int:
        """
        Insert ``documents``; returns the number written.
        """

    def update_many(self, namespace: Namespace, updates: Sequence[DocumentUpdate]) -> int:
        """
        Apply field-level updates; raises :class:`VersionConflictError` when a
        versioned update does not match.
        """

    def delete_many(self, namespace: Namespace, identities: Sequence[Any]) -> int:
        """
        Delete the documents with the given identities.
        """

    def find_one(self, namespace: Namespace, identity: Any) -> Optional[Dict[str, Any]]:
        """
        Fetch one document by identity, or ``None``.
        """
