"""
Document driver interfaces and implementations.
"""

from .base import (
    ConnectionConfig,
    DocumentDriver,
    DocumentUpdate,
    DriverConfigurationError,
    DriverConnectionError,
    DriverError,
    DriverExecutionError,
    Namespace,
    PartialWriteError,
    VersionConflictError,
)
from .memory import MemoryDriver
from .mongo import MongoDriver, ObjectIdGenerator
from .sqlite import SQLiteDriver

__all__ = [
    "ConnectionConfig",
    "DocumentDriver",
    "DocumentUpdate",
    "Namespace",
    "PartialWriteError",
    "DriverError",
    "DriverConfigurationError",
    "DriverConnectionError",
    "DriverExecutionError",
    "VersionConflictError",
    "MemoryDriver",
    "SQLiteDriver",
    "MongoDriver",
    "ObjectIdGenerator",
]
