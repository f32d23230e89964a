"""
BlazeODM public package initialization.

Object-document mapping with a unit of work, identity map and pluggable
document drivers.
"""

from .config import Configuration, ConfigurationError  # noqa: F401
from .core import (
    BinaryField,
    BooleanField,
    DateTimeField,
    DeclarativeMappingProvider,
    Document,
    DocumentDefinitionError,
    EmbeddedDocument,
    EmbeddedField,
    EnumField,
    FloatField,
    IdentityField,
    IntegerField,
    ListField,
    StringField,
)  # noqa: F401
from .drivers import ConnectionConfig, MemoryDriver, MongoDriver, SQLiteDriver  # noqa: F401
from .hooks import hooks  # noqa: F401
from .mapping import ChangeTracking, MappingError, MappingRegistry  # noqa: F401
from .persistence import (
    FlushError,
    FlushResult,
    ObjectState,
    Session,
    SessionFactory,
    UnitOfWork,
)  # noqa: F401

__all__ = [
    "BinaryField",
    "BooleanField",
    "ChangeTracking",
    "Configuration",
    "ConfigurationError",
    "ConnectionConfig",
    "DateTimeField",
    "DeclarativeMappingProvider",
    "Document",
    "DocumentDefinitionError",
    "EmbeddedDocument",
    "EmbeddedField",
    "EnumField",
    "FloatField",
    "FlushError",
    "FlushResult",
    "IdentityField",
    "IntegerField",
    "ListField",
    "MappingError",
    "MappingRegistry",
    "MemoryDriver",
    "MongoDriver",
    "ObjectState",
    "SQLiteDriver",
    "Session",
    "SessionFactory",
    "StringField",
    "UnitOfWork",
    "hooks",
]
