"""
Persistence layer: identity map, unit of work and sessions.
"""

from .errors import (
    DetachedObjectError,
    FlushError,
    FlushInProgressError,
    InvalidStateError,
    MissingIdentityError,
    UnitOfWorkError,
    UnknownDiscriminatorError,
)
from .identity_map import IdentityMap
from .serializer import ChangeSet, DocumentSerializer
from .session import Session, SessionFactory
from .unit_of_work import FlushResult, ObjectState, UnitOfWork

__all__ = [
    "ChangeSet",
    "DetachedObjectError",
    "DocumentSerializer",
    "FlushError",
    "FlushInProgressError",
    "FlushResult",
    "IdentityMap",
    "InvalidStateError",
    "MissingIdentityError",
    "ObjectState",
    "Session",
    "SessionFactory",
    "UnitOfWork",
    "UnitOfWorkError",
    "UnknownDiscriminatorError",
]
