"""
Runtime errors raised by the unit of work and session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .unit_of_work import FlushResult


class UnitOfWorkError(RuntimeError):
    """Base error for invalid unit-of-work operations."""


class DetachedObjectError(UnitOfWorkError):
    def __init__(self, obj: Any, operation: str) -> None:
        self.obj = obj
        self.operation = operation
        super().__init__(f"Cannot {operation} a detached object: {obj!r}")


class InvalidStateError(UnitOfWorkError):
    """Raised when an object cannot move to the requested state."""


class MissingIdentityError(UnitOfWorkError):
    """Raised when a document has no identity value."""


class UnknownDiscriminatorError(UnitOfWorkError):
    def __init__(self, value: Any, type_name: str) -> None:
        self.value = value
        self.type_name = type_name
        super().__init__(
            f"Unknown discriminator value {value!r} for the inheritance hierarchy of '{type_name}'."
        )


class FlushInProgressError(UnitOfWorkError):
    """Raised when the unit of work is used while a flush is running."""


class FlushError(UnitOfWorkError):
    """
    Raised when a write batch fails during flush.

    ``result`` holds what was written before the failure; the driver error is
    available as ``__cause__``.
    """

    def __init__(self, message: str, result: "FlushResult") -> None:
        self.result = result
        super().__init__(message)
