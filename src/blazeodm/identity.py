"""
Identity generation for new documents.
"""

from __future__ import annotations

import uuid
from typing import Any, Protocol


class IdentityGenerator(Protocol):
    def generate(self) -> Any: ...

    def validate(self, value: Any) -> bool: ...

    def from_string(self, text: str) -> Any: ...

    def are_equal(self, a: Any, b: Any) -> bool: ...


class UUIDIdentityGenerator:
    """
    Generates random UUID4 identities as 32 character hex strings.
    """

    def generate(self) -> str:
        return uuid.uuid4().hex

    def validate(self, value: Any) -> bool:
        if not isinstance(value, str) or len(value) != 32:
            return False
        try:
            uuid.UUID(hex=value)
        except ValueError:
            return False
        return True

    def from_string(self, text: str) -> str:
        if not self.validate(text):
            raise ValueError(f"Invalid identity: {text!r}")
        return text

    def are_equal(self, a: Any, b: Any) -> bool:
        return a == b
