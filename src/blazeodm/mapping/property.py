"""
Property mapping metadata.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .converters import PropertyConverter
from .flags import PropertyFlags


@dataclass
class PropertyMapping:
    """
    Describes one mapped attribute of a type and the document field it uses.
    """

    name: str
    field: Optional[str]
    flags: PropertyFlags = PropertyFlags.NONE
    converter: Optional[PropertyConverter] = None
    mapping_id: Optional[int] = None
    python_type: Optional[type] = None

    def __post_init__(self) -> None:
        if self.is_ignored:
            self.field = None
        elif not self.field:
            self.field = self.name

    def has_flags(self, flags: PropertyFlags) -> bool:
        return (self.flags & flags) == flags

    @property
    def is_ignored(self) -> bool:
        return self.has_flags(PropertyFlags.IGNORED)

    @property
    def is_identifier(self) -> bool:
        return self.has_flags(PropertyFlags.IDENTIFIER)

    @property
    def is_immutable(self) -> bool:
        return self.has_flags(PropertyFlags.IMMUTABLE)

    @property
    def is_array(self) -> bool:
        return self.has_flags(PropertyFlags.ARRAY)

    @property
    def is_embedded(self) -> bool:
        return self.has_flags(PropertyFlags.EMBEDDED)

    def values_equal(self, a: Any, b: Any) -> bool:
        """
        Compare two document field values, deferring to the converter when
        one is configured.
        """
        if self.converter is None:
            return a == b
        if self.is_array and isinstance(a, list) and isinstance(b, list):
            return len(a) == len(b) and all(
                self.converter.equals(left, right) for left, right in zip(a, b)
            )
        return self.converter.equals(a, b)
