"""
Plain schema descriptors handed from a mapping provider to the registry.

Descriptors carry declarations only; the registry links hierarchies,
resolves converters and applies defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .flags import ChangeTracking, PropertyFlags, TypeMappingFlags
from .type_mapping import Index


@dataclass
class PropertyDescriptor:
    name: str
    field: Optional[str] = None
    flags: PropertyFlags = PropertyFlags.NONE
    converter: Any = None
    python_type: Optional[type] = None
    target: Optional[type] = None
    index: bool = False
    unique: bool = False


@dataclass
class TypeDescriptor:
    type: type
    flags: TypeMappingFlags
    name: Optional[str] = None
    properties: List[PropertyDescriptor] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)
    collection_name: Optional[str] = None
    database_name: Optional[str] = None
    discriminator_field: Optional[str] = None
    discriminator_value: Optional[str] = None
    change_tracking: Optional[ChangeTracking] = None
    versioned: bool = False
    version_field: Optional[str] = None
    lockable: bool = False
    lock_field: Optional[str] = None

    @property
    def type_name(self) -> str:
        return self.name or self.type.__name__
