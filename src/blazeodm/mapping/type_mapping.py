"""
Type mapping metadata: one node per mapped class.

Mappings of one registry live in a shared arena (``dict[int, TypeMapping]``)
and reference their parent and inheritance root by id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

from ..utils import collection_name_for
from .errors import DuplicateDiscriminatorError, DuplicateFieldError
from .flags import ChangeTracking, PropertyFlags, TypeMappingFlags
from .property import PropertyMapping

if TYPE_CHECKING:
    from ..config import Configuration


@dataclass
class Index:
    keys: List[Tuple[str, int]]
    options: Dict[str, Any] = field(default_factory=dict)


class TypeMapping:
    """
    Mapping metadata for a single document or embedded type.
    """

    def __init__(
        self,
        type_: type,
        flags: TypeMappingFlags,
        *,
        id: int,
        arena: Dict[int, "TypeMapping"],
        name: Optional[str] = None,
    ) -> None:
        self.id = id
        self.type = type_
        self.name = name or type_.__name__
        self.flags = flags

        self.properties: List[PropertyMapping] = []
        self._properties_by_name: Dict[str, PropertyMapping] = {}
        self._properties_by_field: Dict[str, PropertyMapping] = {}

        self.indexes: List[Index] = []
        self.collection_name: Optional[str] = None
        self.database_name: Optional[str] = None

        self.discriminator_field: Optional[str] = None
        self.discriminator_value: Optional[str] = None
        self._discriminator_map: Dict[str, int] = {}

        self.parent_id: Optional[int] = None
        self.root_id: int = id

        self.change_tracking: Optional[ChangeTracking] = None
        self.versioned = False
        self.version_field: Optional[str] = None
        self.lockable = False
        self.lock_field: Optional[str] = None

        self._arena = arena
        self._defaults_applied = False
        self._frozen = False

    def __repr__(self) -> str:
        return f"<TypeMapping {self.name} id={self.id} flags={self.flags}>"

    # ------------------------------------------------------------------ #
    # Flags and hierarchy
    # ------------------------------------------------------------------ #
    @property
    def is_embedded_type(self) -> bool:
        return bool(self.flags & TypeMappingFlags.EMBEDDED)

    @property
    def is_document_type(self) -> bool:
        return bool(self.flags & TypeMappingFlags.DOCUMENT)

    @property
    def is_root_type(self) -> bool:
        return bool(self.flags & TypeMappingFlags.ROOT)

    @property
    def is_immutable(self) -> bool:
        return bool(self.flags & TypeMappingFlags.IMMUTABLE)

    @property
    def root_type(self) -> "TypeMapping":
        return self._arena[self.root_id]

    @property
    def parent_type(self) -> Optional["TypeMapping"]:
        if self.parent_id is None:
            return None
        return self._arena[self.parent_id]

    @property
    def is_polymorphic(self) -> bool:
        """True when more than one type shares this type's root."""
        return len(self.root_type._discriminator_map) > 1

    def ancestors(self) -> Iterator["TypeMapping"]:
        current = self.parent_type
        while current is not None:
            yield current
            current = current.parent_type

    def is_subtype_of(self, other: "TypeMapping") -> bool:
        if other is self:
            return True
        return any(ancestor is other for ancestor in self.ancestors())

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    def add_property(self, prop: PropertyMapping) -> None:
        self._check_mutable()
        if prop.name in self._properties_by_name:
            raise DuplicateFieldError(self.name, "name", prop.name)
        if prop.field is not None and prop.field in self._properties_by_field:
            raise DuplicateFieldError(self.name, "field", prop.field)

        self._properties_by_name[prop.name] = prop
        if prop.field is not None:
            self._properties_by_field[prop.field] = prop
        self.properties.append(prop)

    def get_property(self, name: str) -> Optional[PropertyMapping]:
        return self._properties_by_name.get(name)

    def get_property_for_field(self, field_name: str) -> Optional[PropertyMapping]:
        return self._properties_by_field.get(field_name)

    def get_properties(self, flags: Optional[PropertyFlags] = None) -> List[PropertyMapping]:
        if not flags:
            return list(self.properties)
        return [prop for prop in self.properties if prop.flags & flags]

    def persistent_properties(self) -> List[PropertyMapping]:
        return [prop for prop in self.properties if not prop.is_ignored]

    @property
    def identifier(self) -> Optional[PropertyMapping]:
        for prop in self.properties:
            if prop.is_identifier:
                return prop
        return None

    # ------------------------------------------------------------------ #
    # Indexes and discriminators
    # ------------------------------------------------------------------ #
    def add_index(self, index: Index) -> None:
        root = self.root_type
        if root is not self:
            root.add_index(index)
            return
        self._check_mutable()
        if index not in self.indexes:
            self.indexes.append(index)

    def set_discriminator_value(self, value: str) -> None:
        self._check_mutable()
        self.root_type._add_discriminator_mapping(value, self)
        self.discriminator_value = value

    def resolve_by_discriminator(self, value: Any) -> Optional["TypeMapping"]:
        mapping_id = self.root_type._discriminator_map.get(value)
        if mapping_id is None:
            return None
        return self._arena[mapping_id]

    def _add_discriminator_mapping(self, value: str, mapping: "TypeMapping") -> None:
        existing = self._discriminator_map.get(value)
        if existing is not None and existing != mapping.id:
            raise DuplicateDiscriminatorError(value, self._arena[existing].name, mapping.name)
        self._discriminator_map[value] = mapping.id

    # ------------------------------------------------------------------ #
    # Defaults
    # ------------------------------------------------------------------ #
    def apply_defaults(self, config: "Configuration") -> None:
        """
        Fill unset mapping values from ``config``.

        Must run once, after the hierarchy is linked and after the root's own
        defaults, since non-root types copy their root's settings.
        """
        self._check_mutable()
        if self._defaults_applied:
            raise RuntimeError(f"Defaults were already applied to mapping '{self.name}'.")
        self._defaults_applied = True

        if not self.is_document_type:
            return

        if self.is_root_type:
            if not self.discriminator_field:
                self.discriminator_field = config.discriminator_field
            if not self.lock_field:
                self.lock_field = config.lock_field
            if not self.version_field:
                self.version_field = config.version_field
            if self.change_tracking is None:
                self.change_tracking = config.change_tracking
            if not self.collection_name:
                self.collection_name = collection_name_for(self.name, config.collection_prefix)
            elif config.collection_prefix:
                self.collection_name = f"{config.collection_prefix}{self.collection_name}"
            if not self.database_name:
                self.database_name = config.database_name
        else:
            root = self.root_type
            self.discriminator_field = root.discriminator_field
            self.collection_name = root.collection_name
            self.database_name = root.database_name
            self.change_tracking = root.change_tracking
            self.versioned = root.versioned
            self.version_field = root.version_field
            self.lockable = root.lockable
            self.lock_field = root.lock_field

        if not self.discriminator_value:
            self.set_discriminator_value(self.name)
        else:
            self.set_discriminator_value(self.discriminator_value)

    # ------------------------------------------------------------------ #
    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError(f"Mapping '{self.name}' is frozen and cannot be modified.")
