"""
Conversion between mapped objects and plain documents.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..mapping import IDENTITY_FIELD, MappingRegistry, PropertyMapping, TypeMapping
from ..utils import get_logger


@dataclass
class ChangeSet:
    """
    Field-level differences between an object and its snapshot.
    """

    set_fields: Dict[str, Any] = field(default_factory=dict)
    unset_fields: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.set_fields or self.unset_fields)


class DocumentSerializer:
    """
    Serializes objects to documents and back using the type mappings of a
    registry.

    ``None`` values are never written. The discriminator is only written when
    the inheritance hierarchy has more than one type.
    """

    def __init__(self, registry: MappingRegistry) -> None:
        self.registry = registry
        self.logger = get_logger("persistence.serializer")

    # ------------------------------------------------------------------ #
    # Object -> document
    # ------------------------------------------------------------------ #
    def to_document(self, mapping: TypeMapping, obj: Any) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        for prop in mapping.persistent_properties():
            value = getattr(obj, prop.name, None)
            if value is None:
                continue
            document[prop.field] = self._to_field(prop, value)

        if mapping.is_document_type and mapping.is_polymorphic:
            document[mapping.discriminator_field] = mapping.discriminator_value
        return document

    def _to_field(self, prop: PropertyMapping, value: Any) -> Any:
        if prop.is_embedded:
            nested = self.registry.get(prop.mapping_id)
            if prop.is_array:
                return [self.to_document(nested, item) for item in value if item is not None]
            return self.to_document(nested, value)
        if prop.converter is not None:
            if prop.is_array:
                return [prop.converter.to_field(item) for item in value]
            return prop.converter.to_field(value)
        if prop.is_array:
            return copy.deepcopy(list(value))
        if isinstance(value, (bytearray, memoryview)):
            return bytes(value)
        return copy.deepcopy(value)

    # ------------------------------------------------------------------ #
    # Document -> object
    # ------------------------------------------------------------------ #
    def from_document(self, mapping: TypeMapping, document: Dict[str, Any]) -> Any:
        """
        Create an instance of ``mapping.type`` without calling ``__init__`` and
        populate it from ``document``. Unknown fields are ignored.
        """
        obj = mapping.type.__new__(mapping.type)
        for prop in mapping.persistent_properties():
            if prop.field not in document:
                continue
            obj.__dict__[prop.name] = self._to_property(prop, document[prop.field])
        return obj

    def _to_property(self, prop: PropertyMapping, raw: Any) -> Any:
        if raw is None:
            return None
        if prop.is_embedded:
            nested = self.registry.get(prop.mapping_id)
            if prop.is_array:
                return [self.from_document(nested, item) for item in raw]
            return self.from_document(nested, raw)
        if prop.converter is not None:
            if prop.is_array:
                return [prop.converter.to_property(item) for item in raw]
            return prop.converter.to_property(raw)
        if prop.is_array:
            return list(raw)
        return copy.deepcopy(raw)

    # ------------------------------------------------------------------ #
    # Dirty checking
    # ------------------------------------------------------------------ #
    def compute_changes(
        self,
        mapping: TypeMapping,
        current: Dict[str, Any],
        snapshot: Dict[str, Any],
    ) -> ChangeSet:
        """
        Compare the serialized ``current`` state against ``snapshot``.

        Identifier and ignored properties are skipped, as are fields owned by
        the mapping itself (discriminator, version and lock). Changes to
        immutable properties are logged and dropped.
        """
        changes = ChangeSet()
        if mapping.is_immutable:
            return changes

        for prop in mapping.persistent_properties():
            if prop.is_identifier or prop.field == IDENTITY_FIELD:
                continue
            old = snapshot.get(prop.field)
            new = current.get(prop.field)
            if _values_equal(prop, old, new):
                continue
            if prop.is_immutable:
                self.logger.warning(
                    "Ignoring change to immutable property '%s.%s'", mapping.name, prop.name
                )
                continue
            if new is None:
                changes.unset_fields.append(prop.field)
            else:
                changes.set_fields[prop.field] = new
        return changes

    def snapshot(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return copy.deepcopy(document)


def _values_equal(prop: PropertyMapping, old: Any, new: Any) -> bool:
    if old is None or new is None:
        return old is None and new is None
    return prop.values_equal(old, new)


def identity_of(mapping: TypeMapping, obj: Any) -> Optional[Any]:
    identifier = mapping.identifier
    if identifier is None:
        return None
    return getattr(obj, identifier.name, None)
