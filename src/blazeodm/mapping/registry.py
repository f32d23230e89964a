"""
Mapping registry: builds linked type mappings and resolves objects to them.

The registry is built once from provider descriptors, validated fail-fast,
then frozen. A built registry is read-only and may be shared by any number
of sessions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..utils import get_logger
from .converters import PropertyConverter
from .descriptors import PropertyDescriptor, TypeDescriptor
from .errors import (
    DuplicateCollectionMappingError,
    IncompatibleFlagsError,
    MappingError,
    MissingCollectionNameError,
    MissingIdentifierError,
    UnknownConverterError,
    UnmappedTypeError,
)
from .flags import PropertyFlags, TypeMappingFlags
from .property import PropertyMapping
from .type_mapping import Index, TypeMapping

if TYPE_CHECKING:
    from ..config import Configuration


IDENTITY_FIELD = "_id"

_Pair = Tuple[TypeDescriptor, TypeMapping]


class MappingRegistry:
    """
    Resolves runtime objects and classes to their :class:`TypeMapping`.
    """

    def __init__(self, arena: Dict[int, TypeMapping]) -> None:
        self._arena = arena
        self._by_type: Dict[type, TypeMapping] = {mapping.type: mapping for mapping in arena.values()}

    @classmethod
    def build(
        cls,
        descriptors: Iterable[TypeDescriptor],
        config: Optional["Configuration"] = None,
    ) -> "MappingRegistry":
        """
        Link, configure, default and validate ``descriptors``.

        Raises the first :class:`MappingError` encountered; no partially
        built registry is ever returned.
        """
        from ..config import Configuration

        builder = _RegistryBuilder(config or Configuration())
        return cls(builder.build(list(descriptors)))

    # ------------------------------------------------------------------ #
    def resolve(self, target: Any) -> TypeMapping:
        cls = target if isinstance(target, type) else type(target)
        mapping = self._by_type.get(cls)
        if mapping is None:
            raise UnmappedTypeError(cls)
        return mapping

    def resolve_document(self, target: Any) -> TypeMapping:
        mapping = self.resolve(target)
        if not mapping.is_document_type:
            raise UnmappedTypeError(target, "is not mapped as a document type")
        return mapping

    def get(self, mapping_id: int) -> TypeMapping:
        return self._arena[mapping_id]

    def mappings(self) -> List[TypeMapping]:
        return list(self._arena.values())

    def document_mappings(self) -> List[TypeMapping]:
        return [mapping for mapping in self._arena.values() if mapping.is_document_type]

    def roots(self) -> List[TypeMapping]:
        return [m for m in self.document_mappings() if m.is_root_type]

    def __contains__(self, target: Any) -> bool:
        cls = target if isinstance(target, type) else type(target)
        return cls in self._by_type

    def __iter__(self) -> Iterator[TypeMapping]:
        return iter(list(self._arena.values()))

    def __len__(self) -> int:
        return len(self._arena)


class _RegistryBuilder:
    def __init__(self, config: "Configuration") -> None:
        self.config = config
        self.logger = get_logger("mapping.registry")

    def build(self, descriptors: Sequence[TypeDescriptor]) -> Dict[int, TypeMapping]:
        arena: Dict[int, TypeMapping] = {}
        by_type: Dict[type, TypeMapping] = {}
        pairs: List[_Pair] = []

        for index, descriptor in enumerate(descriptors):
            if descriptor.type in by_type:
                raise MappingError(f"Type '{descriptor.type_name}' is described more than once.")
            flags = descriptor.flags & ~TypeMappingFlags.ROOT
            mapping = TypeMapping(
                descriptor.type, flags, id=index, arena=arena, name=descriptor.type_name
            )
            arena[index] = mapping
            by_type[descriptor.type] = mapping
            pairs.append((descriptor, mapping))

        self._link(pairs, by_type)
        ordered = sorted(pairs, key=lambda pair: sum(1 for _ in pair[1].ancestors()))

        for descriptor, mapping in ordered:
            self._configure(descriptor, mapping, by_type)
        for _, mapping in ordered:
            mapping.apply_defaults(self.config)
        self._validate(ordered)

        for mapping in arena.values():
            mapping.freeze()
        self.logger.debug("Built mapping registry with %d types", len(arena))
        return arena

    # ------------------------------------------------------------------ #
    def _link(self, pairs: List[_Pair], by_type: Dict[type, TypeMapping]) -> None:
        for descriptor, mapping in pairs:
            kind = descriptor.flags & (TypeMappingFlags.DOCUMENT | TypeMappingFlags.EMBEDDED)
            if kind not in (TypeMappingFlags.DOCUMENT, TypeMappingFlags.EMBEDDED):
                raise IncompatibleFlagsError(
                    mapping.name, "a type must be either a document or an embedded type."
                )
            parent = next(
                (by_type[base] for base in descriptor.type.__mro__[1:] if base in by_type),
                None,
            )
            if parent is None:
                continue
            if parent.is_document_type != mapping.is_document_type:
                raise IncompatibleFlagsError(
                    mapping.name,
                    f"cannot inherit from '{parent.name}' which is a different kind of type.",
                )
            mapping.parent_id = parent.id

        for _, mapping in pairs:
            root = mapping
            for ancestor in mapping.ancestors():
                root = ancestor
            mapping.root_id = root.id
            if root is mapping:
                mapping.flags |= TypeMappingFlags.ROOT

    def _configure(
        self,
        descriptor: TypeDescriptor,
        mapping: TypeMapping,
        by_type: Dict[type, TypeMapping],
    ) -> None:
        self._check_flags(descriptor, mapping)

        mapping.collection_name = descriptor.collection_name
        mapping.database_name = descriptor.database_name
        mapping.discriminator_field = descriptor.discriminator_field
        mapping.discriminator_value = descriptor.discriminator_value
        mapping.change_tracking = descriptor.change_tracking
        mapping.version_field = descriptor.version_field
        mapping.lock_field = descriptor.lock_field
        mapping.lockable = descriptor.lockable
        # Immutable documents are never updated, so a version is meaningless.
        mapping.versioned = descriptor.versioned and not mapping.is_immutable

        for prop in descriptor.properties:
            mapping.add_property(self._build_property(prop, mapping, by_type))
            if (prop.index or prop.unique) and not prop.flags & PropertyFlags.IGNORED:
                options = {"unique": True} if prop.unique else {}
                mapping.add_index(Index([(prop.field or prop.name, 1)], options))

        for index in descriptor.indexes:
            mapping.add_index(index)

    def _check_flags(self, descriptor: TypeDescriptor, mapping: TypeMapping) -> None:
        name = mapping.name
        if mapping.is_immutable and descriptor.change_tracking is not None:
            raise IncompatibleFlagsError(name, "Change tracking cannot be set on immutable entity.")

        if mapping.is_embedded_type:
            if descriptor.versioned or descriptor.lockable:
                raise IncompatibleFlagsError(name, "embedded types cannot be versioned or lockable.")
            if descriptor.collection_name or descriptor.database_name:
                raise IncompatibleFlagsError(name, "embedded types cannot declare a collection.")

        if not mapping.is_root_type:
            hierarchy_options = {
                "collection": descriptor.collection_name,
                "database": descriptor.database_name,
                "discriminator field": descriptor.discriminator_field,
                "change tracking": descriptor.change_tracking,
                "versioning": descriptor.versioned or descriptor.version_field,
                "locking": descriptor.lockable or descriptor.lock_field,
            }
            declared = [option for option, value in hierarchy_options.items() if value]
            if declared:
                raise IncompatibleFlagsError(
                    name,
                    f"{', '.join(declared)} can only be declared on the inheritance root "
                    f"'{mapping.root_type.name}'.",
                )

    def _build_property(
        self,
        descriptor: PropertyDescriptor,
        mapping: TypeMapping,
        by_type: Dict[type, TypeMapping],
    ) -> PropertyMapping:
        flags = descriptor.flags
        converter: Optional[PropertyConverter] = None
        mapping_id: Optional[int] = None

        if not flags & PropertyFlags.IGNORED:
            if descriptor.target is not None:
                target = by_type.get(descriptor.target)
                if target is None or not target.is_embedded_type:
                    raise UnmappedTypeError(descriptor.target, "is not mapped as an embedded type")
                if descriptor.converter is not None:
                    raise IncompatibleFlagsError(
                        mapping.name,
                        f"property '{descriptor.name}' cannot use both a converter and an embedded type.",
                    )
                mapping_id = target.id
                flags |= PropertyFlags.EMBEDDED
            else:
                try:
                    converter = self.config.converters.resolve(
                        descriptor.converter, descriptor.python_type
                    )
                except UnknownConverterError as exc:
                    raise UnknownConverterError(exc.name, mapping.name, descriptor.name) from None

        prop = PropertyMapping(
            name=descriptor.name,
            field=descriptor.field,
            flags=flags,
            converter=converter,
            mapping_id=mapping_id,
            python_type=descriptor.python_type,
        )
        if prop.is_identifier and prop.field != IDENTITY_FIELD:
            raise IncompatibleFlagsError(
                mapping.name,
                f"identifier property '{prop.name}' must map to the '{IDENTITY_FIELD}' field.",
            )
        return prop

    def _validate(self, ordered: List[_Pair]) -> None:
        collections: Dict[str, str] = {}
        for _, mapping in ordered:
            if not mapping.is_document_type:
                continue
            if mapping.identifier is None:
                raise MissingIdentifierError(mapping.name)
            if not mapping.is_root_type:
                continue
            if not mapping.collection_name:
                raise MissingCollectionNameError(mapping.name)
            key = f"{mapping.database_name or ''}/{mapping.collection_name}"
            if key in collections:
                raise DuplicateCollectionMappingError(key, mapping.name, collections[key])
            collections[key] = mapping.name
