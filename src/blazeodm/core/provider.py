"""
Mapping provider reading declarations from document classes.
"""

from __future__ import annotations

from types import ModuleType
from typing import TYPE_CHECKING, List, Optional, Type

from ..mapping.descriptors import TypeDescriptor
from ..mapping.flags import TypeMappingFlags
from .document import BaseDocument

if TYPE_CHECKING:
    from ..config import Configuration


class DeclarativeMappingProvider:
    """
    Builds type descriptors from :class:`Document` and
    :class:`EmbeddedDocument` subclasses.

    Abstract classes are skipped, but the fields they declare are inherited by
    their concrete subclasses.
    """

    def __init__(self, *classes: Type[BaseDocument]) -> None:
        self._classes: List[Type[BaseDocument]] = []
        self.add_class(*classes)

    def add_class(self, *classes: Type[BaseDocument]) -> None:
        for cls in classes:
            if not (isinstance(cls, type) and issubclass(cls, BaseDocument)) or cls is BaseDocument:
                raise TypeError(f"{cls!r} is not a document class.")
            if cls not in self._classes:
                self._classes.append(cls)

    def add_module(self, module: ModuleType) -> None:
        """
        Register every document class defined in ``module``.
        """
        for value in vars(module).values():
            if (
                isinstance(value, type)
                and issubclass(value, BaseDocument)
                and value.__module__ == module.__name__
                and "_meta" in value.__dict__
            ):
                self.add_class(value)

    @property
    def classes(self) -> List[Type[BaseDocument]]:
        return list(self._classes)

    def get_mapping(self, config: Optional["Configuration"] = None) -> List[TypeDescriptor]:
        return [self.describe(cls) for cls in self._classes if not cls._meta.abstract]

    @staticmethod
    def describe(cls: Type[BaseDocument]) -> TypeDescriptor:
        options = cls._meta
        flags = TypeMappingFlags.EMBEDDED if options.embedded else TypeMappingFlags.DOCUMENT
        if options.immutable:
            flags |= TypeMappingFlags.IMMUTABLE
        return TypeDescriptor(
            type=cls,
            flags=flags,
            properties=[field_obj.describe() for field_obj in options.get_fields()],
            indexes=list(options.indexes),
            collection_name=options.collection,
            database_name=options.database,
            discriminator_field=options.discriminator_field,
            discriminator_value=options.discriminator_value,
            change_tracking=options.change_tracking,
            versioned=options.versioned,
            version_field=options.version_field,
            lockable=options.lockable,
            lock_field=options.lock_field,
        )
