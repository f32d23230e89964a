"""
Document base classes and declarative metadata collection for BlazeODM.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Type

from ..mapping.flags import ChangeTracking
from ..mapping.type_mapping import Index
from .fields import Field, IdentityField


class DocumentDefinitionError(Exception):
    """Raised when a document class is misconfigured."""


@dataclass
class DocumentOptions:
    """
    Container for document metadata calculated by :class:`DocumentMeta`.
    """

    document: Type["BaseDocument"]
    abstract: bool = False
    embedded: bool = False
    fields: "OrderedDict[str, Field]" = field(default_factory=OrderedDict)
    collection: Optional[str] = None
    database: Optional[str] = None
    discriminator_field: Optional[str] = None
    discriminator_value: Optional[str] = None
    change_tracking: Optional[ChangeTracking] = None
    immutable: bool = False
    versioned: bool = False
    version_field: Optional[str] = None
    lockable: bool = False
    lock_field: Optional[str] = None
    indexes: List[Index] = field(default_factory=list)

    def add_field(self, field_obj: Field) -> None:
        name = field_obj.require_name()
        if field_obj.is_identifier:
            current = self.identifier
            if current is not None and current.name != name:
                raise DocumentDefinitionError(
                    f"Multiple identity fields defined on document '{self.document.__name__}'"
                )
        self.fields[name] = field_obj

    @property
    def identifier(self) -> Optional[Field]:
        for field_obj in self.fields.values():
            if field_obj.is_identifier:
                return field_obj
        return None

    def get_field(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError as exc:
            raise KeyError(f"Unknown field '{name}' on document '{self.document.__name__}'") from exc

    def get_fields(self) -> Iterable[Field]:
        return self.fields.values()


_OPTION_NAMES = (
    "collection",
    "database",
    "discriminator_field",
    "discriminator_value",
    "change_tracking",
    "immutable",
    "versioned",
    "version_field",
    "lockable",
    "lock_field",
)


def _normalize_index(value: Any) -> Index:
    if isinstance(value, Index):
        return value
    if isinstance(value, str):
        return Index([(value, 1)])
    return Index([tuple(key) if not isinstance(key, str) else (key, 1) for key in value])


class DocumentMeta(type):
    """
    Metaclass collecting declared fields, inherited fields and ``Meta`` options.
    """

    def __new__(mcls, name: str, bases: tuple[type, ...], attrs: Dict[str, Any]) -> "DocumentMeta":
        # The bare base class carries no metadata.
        if not any(isinstance(base, DocumentMeta) for base in bases):
            return super().__new__(mcls, name, bases, attrs)

        declared_fields: Dict[str, Field] = {}
        for attr_name, value in list(attrs.items()):
            if isinstance(value, Field):
                declared_fields[attr_name] = attrs.pop(attr_name)

        cls = super().__new__(mcls, name, bases, attrs)

        parent_options: Optional[DocumentOptions] = None
        for base in cls.__mro__[1:]:
            if "_meta" in base.__dict__:
                parent_options = base.__dict__["_meta"]
                break

        # Only options declared on this class count; ``Meta`` is not inherited.
        meta = attrs.get("Meta")
        options = DocumentOptions(
            document=cls,
            abstract=bool(getattr(meta, "abstract", False)),
            embedded=bool(getattr(meta, "embedded", parent_options.embedded if parent_options else False)),
        )
        if meta is not None:
            for option in _OPTION_NAMES:
                if hasattr(meta, option):
                    setattr(options, option, getattr(meta, option))
            options.indexes = [_normalize_index(value) for value in getattr(meta, "indexes", ())]
        cls._meta = options

        if parent_options is not None:
            for field_obj in parent_options.get_fields():
                options.add_field(field_obj)

        for attr_name, field_obj in sorted(declared_fields.items(), key=lambda item: item[1].creation_counter):
            field_obj.contribute_to_class(cls, attr_name)
            options.add_field(field_obj)

        if not options.abstract and not options.embedded and options.identifier is None:
            if "id" in options.fields:
                raise DocumentDefinitionError(
                    f"Document '{name}' defines a field named 'id' but no identity field. "
                    "Declare it as IdentityField() or choose a different name."
                )
            identity = IdentityField()
            identity.contribute_to_class(cls, "id")
            options.add_field(identity)
            options.fields.move_to_end("id", last=False)

        if options.embedded:
            if options.identifier is not None:
                raise DocumentDefinitionError(f"Embedded document '{name}' cannot declare an identity field.")

        return cls


class BaseDocument(metaclass=DocumentMeta):
    """
    Data container shared by documents and embedded documents.
    Persistence is handled by a session; instances never talk to a driver.
    """

    _meta: ClassVar[DocumentOptions]

    def __init__(self, **kwargs: Any) -> None:
        unknown = set(kwargs) - set(self._meta.fields)
        if unknown:
            raise TypeError(
                f"{self.__class__.__name__} got unexpected fields: {', '.join(sorted(unknown))}"
            )
        for field_obj in self._meta.get_fields():
            name = field_obj.require_name()
            if name in kwargs:
                setattr(self, name, kwargs[name])
            elif field_obj.has_default:
                setattr(self, name, field_obj.get_default())

    def __repr__(self) -> str:
        parts = ", ".join(
            f"{name}={self.__dict__[name]!r}" for name in self._meta.fields if name in self.__dict__
        )
        return f"<{self.__class__.__name__} {parts}>"

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self._meta.fields}

    @classmethod
    def register_hook(cls, event: str, handler) -> None:
        from ..hooks import hooks

        hooks.register(event, handler, target=cls)


class Document(BaseDocument):
    """
    Base class for documents stored in their own collection.
    """

    class Meta:
        abstract = True

    @property
    def identity(self) -> Any:
        identifier = self._meta.identifier
        if identifier is None:
            raise DocumentDefinitionError(
                f"Document '{self.__class__.__name__}' does not define an identity field."
            )
        return getattr(self, identifier.require_name())


class EmbeddedDocument(BaseDocument):
    """
    Base class for documents nested inside other documents.
    """

    class Meta:
        abstract = True
        embedded = True
