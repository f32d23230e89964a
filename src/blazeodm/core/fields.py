"""
Field definitions and descriptors for BlazeODM documents.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Sequence, Type, Union

from ..mapping.converters import EnumConverter
from ..mapping.descriptors import PropertyDescriptor
from ..mapping.flags import PropertyFlags

if TYPE_CHECKING:
    from .document import BaseDocument


class FieldError(Exception):
    """Internal exception for field configuration issues."""


class Field:
    """
    Base class for document field descriptors.

    Values are stored in the instance ``__dict__`` under the attribute name,
    so instances created without ``__init__`` (as the loader does) work the
    same way as constructed ones.
    """

    _creation_counter = 0
    python_type: Optional[type] = None

    def __init__(
        self,
        *,
        field: Optional[str] = None,
        default: Any = None,
        nullable: bool = True,
        choices: Optional[Sequence[Any]] = None,
        converter: Any = None,
        transient: bool = False,
        immutable: bool = False,
        index: bool = False,
        unique: bool = False,
        help_text: Optional[str] = None,
    ) -> None:
        self.field = field
        self.default = default
        self.nullable = nullable
        self.choices = tuple(choices) if choices is not None else None
        self.converter = converter
        self.transient = transient
        self.immutable = immutable
        self.index = index
        self.unique = unique
        self.help_text = help_text

        self.document: type["BaseDocument"] | None = None
        self.name: str | None = None
        self.creation_counter = Field._creation_counter
        Field._creation_counter += 1

    # Descriptor protocol -------------------------------------------------
    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance.__dict__.get(self.require_name())

    def __set__(self, instance: object, value: Any) -> None:
        name = self.require_name()
        if value is None:
            if not self.nullable:
                raise ValueError(f"Field '{name}' cannot be None")
            instance.__dict__[name] = None
            return

        if self.choices and value not in self.choices:
            raise ValueError(f"Value '{value}' for field '{name}' not in choices {self.choices}")

        instance.__dict__[name] = self.to_python(value)

    # Metadata helpers ----------------------------------------------------
    def contribute_to_class(self, document: type["BaseDocument"], name: str) -> None:
        """
        Attach the field to the document class as a descriptor.
        """
        self.document = document
        self.name = name
        setattr(document, name, self)

    def require_name(self) -> str:
        if self.name is None:
            raise FieldError("Field name is not set.")
        return self.name

    @property
    def is_identifier(self) -> bool:
        return False

    # Conversion ----------------------------------------------------------
    def get_default(self) -> Any:
        if callable(self.default):
            return self.default()
        return self.default

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_python(self, value: Any) -> Any:
        return value

    # Mapping -------------------------------------------------------------
    def property_flags(self) -> PropertyFlags:
        flags = PropertyFlags.NONE
        if self.transient:
            flags |= PropertyFlags.IGNORED
        if self.immutable:
            flags |= PropertyFlags.IMMUTABLE
        return flags

    def describe(self) -> PropertyDescriptor:
        return PropertyDescriptor(
            name=self.require_name(),
            field=None if self.transient else self.field,
            flags=self.property_flags(),
            converter=self.converter,
            python_type=self.python_type,
            index=self.index,
            unique=self.unique,
        )


class IdentityField(Field):
    """
    Identity of a document, stored in the ``_id`` document field.
    """

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("field", "_id")
        kwargs["immutable"] = True
        super().__init__(**kwargs)

    @property
    def is_identifier(self) -> bool:
        return True

    def property_flags(self) -> PropertyFlags:
        return super().property_flags() | PropertyFlags.IDENTIFIER


class StringField(Field):
    python_type = str

    def __init__(self, *, max_length: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.max_length = max_length

    def to_python(self, value: Any) -> str:
        result = str(value)
        if self.max_length and len(result) > self.max_length:
            raise ValueError(
                f"Value for field '{self.name}' exceeds max_length {self.max_length}"
            )
        return result


class IntegerField(Field):
    python_type = int

    def to_python(self, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid integer value '{value}'") from exc


class FloatField(Field):
    python_type = float

    def to_python(self, value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid float value '{value}'") from exc


class BooleanField(Field):
    python_type = bool

    def __init__(self, *, default: Any = False, **kwargs: Any) -> None:
        super().__init__(default=default, **kwargs)

    @property
    def has_default(self) -> bool:
        return True

    def to_python(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in {"true", "t", "1"}:
                return True
            if lowered in {"false", "f", "0"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"Invalid boolean value '{value}'")


class DateTimeField(Field):
    python_type = datetime

    def __init__(self, *, auto_now_add: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.auto_now_add = auto_now_add

    def get_default(self) -> Any:
        if self.auto_now_add:
            return datetime.now(timezone.utc)
        return super().get_default()

    @property
    def has_default(self) -> bool:
        return self.auto_now_add or super().has_default

    def to_python(self, value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        raise ValueError(f"Expected datetime for field '{self.name}', received {value!r}")


class BinaryField(Field):
    python_type = bytes

    def to_python(self, value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise ValueError(f"Expected bytes for field '{self.name}', received {type(value).__name__}")

    def property_flags(self) -> PropertyFlags:
        return super().property_flags() | PropertyFlags.BUFFER


class EnumField(Field):
    def __init__(self, enum_type: Type[Enum], **kwargs: Any) -> None:
        kwargs.setdefault("converter", EnumConverter(enum_type))
        super().__init__(**kwargs)
        self.enum_type = enum_type
        self.python_type = enum_type

    def to_python(self, value: Any) -> Enum:
        if isinstance(value, self.enum_type):
            return value
        return self.enum_type(value)


class EmbeddedField(Field):
    """
    Holds a single embedded document stored as a nested document.
    """

    def __init__(self, document_type: Type["BaseDocument"], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.document_type = document_type

    def to_python(self, value: Any) -> Any:
        return _check_embedded(self, self.document_type, value)

    def describe(self) -> PropertyDescriptor:
        descriptor = super().describe()
        descriptor.target = self.document_type
        return descriptor


class ListField(Field):
    """
    Holds a list of scalar values or of embedded documents.

    ``item`` is either a field instance describing the elements (its
    converter is applied per element) or an embedded document class.
    """

    def __init__(self, item: Union[Field, Type["BaseDocument"], None] = None, **kwargs: Any) -> None:
        if isinstance(item, Field) and "converter" not in kwargs:
            kwargs["converter"] = item.converter
        super().__init__(**kwargs)
        self.item = item

    @property
    def has_default(self) -> bool:
        return True

    def get_default(self) -> Any:
        if self.default is None:
            return []
        return super().get_default()

    def to_python(self, value: Any) -> list:
        if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
            raise ValueError(f"Expected a list for field '{self.name}', received {type(value).__name__}")
        if isinstance(self.item, Field):
            return [self.item.to_python(element) for element in value]
        if self.item is not None:
            return [_check_embedded(self, self.item, element) for element in value]
        return list(value)

    def property_flags(self) -> PropertyFlags:
        return super().property_flags() | PropertyFlags.ARRAY

    def describe(self) -> PropertyDescriptor:
        descriptor = super().describe()
        if isinstance(self.item, Field):
            descriptor.python_type = self.item.python_type
        elif self.item is not None:
            descriptor.target = self.item
        return descriptor


def _check_embedded(field_obj: Field, document_type: type, value: Any) -> Any:
    # Embedded values are stored without a discriminator.
    if type(value) is not document_type:
        raise ValueError(
            f"Expected {document_type.__name__} for field '{field_obj.name}', "
            f"received {type(value).__name__}"
        )
    return value
