"""
Property converters translating between object values and document fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol, Type

from .errors import UnknownConverterError


class PropertyConverter(Protocol):
    def to_field(self, value: Any) -> Any: ...

    def to_property(self, field: Any) -> Any: ...

    def equals(self, a: Any, b: Any) -> bool: ...


class EnumConverter:
    """
    Stores enum members by value.
    """

    def __init__(self, enum_type: Type[Enum]) -> None:
        self.enum_type = enum_type

    def to_field(self, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, self.enum_type):
            value = self.enum_type(value)
        return value.value

    def to_property(self, field: Any) -> Any:
        if field is None:
            return None
        return self.enum_type(field)

    def equals(self, a: Any, b: Any) -> bool:
        return a == b


class DateTimeConverter:
    """
    Stores datetimes as ISO-8601 strings normalized to UTC.
    """

    def to_field(self, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, datetime):
            raise ValueError(f"Expected datetime, received {value!r}")
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    def to_property(self, field: Any) -> Any:
        if field is None or isinstance(field, datetime):
            return field
        return datetime.fromisoformat(field)

    def equals(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        return self.to_property(a) == self.to_property(b)


class DecimalConverter:
    def to_field(self, value: Any) -> Any:
        if value is None:
            return None
        return str(Decimal(value))

    def to_property(self, field: Any) -> Any:
        if field is None:
            return None
        return Decimal(field)

    def equals(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        return Decimal(a) == Decimal(b)


class ConverterRegistry:
    """
    Name-to-converter table with optional association by python type.
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, PropertyConverter] = {}
        self._by_type: Dict[type, PropertyConverter] = {}

    def register(
        self,
        name: str,
        converter: PropertyConverter,
        *,
        types: Iterable[type] = (),
    ) -> None:
        self._by_name[name] = converter
        for python_type in types:
            self._by_type[python_type] = converter

    def get(self, name: str) -> PropertyConverter:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownConverterError(name) from None

    def for_type(self, python_type: Optional[type]) -> Optional[PropertyConverter]:
        if python_type is None:
            return None
        for candidate in getattr(python_type, "__mro__", (python_type,)):
            converter = self._by_type.get(candidate)
            if converter is not None:
                return converter
        return None

    def resolve(self, reference: Any, declared_type: Optional[type] = None) -> Optional[PropertyConverter]:
        """
        Resolve a converter given by name, instance or class, or by the
        declared python type of the property. Returns ``None`` when nothing
        applies.
        """
        if isinstance(reference, str):
            return self.get(reference)
        if isinstance(reference, type):
            return reference()
        if reference is not None:
            return reference
        return self.for_type(declared_type)

    def copy(self) -> "ConverterRegistry":
        cloned = ConverterRegistry()
        cloned._by_name = dict(self._by_name)
        cloned._by_type = dict(self._by_type)
        return cloned

    def __contains__(self, name: str) -> bool:
        return name in self._by_name


def default_converters() -> ConverterRegistry:
    registry = ConverterRegistry()
    registry.register("datetime", DateTimeConverter(), types=(datetime,))
    registry.register("decimal", DecimalConverter(), types=(Decimal,))
    return registry
