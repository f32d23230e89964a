import enum
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from blazeodm.mapping import (
    ConverterRegistry,
    DateTimeConverter,
    DecimalConverter,
    EnumConverter,
    PropertyFlags,
    PropertyMapping,
    UnknownConverterError,
    default_converters,
)


class Color(enum.Enum):
    RED = "red"
    BLUE = "blue"


class UpperConverter:
    def to_field(self, value):
        return value.upper()

    def to_property(self, field):
        return field.lower()

    def equals(self, a, b):
        return a.lower() == b.lower()


def test_enum_converter_stores_values():
    converter = EnumConverter(Color)
    assert converter.to_field(Color.RED) == "red"
    assert converter.to_field("blue") == "blue"
    assert converter.to_property("red") is Color.RED


def test_datetime_converter_normalizes_to_utc():
    converter = DateTimeConverter()
    local = datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    stored = converter.to_field(local)
    assert stored == "2024-05-01T12:00:00+00:00"
    assert converter.to_property(stored) == local
    assert converter.equals(stored, "2024-05-01T14:00:00+02:00")


def test_decimal_converter_compares_numerically():
    converter = DecimalConverter()
    assert converter.to_field(Decimal("1.50")) == "1.50"
    assert converter.to_property("1.50") == Decimal("1.5")
    assert converter.equals("1.50", "1.5")


def test_registry_resolves_by_name_instance_class_and_type():
    registry = default_converters()
    custom = UpperConverter()
    registry.register("upper", custom)

    assert registry.resolve("upper") is custom
    assert registry.resolve(custom) is custom
    assert isinstance(registry.resolve(UpperConverter), UpperConverter)
    assert isinstance(registry.resolve(None, datetime), DateTimeConverter)
    assert registry.resolve(None, str) is None


def test_registry_type_lookup_walks_mro():
    class Money(Decimal):
        pass

    registry = default_converters()
    assert isinstance(registry.for_type(Money), DecimalConverter)


def test_unknown_converter_name_raises():
    with pytest.raises(UnknownConverterError):
        ConverterRegistry().get("missing")


def test_copy_is_independent():
    registry = default_converters()
    cloned = registry.copy()
    cloned.register("upper", UpperConverter())

    assert "upper" in cloned
    assert "upper" not in registry


def test_property_values_equal_uses_converter_per_element():
    prop = PropertyMapping(name="tags", field="tags", flags=PropertyFlags.ARRAY, converter=UpperConverter())

    assert prop.values_equal(["A", "b"], ["a", "B"])
    assert not prop.values_equal(["A"], ["A", "B"])
