"""
Errors raised while building or resolving mapping metadata.
"""

from __future__ import annotations

from typing import Any


class MappingError(Exception):
    """Base class for mapping construction and resolution failures."""


class DuplicateFieldError(MappingError):
    """Raised when two properties of a type share a name or document field."""

    def __init__(self, type_name: str, kind: str, value: str) -> None:
        self.type_name = type_name
        self.kind = kind
        self.value = value
        super().__init__(
            f"There is already a mapped property with the {kind} '{value}' on type '{type_name}'."
        )


class DuplicateDiscriminatorError(MappingError):
    """Raised when two types of one hierarchy claim the same discriminator value."""

    def __init__(self, value: str, existing_type: str, new_type: str) -> None:
        self.value = value
        self.existing_type = existing_type
        self.new_type = new_type
        super().__init__(
            f"There is already a class in this inheritance hierarchy with a discriminator "
            f"value of '{value}': '{existing_type}' conflicts with '{new_type}'."
        )


class UnknownConverterError(MappingError):
    def __init__(self, name: str, type_name: str | None = None, property_name: str | None = None) -> None:
        self.name = name
        location = ""
        if type_name and property_name:
            location = f" on property '{property_name}' of type '{type_name}'"
        super().__init__(f"Unknown converter '{name}'{location}.")


class MissingCollectionNameError(MappingError):
    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Missing collection name on mapping for type '{type_name}'.")


class DuplicateCollectionMappingError(MappingError):
    def __init__(self, key: str, type_name: str, existing_type: str) -> None:
        self.key = key
        self.type_name = type_name
        self.existing_type = existing_type
        super().__init__(
            f"Duplicate collection name '{key}' on type '{type_name}' "
            f"(already mapped by '{existing_type}')."
        )


class IncompatibleFlagsError(MappingError):
    """Raised when a mapping combines options that cannot be used together."""

    def __init__(self, type_name: str, detail: str) -> None:
        self.type_name = type_name
        super().__init__(f"Invalid mapping for type '{type_name}': {detail}")


class MissingIdentifierError(MappingError):
    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Document type '{type_name}' does not map an identifier property.")


class UnmappedTypeError(MappingError):
    """Raised when an object or class has no (suitable) type mapping."""

    def __init__(self, target: Any, detail: str = "is not mapped") -> None:
        self.target = target
        name = target.__name__ if isinstance(target, type) else type(target).__name__
        super().__init__(f"Type '{name}' {detail}.")
