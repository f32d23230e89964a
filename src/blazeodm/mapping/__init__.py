"""
Mapping metadata: type and property mappings, converters and the registry.
"""

from .converters import (
    ConverterRegistry,
    DateTimeConverter,
    DecimalConverter,
    EnumConverter,
    PropertyConverter,
    default_converters,
)
from .descriptors import PropertyDescriptor, TypeDescriptor
from .errors import (
    DuplicateCollectionMappingError,
    DuplicateDiscriminatorError,
    DuplicateFieldError,
    IncompatibleFlagsError,
    MappingError,
    MissingCollectionNameError,
    MissingIdentifierError,
    UnknownConverterError,
    UnmappedTypeError,
)
from .flags import ChangeTracking, PropertyFlags, TypeMappingFlags
from .property import PropertyMapping
from .provider import MappingProvider
from .registry import IDENTITY_FIELD, MappingRegistry
from .type_mapping import Index, TypeMapping

__all__ = [
    "ChangeTracking",
    "ConverterRegistry",
    "DateTimeConverter",
    "DecimalConverter",
    "DuplicateCollectionMappingError",
    "DuplicateDiscriminatorError",
    "DuplicateFieldError",
    "EnumConverter",
    "IDENTITY_FIELD",
    "IncompatibleFlagsError",
    "Index",
    "MappingError",
    "MappingProvider",
    "MappingRegistry",
    "MissingCollectionNameError",
    "MissingIdentifierError",
    "PropertyConverter",
    "PropertyDescriptor",
    "PropertyFlags",
    "PropertyMapping",
    "TypeDescriptor",
    "TypeMapping",
    "TypeMappingFlags",
    "UnknownConverterError",
    "UnmappedTypeError",
    "default_converters",
]
