"""
Declarative building blocks for BlazeODM documents.
"""

from .document import (
    BaseDocument,
    Document,
    DocumentDefinitionError,
    DocumentMeta,
    DocumentOptions,
    EmbeddedDocument,
)
from .fields import (
    BinaryField,
    BooleanField,
    DateTimeField,
    EmbeddedField,
    EnumField,
    Field,
    FloatField,
    IdentityField,
    IntegerField,
    ListField,
    StringField,
)
from .provider import DeclarativeMappingProvider

__all__ = [
    "BaseDocument",
    "BinaryField",
    "BooleanField",
    "DateTimeField",
    "DeclarativeMappingProvider",
    "Document",
    "DocumentDefinitionError",
    "DocumentMeta",
    "DocumentOptions",
    "EmbeddedDocument",
    "EmbeddedField",
    "EnumField",
    "Field",
    "FloatField",
    "IdentityField",
    "IntegerField",
    "ListField",
    "StringField",
]
