"""
Flag sets and enumerations shared by type and property mappings.
"""

from __future__ import annotations

from enum import Enum, Flag, auto


class TypeMappingFlags(Flag):
    NONE = 0
    EMBEDDED = auto()
    DOCUMENT = auto()
    ROOT = auto()
    IMMUTABLE = auto()


class PropertyFlags(Flag):
    NONE = 0
    IGNORED = auto()
    IMMUTABLE = auto()
    BUFFER = auto()
    IDENTIFIER = auto()
    EMBEDDED = auto()
    ARRAY = auto()


class ChangeTracking(Enum):
    """
    How changes to managed documents are discovered at flush time.

    ``DEFERRED_IMPLICIT`` diffs every managed document on flush.
    ``DEFERRED_EXPLICIT`` only diffs documents passed to ``save`` again.
    """

    DEFERRED_IMPLICIT = "deferred_implicit"
    DEFERRED_EXPLICIT = "deferred_explicit"
