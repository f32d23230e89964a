"""
Mapping provider contract.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Protocol

from .descriptors import TypeDescriptor

if TYPE_CHECKING:
    from ..config import Configuration


class MappingProvider(Protocol):
    """
    Source of schema descriptors. Providers raise on invalid declarations;
    the registry never inspects classes for declarations itself.
    """

    def get_mapping(self, config: "Configuration") -> List[TypeDescriptor]: ...
