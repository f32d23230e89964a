"""
Naming utilities for BlazeODM.
"""

import re


_FIRST_CAP_RE = re.compile("(.)([A-Z][a-z]+)")
_ALL_CAP_RE = re.compile("([a-z0-9])([A-Z])")


def camel_to_snake(name: str) -> str:
    """
    Convert ``CamelCase`` type names to ``snake_case`` collection names.
    """
    step1 = _FIRST_CAP_RE.sub(r"\1_\2", name)
    return _ALL_CAP_RE.sub(r"\1_\2", step1).lower()


def collection_name_for(type_name: str, prefix: str = "") -> str:
    """
    Resolve the default collection name for a type, applying ``prefix``.
    """
    return f"{prefix}{camel_to_snake(type_name)}"
