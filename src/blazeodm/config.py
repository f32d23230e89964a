"""
Configuration consumed while building mapping metadata and sessions.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from .mapping.converters import ConverterRegistry, default_converters
from .mapping.flags import ChangeTracking

if TYPE_CHECKING:
    from .identity import IdentityGenerator


class ConfigurationError(ValueError):
    """Raised when configuration values cannot be parsed."""


@dataclass
class Configuration:
    """
    Recognized defaults applied to type mappings, plus session-wide options.
    """

    discriminator_field: str = "__t"
    lock_field: str = "__l"
    version_field: str = "__v"
    change_tracking: ChangeTracking = ChangeTracking.DEFERRED_IMPLICIT
    collection_prefix: str = ""
    database_name: Optional[str] = None
    converters: ConverterRegistry = field(default_factory=default_converters)
    identity_generator: Optional["IdentityGenerator"] = None

    @classmethod
    def from_env(cls, prefix: str = "BLAZEODM_", **kwargs: Any) -> "Configuration":
        """
        Build a configuration from ``<prefix>*`` environment variables.

        Recognized names: ``DISCRIMINATOR_FIELD``, ``LOCK_FIELD``,
        ``VERSION_FIELD``, ``CHANGE_TRACKING``, ``COLLECTION_PREFIX`` and
        ``DATABASE``. Keyword arguments win over the environment.
        """

        values: dict[str, Any] = {}
        simple = {
            "DISCRIMINATOR_FIELD": "discriminator_field",
            "LOCK_FIELD": "lock_field",
            "VERSION_FIELD": "version_field",
            "COLLECTION_PREFIX": "collection_prefix",
            "DATABASE": "database_name",
        }
        for suffix, attr in simple.items():
            value = os.getenv(f"{prefix}{suffix}")
            if value is not None:
                values[attr] = value

        tracking = os.getenv(f"{prefix}CHANGE_TRACKING")
        if tracking is not None:
            values["change_tracking"] = _parse_change_tracking(tracking)

        values.update(kwargs)
        return cls(**values)


def _parse_change_tracking(value: str) -> ChangeTracking:
    normalized = value.strip().lower().replace("-", "_")
    for mode in ChangeTracking:
        if normalized in (mode.value, mode.value.split("_", 1)[1]):
            return mode
    raise ConfigurationError(f"Invalid change tracking mode: {value!r}")
