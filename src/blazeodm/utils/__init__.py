"""
Utility helpers shared across BlazeODM packages.
"""

from .logging import configure_logging, get_logger, time_call
from .naming import camel_to_snake, collection_name_for

__all__ = [
    "camel_to_snake",
    "collection_name_for",
    "configure_logging",
    "get_logger",
    "time_call",
]
