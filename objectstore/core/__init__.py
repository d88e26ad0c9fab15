"""Core: configuration and constants."""

from objectstore.core.config import Settings, get_settings
from objectstore.core.constants import DIRECTORY_TYPE, FILE_SCHEMA

__all__ = [
    "DIRECTORY_TYPE",
    "FILE_SCHEMA",
    "Settings",
    "get_settings",
]
