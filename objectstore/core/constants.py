"""Store-wide constants (types, built-in schema, limits)."""

from typing import Any

# Type of entities that group others and carry no payload.
DIRECTORY_TYPE = "inode/directory"

# Field names every record carries.
FIELD_TYPE = "type"
FIELD_NAME = "name"
FIELD_DIR = "dir"
FIELD_DATA = "data"

# Leading bytes handed to the content sniffer (filetype inspects up to 8192).
DEFAULT_SNIFF_BYTES = 8192

MIN_SECRET_LENGTH = 16

# Built-in schema for file-like records; Model schemas are layered on top.
FILE_SCHEMA: dict[str, dict[str, Any]] = {
    FIELD_NAME: {"type": "text", "trim": True},
    FIELD_DIR: {"type": "text", "trim": True},
    FIELD_TYPE: {"type": "text", "trim": True, "lowercase": True},
}
