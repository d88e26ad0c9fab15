"""Shared utilities: datetime and generators."""

from objectstore.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_utc,
    parse_datetime,
    utc_now,
)
from objectstore.shared.utils.generators import generate_cuid, generate_name

__all__ = [
    "generate_cuid",
    "generate_name",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "parse_datetime",
]
