"""Shared utilities: telemetry and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from objectstore.shared.telemetry import get_logger, setup_logging
from objectstore.shared.utils import (
    ensure_utc,
    from_timestamp_utc,
    generate_cuid,
    generate_name,
    parse_datetime,
    utc_now,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "generate_cuid",
    "generate_name",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "parse_datetime",
]
