"""Shared utilities: datetime and generators."""

from app.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_utc,
    parse_iso_datetime,
    utc_now,
)
from app.shared.utils.generators import generate_cuid, generate_secret

__all__ = [
    "generate_cuid",
    "generate_secret",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "parse_iso_datetime",
]
