"""
Timestamp resolution for dump date fields.

The dump writes every date as a 14-digit UTC token (YYYYMMDDHHMMSS)
or as '-' when the field is unset. Anything else is fatal.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

from kdb_report.domain.errors import TimestampError

UNSET = "-"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"

_TOKEN = re.compile(r"^(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})$", re.ASCII)


def resolve_timestamp(token: str) -> datetime | None:
    """
    Convert a dump date token into an aware UTC datetime.

    Returns None for the unset marker '-'.
    Raises TimestampError for any other shape, and for 14 digits that do
    not name a real calendar instant (month 13, February 30th, ...).
    """
    if token == UNSET:
        return None
    match = _TOKEN.match(token)
    if match is None:
        raise TimestampError(f"Malformed timestamp: {token!r}", offending=token)
    year, month, day, hour, minute, second = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=UTC)
    except ValueError as e:
        raise TimestampError(
            f"Malformed timestamp: {token!r} ({e})", offending=token
        ) from e


def format_timestamp(instant: datetime) -> str:
    """Render an instant for human-readable report output."""
    return instant.astimezone(UTC).strftime(DISPLAY_FORMAT)
