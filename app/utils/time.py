"""
Timestamps
==========
Every stored timestamp is an aware UTC datetime written with ``isoformat()``,
so that text ordering in SQLite matches time ordering.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    """Current UTC time for ``created_at``/``updated_at`` columns."""
    return utc_now().isoformat()


def coerce_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 string, ``date`` or ``datetime`` into aware UTC.

    Naive values are taken to be UTC; a bare date means midnight. Returns
    ``None`` for anything unparseable so callers can raise their own
    validation error.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text[-1] in "zZ":
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
