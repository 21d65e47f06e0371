"""Time helpers."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def parse_upstream_datetime(value: str | None) -> dt.datetime | None:
    """Parse an ISO-8601 timestamp from the upstream API into aware UTC.

    Returns ``None`` for missing values. Naive timestamps are assumed to be UTC.
    """
    if not value:
        return None
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC)
