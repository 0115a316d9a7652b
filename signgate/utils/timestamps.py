"""ISO-8601 UTC timestamp helpers."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Extended calendar date followed by at least hours and minutes.
_DATE_TIME_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")

_UNITS = (
    ("day", 24 * 60 * 60),
    ("hour", 60 * 60),
    ("minute", 60),
    ("second", 1),
)


def parse_utc(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    A full date-time is required; bare dates and the compact basic format
    are rejected. Naive timestamps are interpreted as UTC. Precision is
    truncated to milliseconds.

    Raises:
        ValueError: If ``value`` is blank or not an ISO-8601 string
    """
    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")
    if not _DATE_TIME_PREFIX.match(text):
        raise ValueError(f"Not an ISO-8601 date-time: {value!r}")

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    else:
        parsed = parsed.astimezone(UTC)

    return parsed.replace(microsecond=(parsed.microsecond // 1000) * 1000)


def format_utc(value: datetime) -> str:
    """Serialize ``value`` as ISO-8601 UTC with a ``Z`` suffix.

    Sub-millisecond precision is dropped. Milliseconds are included only when
    non-zero.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    value = value.replace(microsecond=(value.microsecond // 1000) * 1000)
    timespec = "milliseconds" if value.microsecond else "seconds"
    return value.isoformat(timespec=timespec).replace("+00:00", "Z")


def to_epoch_millis(value: datetime) -> int:
    """Return milliseconds since the Unix epoch for an aware datetime."""
    return (value - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    """Inverse of :func:`to_epoch_millis`."""
    return _EPOCH + timedelta(milliseconds=millis)


def humanize_duration(seconds: int) -> str:
    """Render a duration such as ``7200`` as ``"2 hours"``."""
    if seconds <= 0:
        return "0 seconds"

    parts: list[str] = []
    remaining = seconds
    for name, size in _UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count} {name}" + ("" if count == 1 else "s"))
    return " ".join(parts)
