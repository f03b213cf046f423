"""RFC 3339 helpers used by Wait and Choice states."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return utcnow().isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware ``datetime``.

    Raises:
        ValueError: If ``value`` is not a string with a date, time and offset.
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {value!r}")
    text = value.strip()
    if "T" not in text and "t" not in text:
        raise ValueError(f"Invalid timestamp {value!r}")
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp {value!r} has no UTC offset")
    return parsed


def is_timestamp(value: Any) -> bool:
    try:
        parse_timestamp(value)
    except ValueError:
        return False
    return True
