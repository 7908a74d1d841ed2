# src/office_chat/db/time.py
"""Timestamp helpers shared by the ORM models and the chat store.

Rows keep timezone-aware datetimes; chat log and presence entries keep
ISO 8601 strings, since they live as JSON in the shared store.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return utcnow().isoformat()


def parse_iso(value: object) -> datetime | None:
    """Parse a stored ISO 8601 timestamp; naive values are taken as UTC.

    Returns None for anything that is not a readable timestamp string,
    including the ``Z`` suffix written by browser clients on older entries.
    """
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
