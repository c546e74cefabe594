"""Timezone helpers shared by the scorer and the metric store."""

from datetime import UTC, datetime


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, reading naive values as UTC.

    Args:
        value: Datetime to convert.

    Returns:
        Timezone-aware datetime in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
