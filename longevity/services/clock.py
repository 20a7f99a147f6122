"""
Clock and timezone provider.

Date keys are always produced by converting an aware instant into the user's
IANA zone with ``zoneinfo``, never by adding hour offsets by hand.
"""

from datetime import UTC, date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from longevity.errors import ValidationError

logger = structlog.get_logger(__name__)


def resolve_timezone(timezone: str | None) -> ZoneInfo:
    """Return the ZoneInfo for ``timezone``, falling back to UTC for unknown or empty names."""
    if not timezone:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone_fallback_to_utc", timezone=timezone)
        return ZoneInfo("UTC")


def validate_timezone(timezone: str) -> str:
    """Reject names that are not IANA zones known to this interpreter."""
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise ValidationError(f"Unknown IANA timezone: {timezone!r}", field="timezone") from e
    return timezone


def day_key(instant: datetime, timezone: str | None) -> str:
    """Calendar day of ``instant`` in ``timezone``; naive instants are taken as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(resolve_timezone(timezone)).date().isoformat()


class Clock(Protocol):
    """Source of "today" as a calendar date key in a given timezone."""

    def today(self, timezone: str | None) -> str: ...


class SystemClock:
    """Wall-clock implementation backed by the current UTC instant."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def today(self, timezone: str | None) -> str:
        return day_key(self.now(), timezone)


class FixedClock:
    """Clock pinned to one instant; used by simulations and tests."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self.instant = instant

    @classmethod
    def on(cls, day: date, hour: int = 12) -> "FixedClock":
        return cls(datetime(day.year, day.month, day.day, hour, tzinfo=UTC))

    def now(self) -> datetime:
        return self.instant

    def today(self, timezone: str | None) -> str:
        return day_key(self.instant, timezone)
