"""
Calendar-day streak calculation.

Gaps are measured between date keys already expressed in the user's
timezone, so DST transitions and late-night check-ins never stretch or
shrink a day.
"""

from dataclasses import dataclass
from datetime import date

import structlog

from longevity.domain.models import DeltaClass, StreakCounters
from longevity.errors import AnomalyWarning, ValidationError

logger = structlog.get_logger(__name__)

DEFAULT_EPSILON = 1e-4


@dataclass(frozen=True)
class StreakUpdate:
    """Next counters plus the anomaly that preserved the previous ones, if any."""

    counters: StreakCounters
    gap_days: int | None
    anomaly: AnomalyWarning | None = None


def _to_day(date_key: str, field: str) -> date:
    try:
        return date.fromisoformat(date_key)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date key: {date_key!r}", field=field) from e


def days_between(date_key_a: str, date_key_b: str, timezone: str = "UTC") -> int:
    """
    Calendar days from ``date_key_a`` to ``date_key_b`` (positive when b is later).

    Both keys are already calendar days in ``timezone``; the difference is pure
    date arithmetic and never depends on wall-clock offsets.
    """
    return (_to_day(date_key_b, "today_date_key") - _to_day(date_key_a, "last_check_in")).days


def classify_delta(delta_years: float, epsilon: float = DEFAULT_EPSILON) -> DeltaClass:
    if delta_years < -epsilon:
        return DeltaClass.REJUVENATION
    if delta_years > epsilon:
        return DeltaClass.ACCELERATION
    return DeltaClass.NEUTRAL


def _fresh_start(counters: StreakCounters, direction: DeltaClass) -> StreakCounters:
    return StreakCounters(
        rejuvenation_streak_days=1 if direction is DeltaClass.REJUVENATION else 0,
        acceleration_streak_days=1 if direction is DeltaClass.ACCELERATION else 0,
        total_rejuvenation_days=counters.total_rejuvenation_days
        + (1 if direction is DeltaClass.REJUVENATION else 0),
        total_acceleration_days=counters.total_acceleration_days
        + (1 if direction is DeltaClass.ACCELERATION else 0),
    )


def _continue(counters: StreakCounters, direction: DeltaClass) -> StreakCounters:
    if direction is DeltaClass.REJUVENATION:
        return StreakCounters(
            rejuvenation_streak_days=counters.rejuvenation_streak_days + 1,
            acceleration_streak_days=0,
            total_rejuvenation_days=counters.total_rejuvenation_days + 1,
            total_acceleration_days=counters.total_acceleration_days,
        )
    if direction is DeltaClass.ACCELERATION:
        return StreakCounters(
            rejuvenation_streak_days=0,
            acceleration_streak_days=counters.acceleration_streak_days + 1,
            total_rejuvenation_days=counters.total_rejuvenation_days,
            total_acceleration_days=counters.total_acceleration_days + 1,
        )
    return StreakCounters(
        rejuvenation_streak_days=0,
        acceleration_streak_days=0,
        total_rejuvenation_days=counters.total_rejuvenation_days,
        total_acceleration_days=counters.total_acceleration_days,
    )


def calculate_streaks(
    last_check_in_date_key: str | None,
    today_date_key: str,
    counters: StreakCounters,
    delta_years: float,
    timezone: str = "UTC",
    epsilon: float = DEFAULT_EPSILON,
) -> StreakUpdate:
    """
    Advance streak counters by one check-in.

    - no prior check-in, or a gap of 2+ days: start fresh (1 or 0)
    - gap of exactly 1 day: extend the matching streak, reset the other
    - gap of 0 or negative: keep counters unchanged and report an anomaly
    """
    direction = classify_delta(delta_years, epsilon)

    if last_check_in_date_key is None:
        _to_day(today_date_key, "today_date_key")
        return StreakUpdate(counters=_fresh_start(counters, direction), gap_days=None)

    gap = days_between(last_check_in_date_key, today_date_key, timezone)

    if gap == 1:
        return StreakUpdate(counters=_continue(counters, direction), gap_days=gap)

    if gap >= 2:
        return StreakUpdate(counters=_fresh_start(counters, direction), gap_days=gap)

    kind = "same_day_reentry" if gap == 0 else "clock_skew"
    anomaly = AnomalyWarning(
        kind,
        {
            "last_check_in_date_key": last_check_in_date_key,
            "today_date_key": today_date_key,
            "gap_days": gap,
            "timezone": timezone,
        },
    )
    logger.warning("streak_anomaly", kind=kind, gap_days=gap, today_date_key=today_date_key)
    return StreakUpdate(counters=counters, gap_days=gap, anomaly=anomaly)
