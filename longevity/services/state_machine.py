"""
State machine that advances a user's AgeState by exactly one calendar day.

The running biological age is updated incrementally (previous + delta) and is
never recomputed from history; ``replay_running_sum`` exists so tests and
audits can check that the two agree.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

import structlog

from longevity.domain.models import AgeState, DailyMetrics, Entry
from longevity.errors import DuplicateEntryError
from longevity.services.scoring import DailyScoringPolicy, score_daily_metrics
from longevity.services.streaks import DEFAULT_EPSILON, calculate_streaks

logger = structlog.get_logger(__name__)


def aging_debt(current_biological_age_years: float, chronological_age_years: float) -> float:
    """Signed aging debt: negative means biologically younger than the calendar says."""
    return current_biological_age_years - chronological_age_years


def apply_daily(
    prev_state: AgeState,
    metrics: DailyMetrics,
    *,
    user_id: str,
    timezone: str = "UTC",
    policy: DailyScoringPolicy | None = None,
    epsilon: float = DEFAULT_EPSILON,
    now: datetime | None = None,
) -> tuple[AgeState, Entry]:
    """
    Apply one day's metrics to ``prev_state``.

    A day dated before the last check-in returns ``prev_state`` unchanged and an
    entry with ``applied=False`` carrying the anomaly kind.

    Raises:
        DuplicateEntryError: ``metrics.date_key`` was already applied to this state.
    """
    if prev_state.last_check_in_date_key == metrics.date_key:
        raise DuplicateEntryError(user_id, metrics.date_key)

    result = score_daily_metrics(metrics, policy)
    update = calculate_streaks(
        prev_state.last_check_in_date_key,
        metrics.date_key,
        prev_state.counters,
        result.delta_years,
        timezone=timezone,
        epsilon=epsilon,
    )

    if update.anomaly is not None:
        # Anomalous day: the AgeState is preserved and the entry only records it
        entry = Entry(
            user_id=user_id,
            date_key=metrics.date_key,
            metrics=metrics,
            result=result,
            biological_age_years=prev_state.current_biological_age_years,
            aging_debt_years=prev_state.aging_debt_years,
            rejuvenation_streak_days=prev_state.rejuvenation_streak_days,
            acceleration_streak_days=prev_state.acceleration_streak_days,
            total_rejuvenation_days=prev_state.total_rejuvenation_days,
            total_acceleration_days=prev_state.total_acceleration_days,
            applied=False,
            anomaly=update.anomaly.kind,
            created_at=now or datetime.now(UTC),
        )
        logger.warning(
            "daily_entry_not_applied",
            user_id=user_id,
            date_key=metrics.date_key,
            last_check_in_date_key=prev_state.last_check_in_date_key,
            anomaly=update.anomaly.kind,
        )
        return prev_state, entry

    current = prev_state.current_biological_age_years + result.delta_years
    debt = aging_debt(current, prev_state.chronological_age_years)
    counters = update.counters

    next_state = prev_state.model_copy(
        update={
            "current_biological_age_years": current,
            "aging_debt_years": debt,
            "rejuvenation_streak_days": counters.rejuvenation_streak_days,
            "acceleration_streak_days": counters.acceleration_streak_days,
            "total_rejuvenation_days": counters.total_rejuvenation_days,
            "total_acceleration_days": counters.total_acceleration_days,
            "last_check_in_date_key": metrics.date_key,
        }
    )

    entry = Entry(
        user_id=user_id,
        date_key=metrics.date_key,
        metrics=metrics,
        result=result,
        biological_age_years=current,
        aging_debt_years=debt,
        rejuvenation_streak_days=counters.rejuvenation_streak_days,
        acceleration_streak_days=counters.acceleration_streak_days,
        total_rejuvenation_days=counters.total_rejuvenation_days,
        total_acceleration_days=counters.total_acceleration_days,
        created_at=now or datetime.now(UTC),
    )

    logger.info(
        "daily_entry_applied",
        user_id=user_id,
        date_key=metrics.date_key,
        delta_years=result.delta_years,
        biological_age_years=round(current, 4),
        rejuvenation_streak_days=counters.rejuvenation_streak_days,
        acceleration_streak_days=counters.acceleration_streak_days,
    )
    return next_state, entry


def replay_running_sum(baseline_biological_age_years: float, entries: Iterable[Entry]) -> float:
    """Baseline plus every applied delta, in order; entries left unapplied count as 0."""
    total = baseline_biological_age_years
    for entry in entries:
        total += entry.delta_years
    return total
