"""
Tests for the daily state machine.

Covers duplicate rejection, incremental running sum, streak bookkeeping and
the signed aging debt.
"""

from collections.abc import Callable
from datetime import date

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from longevity.domain.models import AgeState, DailyMetrics, Entry
from longevity.errors import DuplicateEntryError
from longevity.services.state_machine import aging_debt, apply_daily, replay_running_sum
from longevity.services.trends import analyze_trend


def _run(
    state: AgeState, days: list[str], policy: object
) -> tuple[AgeState, list[Entry]]:
    entries = []
    for day in days:
        state, entry = apply_daily(
            state, DailyMetrics(date_key=day), user_id="user-1", policy=policy
        )
        entries.append(entry)
    return state, entries


def test_documented_three_day_sequence(
    baseline_state: AgeState, fixed_delta_policy: Callable
) -> None:
    policy = fixed_delta_policy(
        {"2026-10-01": -0.05, "2026-10-02": -0.03, "2026-10-03": 0.02}
    )

    state, entries = _run(baseline_state, ["2026-10-01", "2026-10-02", "2026-10-03"], policy)

    assert [e.biological_age_years for e in entries] == pytest.approx([39.95, 39.92, 39.94])
    assert [e.rejuvenation_streak_days for e in entries] == [1, 2, 0]
    assert [e.acceleration_streak_days for e in entries] == [0, 0, 1]
    assert state.total_rejuvenation_days == 2
    assert state.total_acceleration_days == 1
    assert state.current_biological_age_years == pytest.approx(39.94)
    assert state.aging_debt_years == pytest.approx(-0.06)
    assert state.last_check_in_date_key == "2026-10-03"


def test_duplicate_date_rejected(baseline_state: AgeState, fixed_delta_policy: Callable) -> None:
    policy = fixed_delta_policy({}, default=-0.05)
    state, _ = _run(baseline_state, ["2026-10-01"], policy)

    with pytest.raises(DuplicateEntryError) as excinfo:
        apply_daily(state, DailyMetrics(date_key="2026-10-01"), user_id="user-1", policy=policy)

    assert excinfo.value.date_key == "2026-10-01"
    assert policy.calls == ["2026-10-01"]


def test_missed_day_resets_streak_to_one(
    baseline_state: AgeState, fixed_delta_policy: Callable
) -> None:
    policy = fixed_delta_policy({}, default=-0.05)

    state, entries = _run(baseline_state, ["2026-10-01", "2026-10-02", "2026-10-04"], policy)

    assert [e.rejuvenation_streak_days for e in entries] == [1, 2, 1]
    assert state.total_rejuvenation_days == 3


def test_clock_skew_preserves_prior_state(
    baseline_state: AgeState, fixed_delta_policy: Callable
) -> None:
    policy = fixed_delta_policy({}, default=-0.05)
    before, applied = _run(baseline_state, ["2026-10-04", "2026-10-05"], policy)

    after, entry = apply_daily(
        before, DailyMetrics(date_key="2026-10-03"), user_id="user-1", policy=policy
    )

    assert after == before
    assert entry.applied is False
    assert entry.anomaly == "clock_skew"
    assert entry.delta_years == 0.0
    assert entry.result.delta_years == pytest.approx(-0.05)
    assert entry.biological_age_years == pytest.approx(39.9)
    assert entry.rejuvenation_streak_days == 2

    history = [*applied, entry]
    assert replay_running_sum(40.0, history) == pytest.approx(after.current_biological_age_years)
    weekly = analyze_trend(history, 7)
    assert weekly.value == pytest.approx(-0.05)
    assert [p.date_key for p in weekly.points] == ["2026-10-04", "2026-10-05"]


def test_aging_debt_is_signed(baseline_state: AgeState, fixed_delta_policy: Callable) -> None:
    policy = fixed_delta_policy({}, default=0.3)

    state, _ = _run(baseline_state, ["2026-10-01", "2026-10-02"], policy)

    assert state.aging_debt_years == pytest.approx(0.6)
    assert aging_debt(38.5, 40.0) == pytest.approx(-1.5)


def test_default_policy_scores_metrics(baseline_state: AgeState) -> None:
    metrics = DailyMetrics(
        date_key="2026-10-01",
        sleep_hours=8,
        steps=12_000,
        vigorous_minutes=45,
        processed_food_score=1,
        alcohol_units=0,
        stress_level=2,
        bedtime_hour=22,
    )

    state, entry = apply_daily(baseline_state, metrics, user_id="user-1")

    assert entry.delta_years == pytest.approx(-0.27)
    assert state.current_biological_age_years == pytest.approx(39.73)
    assert entry.metrics == metrics


def test_previous_state_is_untouched(
    baseline_state: AgeState, fixed_delta_policy: Callable
) -> None:
    _run(baseline_state, ["2026-10-01"], fixed_delta_policy({}, default=-0.1))

    assert baseline_state.current_biological_age_years == 40.0
    assert baseline_state.last_check_in_date_key is None


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(deltas=st.lists(st.floats(min_value=-0.3, max_value=0.3), min_size=1, max_size=60))
def test_running_sum_matches_replay(fixed_delta_policy: Callable, deltas: list[float]) -> None:
    start = date(2026, 1, 1).toordinal()
    days = [date.fromordinal(start + i).isoformat() for i in range(len(deltas))]
    baseline = AgeState(
        chronological_age_years=40.0,
        baseline_biological_age_years=38.0,
        current_biological_age_years=38.0,
        aging_debt_years=-2.0,
    )

    state, entries = _run(baseline, days, fixed_delta_policy(dict(zip(days, deltas))))

    assert state.current_biological_age_years == pytest.approx(
        replay_running_sum(38.0, entries), abs=1e-9
    )
    assert state.aging_debt_years == pytest.approx(
        state.current_biological_age_years - 40.0, abs=1e-9
    )
