"""Shared fixtures for engine tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date, timedelta

import pytest

from longevity.domain.models import (
    AgeState,
    DailyMetrics,
    Entry,
    OnboardingAnswers,
    ScoreResult,
)


class FixedDeltaPolicy:
    """Scoring policy double that returns a preset delta per date key."""

    def __init__(self, deltas: Mapping[str, float], default: float = 0.0) -> None:
        self.deltas = dict(deltas)
        self.default = default
        self.calls: list[str] = []

    def score(self, metrics: DailyMetrics) -> ScoreResult:
        self.calls.append(metrics.date_key)
        delta = self.deltas.get(metrics.date_key, self.default)
        return ScoreResult(score=-delta / 0.03, delta_years=delta, reasons=("fixed",))


@pytest.fixture
def fixed_delta_policy() -> Callable[..., FixedDeltaPolicy]:
    return FixedDeltaPolicy


@pytest.fixture
def best_answers() -> OnboardingAnswers:
    return OnboardingAnswers(
        activity=1,
        smoking_alcohol=1,
        metabolic_health=1,
        energy_focus=1,
        visceral_fat=1,
        sleep=1,
        stress=1,
        muscle=1,
        nutrition_pattern=1,
        sugar=1,
    )


@pytest.fixture
def worst_answers() -> OnboardingAnswers:
    return OnboardingAnswers(
        activity=-1,
        smoking_alcohol=-1,
        metabolic_health=-1,
        energy_focus=-1,
        visceral_fat=-1,
        sleep=-1,
        stress=-1,
        muscle=-1,
        nutrition_pattern=-1,
        sugar=-1,
    )


@pytest.fixture
def baseline_state() -> AgeState:
    """Freshly onboarded 40-year-old with no offset."""
    return AgeState(
        chronological_age_years=40.0,
        baseline_biological_age_years=40.0,
        current_biological_age_years=40.0,
        aging_debt_years=0.0,
    )


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    """Factory for entries with a given date, resulting age and delta."""

    def _make(date_key: str, biological_age_years: float, delta_years: float = 0.0) -> Entry:
        return Entry(
            user_id="user-1",
            date_key=date_key,
            metrics=DailyMetrics(date_key=date_key),
            result=ScoreResult(score=0.0, delta_years=delta_years, reasons=()),
            biological_age_years=biological_age_years,
            aging_debt_years=biological_age_years - 40.0,
            rejuvenation_streak_days=0,
            acceleration_streak_days=0,
            total_rejuvenation_days=0,
            total_acceleration_days=0,
        )

    return _make


@pytest.fixture
def consecutive_days() -> Callable[[date, int], list[str]]:
    def _days(start: date, count: int) -> list[str]:
        return [(start + timedelta(days=i)).isoformat() for i in range(count)]

    return _days
