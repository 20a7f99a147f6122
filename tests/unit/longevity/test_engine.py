"""
End-to-end tests for the engine service against in-memory stores.

Covers onboarding, the check-in pipeline, duplicate and concurrency handling,
timezone-aware "today" and the read views.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from longevity.config import AppConfig
from longevity.domain.models import (
    AgeState,
    DailyMetrics,
    Entry,
    OnboardingAnswers,
    TrendRange,
    UserProfile,
)
from longevity.errors import DuplicateEntryError, NotFoundError, ValidationError
from longevity.services.clock import FixedClock
from longevity.services.engine import LongevityEngine, parse_range
from longevity.services.state_machine import replay_running_sum
from longevity.storage import InMemoryEntryStore, InMemoryUserProfileStore

USER = "user-1"


@pytest.fixture
def clock() -> FixedClock:
    # 22:30 UTC is already the next day in Istanbul (UTC+3)
    return FixedClock(datetime(2026, 10, 17, 22, 30, tzinfo=UTC))


@pytest.fixture
def engine_factory(clock: FixedClock) -> Callable[..., LongevityEngine]:
    def _build(policy: object = None) -> LongevityEngine:
        return LongevityEngine(
            InMemoryEntryStore(),
            InMemoryUserProfileStore(),
            clock=clock,
            config=AppConfig(),
            policy=policy,
        )

    return _build


@pytest.fixture
def engine(engine_factory: Callable[..., LongevityEngine]) -> LongevityEngine:
    return engine_factory()


@pytest.mark.asyncio
async def test_onboard_creates_profile_and_state(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    profile, result = await engine.onboard(USER, best_answers, 40, timezone="Europe/Istanbul")

    state = await engine.get_state(USER)
    assert profile.timezone == "Europe/Istanbul"
    assert result.baseline_biological_age_years == pytest.approx(32.0)
    assert state.current_biological_age_years == pytest.approx(32.0)
    assert state.aging_debt_years == pytest.approx(-8.0)
    assert state.last_check_in_date_key is None


@pytest.mark.asyncio
async def test_onboard_from_date_of_birth(
    engine: LongevityEngine, worst_answers: OnboardingAnswers
) -> None:
    profile, result = await engine.onboard(
        USER, worst_answers, date_of_birth=date(1986, 10, 19), timezone="Europe/Istanbul"
    )

    # Istanbul is on 2026-10-18, one day before the 40th birthday
    assert profile.state.chronological_age_years == 39.0
    assert result.baseline_biological_age_years == pytest.approx(47.0)
    assert profile.date_of_birth == date(1986, 10, 19)


@pytest.mark.asyncio
async def test_onboard_requires_age_or_birth_date(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    with pytest.raises(ValidationError):
        await engine.onboard(USER, best_answers)


@pytest.mark.asyncio
async def test_onboard_rejects_unknown_timezone(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        await engine.onboard(USER, best_answers, 40, timezone="Mars/Base")
    assert excinfo.value.field == "timezone"


@pytest.mark.asyncio
async def test_reonboarding_only_before_first_check_in(
    engine: LongevityEngine,
    best_answers: OnboardingAnswers,
    worst_answers: OnboardingAnswers,
) -> None:
    first, _ = await engine.onboard(USER, best_answers, 40)
    second, _ = await engine.onboard(USER, worst_answers, 40)

    assert second.created_at == first.created_at
    assert second.state.baseline_biological_age_years == pytest.approx(48.0)

    await engine.check_in(USER, DailyMetrics(date_key="2026-10-17"))

    with pytest.raises(ValidationError):
        await engine.onboard(USER, best_answers, 40)


@pytest.mark.asyncio
async def test_check_in_before_onboarding(engine: LongevityEngine) -> None:
    with pytest.raises(NotFoundError):
        await engine.check_in(USER, DailyMetrics(date_key="2026-10-17"))

    with pytest.raises(NotFoundError):
        await engine.trend(USER, "weekly")


@pytest.mark.asyncio
async def test_check_in_sequence(
    engine_factory: Callable[..., LongevityEngine],
    fixed_delta_policy: Callable,
    best_answers: OnboardingAnswers,
) -> None:
    policy = fixed_delta_policy({"2026-10-01": -0.05, "2026-10-02": -0.03, "2026-10-03": 0.02})
    engine = engine_factory(policy)
    await engine.onboard(USER, best_answers, 40)

    for day in ("2026-10-01", "2026-10-02", "2026-10-03"):
        state, _ = await engine.check_in(USER, DailyMetrics(date_key=day))

    assert state.current_biological_age_years == pytest.approx(31.94)
    assert state.acceleration_streak_days == 1
    assert state.total_rejuvenation_days == 2
    assert (await engine.get_state(USER)) == state
    assert [e.date_key for e in await engine.entries(USER)] == [
        "2026-10-01",
        "2026-10-02",
        "2026-10-03",
    ]


@pytest.mark.asyncio
async def test_duplicate_check_in_leaves_state_unchanged(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    await engine.onboard(USER, best_answers, 40)
    state, _ = await engine.check_in(USER, DailyMetrics(date_key="2026-10-17", sleep_hours=8))

    with pytest.raises(DuplicateEntryError):
        await engine.check_in(USER, DailyMetrics(date_key="2026-10-17", sleep_hours=4))

    assert (await engine.get_state(USER)) == state
    assert len(await engine.entries(USER)) == 1


@pytest.mark.asyncio
async def test_concurrent_same_day_check_ins_admit_one(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    await engine.onboard(USER, best_answers, 40)
    metrics = DailyMetrics(date_key="2026-10-17", steps=12_000)

    results = await asyncio.gather(
        engine.check_in(USER, metrics),
        engine.check_in(USER, metrics),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, DuplicateEntryError)]
    assert len(successes) == 1
    assert len(failures) == 1

    _, entry = successes[0]
    state = await engine.get_state(USER)
    assert state.current_biological_age_years == pytest.approx(entry.biological_age_years)
    assert len(await engine.entries(USER)) == 1


@pytest.mark.asyncio
async def test_payload_defaults_to_today_in_user_zone(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    await engine.onboard(USER, best_answers, 40, timezone="Europe/Istanbul")

    _, entry = await engine.check_in_payload(
        USER, {"metrics": {"sleepHours": "7.5", "steps": "abc", "lateScreenUsage": True}}
    )

    assert entry.date_key == "2026-10-18"
    assert entry.metrics.sleep_hours == 7.5
    assert entry.metrics.steps == 0.0
    assert entry.metrics.screen_late is True
    today = await engine.today_entry(USER)
    assert today is not None
    assert today.date_key == "2026-10-18"


@pytest.mark.asyncio
async def test_trend_and_delta_views(
    engine_factory: Callable[..., LongevityEngine],
    fixed_delta_policy: Callable,
    best_answers: OnboardingAnswers,
    consecutive_days: Callable,
) -> None:
    engine = engine_factory(fixed_delta_policy({}, default=-0.1))
    await engine.onboard(USER, best_answers, 40)
    for day in consecutive_days(date(2026, 10, 12), 7):
        await engine.check_in(USER, DailyMetrics(date_key=day))

    weekly = await engine.trend(USER, "Weekly")
    view = await engine.deltas(USER, TrendRange.WEEKLY, date(2026, 10, 14))
    yearly = await engine.trend(USER, TrendRange.YEARLY)

    assert weekly.available is True
    assert weekly.value == pytest.approx(-0.6)
    assert [b.value for b in view.buckets] == pytest.approx([0.1] * 7)
    assert view.summary.check_ins == 7
    assert view.summary.rejuvenation_years == pytest.approx(0.7)
    assert view.summary.lifetime_net_delta_years == pytest.approx(8.7)
    assert yearly.projection is False


@pytest.mark.asyncio
async def test_deltas_default_to_today(
    engine_factory: Callable[..., LongevityEngine],
    fixed_delta_policy: Callable,
    best_answers: OnboardingAnswers,
) -> None:
    engine = engine_factory(fixed_delta_policy({}, default=0.02))
    await engine.onboard(USER, best_answers, 40, timezone="Europe/Istanbul")
    await engine.check_in(USER, DailyMetrics(date_key="2026-10-18"))

    view = await engine.deltas(USER, "monthly")

    assert (view.start, view.end) == (date(2026, 10, 1), date(2026, 10, 31))
    october_18 = next(b for b in view.buckets if b.bucket == "2026-10-18")
    assert october_18.value == pytest.approx(-0.02)


def test_parse_range() -> None:
    assert parse_range(" MONTHLY ") is TrendRange.MONTHLY
    with pytest.raises(ValidationError) as excinfo:
        parse_range("hourly")
    assert excinfo.value.field == "range"


@pytest.mark.asyncio
async def test_entries_are_immutable(
    engine: LongevityEngine, best_answers: OnboardingAnswers
) -> None:
    await engine.onboard(USER, best_answers, 40)
    _, entry = await engine.check_in(USER, DailyMetrics(date_key="2026-10-17"))

    with pytest.raises(PydanticValidationError):
        entry.biological_age_years = 0.0  # type: ignore[misc]

    stored: list[Entry] = await engine.entries(USER)
    assert stored[0] == entry


class _FailingOnceProfileStore(InMemoryUserProfileStore):
    """Profile store whose first state write raises."""

    def __init__(self) -> None:
        super().__init__()
        self.failures_left = 1

    async def save_state(self, user_id: str, state: AgeState) -> UserProfile:
        if self.failures_left:
            self.failures_left -= 1
            raise ConnectionError("profile store unavailable")
        return await super().save_state(user_id, state)


@pytest.mark.asyncio
async def test_failed_state_write_rolls_back_entry(
    clock: FixedClock, fixed_delta_policy: Callable, best_answers: OnboardingAnswers
) -> None:
    engine = LongevityEngine(
        InMemoryEntryStore(),
        _FailingOnceProfileStore(),
        clock=clock,
        config=AppConfig(),
        policy=fixed_delta_policy({}, default=-0.05),
    )
    await engine.onboard(USER, best_answers, 40)
    metrics = DailyMetrics(date_key="2026-10-01")

    with pytest.raises(ConnectionError):
        await engine.check_in(USER, metrics)

    assert await engine.entries(USER) == []
    assert (await engine.get_state(USER)).last_check_in_date_key is None

    state, entry = await engine.check_in(USER, metrics)

    assert entry.date_key == "2026-10-01"
    assert state.current_biological_age_years == pytest.approx(31.95)
    assert replay_running_sum(32.0, await engine.entries(USER)) == pytest.approx(
        state.current_biological_age_years
    )


@pytest.mark.asyncio
async def test_back_dated_check_in_is_recorded_but_not_applied(
    engine_factory: Callable[..., LongevityEngine],
    fixed_delta_policy: Callable,
    best_answers: OnboardingAnswers,
) -> None:
    engine = engine_factory(fixed_delta_policy({}, default=-0.05))
    await engine.onboard(USER, best_answers, 40)
    await engine.check_in(USER, DailyMetrics(date_key="2026-10-04"))
    before, _ = await engine.check_in(USER, DailyMetrics(date_key="2026-10-05"))

    after, entry = await engine.check_in(USER, DailyMetrics(date_key="2026-10-03"))

    assert after == before
    assert entry.anomaly == "clock_skew"
    assert entry.applied is False
    weekly = await engine.trend(USER, TrendRange.WEEKLY)
    assert weekly.value == pytest.approx(-0.05)
    with pytest.raises(DuplicateEntryError):
        await engine.check_in(USER, DailyMetrics(date_key="2026-10-03"))


@pytest.mark.asyncio
async def test_trend_reports_points_and_state_summary(
    engine_factory: Callable[..., LongevityEngine],
    fixed_delta_policy: Callable,
    best_answers: OnboardingAnswers,
) -> None:
    engine = engine_factory(fixed_delta_policy({"2026-10-01": -0.06, "2026-10-02": 0.03}))
    await engine.onboard(USER, best_answers, 40)
    await engine.check_in(USER, DailyMetrics(date_key="2026-10-01"))
    await engine.check_in(USER, DailyMetrics(date_key="2026-10-02"))

    weekly = await engine.trend(USER, "weekly")

    assert [(p.delta_years, p.score) for p in weekly.points] == [(-0.06, 2.0), (0.03, -1.0)]
    assert [p.aging_debt_years for p in weekly.points] == pytest.approx([-8.06, -8.03])
    assert weekly.summary is not None
    assert weekly.summary.current_biological_age_years == pytest.approx(31.97)
    assert weekly.summary.aging_debt_years == pytest.approx(-8.03)
    assert weekly.summary.acceleration_streak_days == 1
    assert weekly.summary.total_rejuvenation_days == 1


@pytest.mark.asyncio
async def test_stats_summary(
    engine_factory: Callable[..., LongevityEngine],
    fixed_delta_policy: Callable,
    best_answers: OnboardingAnswers,
) -> None:
    engine = engine_factory(fixed_delta_policy({}, default=-0.02))
    await engine.onboard(USER, best_answers, 40, timezone="Europe/Istanbul")
    await engine.check_in(USER, DailyMetrics(date_key="2026-10-17"))
    state, _ = await engine.check_in(USER, DailyMetrics(date_key="2026-10-18"))

    stats = await engine.stats_summary(USER)

    assert stats.user_id == USER
    assert stats.state == state
    assert stats.today is not None
    assert stats.today.date_key == "2026-10-18"
    assert stats.weekly.window_days == 7
    assert stats.monthly.window_days == 30
    assert stats.yearly.projection is True
    assert len(stats.weekly.points) == 2
    assert stats.yearly.summary == stats.weekly.summary
