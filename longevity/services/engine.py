"""
Engine service that wires the pure scoring and state logic to the stores.

This is the seam the API layer calls:
1. Onboard a user (baseline biological age + initial AgeState)
2. Apply one daily check-in per calendar day
3. Serve read-only trend and delta views from the entry history

The engine holds no per-user state of its own; every call reads from and
writes to the injected stores. Store failures propagate unchanged and are
never retried here.
"""

from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

import structlog

from longevity.config import AppConfig, get_config
from longevity.domain.models import (
    AgeState,
    DailyMetrics,
    DeltaView,
    Entry,
    OnboardingAnswers,
    OnboardingResult,
    StateSummary,
    StatsSummary,
    TrendRange,
    TrendResult,
    UserProfile,
)
from longevity.domain.normalization import normalize_daily_metrics
from longevity.errors import DuplicateEntryError, NotFoundError, ValidationError
from longevity.services.aggregation import build_delta_view
from longevity.services.clock import Clock, SystemClock, validate_timezone
from longevity.services.onboarding import (
    calculate_onboarding_result,
    chronological_age_from_birth_date,
    create_initial_state,
)
from longevity.services.scoring import BandedScoringPolicy, DailyScoringPolicy
from longevity.services.state_machine import apply_daily
from longevity.services.trends import analyze_range
from longevity.storage.base import EntryStore, UserProfileStore

logger = structlog.get_logger(__name__)


def parse_range(value: str | TrendRange) -> TrendRange:
    """Parse a ``weekly|monthly|yearly`` selector."""
    if isinstance(value, TrendRange):
        return value
    try:
        return TrendRange(str(value).strip().lower())
    except ValueError as e:
        raise ValidationError(
            f"Invalid range {value!r}. Use weekly, monthly, or yearly", field="range"
        ) from e


class LongevityEngine:
    """
    Orchestrates onboarding, daily check-ins and read views for many users.

    Design principles:
    - Pure computation in the services, I/O only through the store protocols
    - Duplicate days rejected atomically by the entry store
    - Structured logging at every state transition
    """

    def __init__(
        self,
        entry_store: EntryStore,
        profile_store: UserProfileStore,
        clock: Clock | None = None,
        config: AppConfig | None = None,
        policy: DailyScoringPolicy | None = None,
    ) -> None:
        self.entry_store = entry_store
        self.profile_store = profile_store
        self.clock = clock or SystemClock()
        self.config = config or get_config()
        self.policy = policy or BandedScoringPolicy(self.config.scoring)
        self.logger = logger.bind(component="longevity_engine")

    async def onboard(
        self,
        user_id: str,
        answers: OnboardingAnswers,
        chronological_age_years: float | None = None,
        *,
        date_of_birth: date | None = None,
        timezone: str | None = None,
    ) -> tuple[UserProfile, OnboardingResult]:
        """
        Score onboarding answers and create the user's profile and initial AgeState.

        Re-onboarding replaces the baseline only while no check-in exists.
        """
        tz = timezone or self.config.engine.default_timezone
        validate_timezone(tz)

        if chronological_age_years is None:
            if date_of_birth is None:
                raise ValidationError(
                    "chronological_age_years or date_of_birth is required",
                    field="chronological_age_years",
                )
            today = date.fromisoformat(self.clock.today(tz))
            chronological_age_years = chronological_age_from_birth_date(date_of_birth, today)

        existing = await self.profile_store.get(user_id)
        if existing is not None and await self.entry_store.list(user_id):
            raise ValidationError(
                f"User {user_id!r} already has daily entries; baseline is fixed", field="user_id"
            )

        result = calculate_onboarding_result(answers, chronological_age_years, self.config.scoring)
        state = create_initial_state(result, float(chronological_age_years))
        now = datetime.now(UTC)
        profile = UserProfile(
            user_id=user_id,
            timezone=tz,
            date_of_birth=date_of_birth,
            onboarding_answers=answers,
            onboarding_total_score=result.total_score,
            baseline_bao_years=result.bao_years,
            state=state,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self.profile_store.create(profile)

        self.logger.info(
            "user_onboarded",
            user_id=user_id,
            total_score=round(result.total_score, 4),
            bao_years=round(result.bao_years, 4),
            baseline_biological_age_years=round(result.baseline_biological_age_years, 4),
            timezone=tz,
        )
        return profile, result

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self.profile_store.get(user_id)
        if profile is None:
            self.logger.warning("profile_not_found", user_id=user_id)
            raise NotFoundError(user_id)
        return profile

    async def get_state(self, user_id: str) -> AgeState:
        return (await self.get_profile(user_id)).state

    async def check_in(self, user_id: str, metrics: DailyMetrics) -> tuple[AgeState, Entry]:
        """
        Apply one day's metrics for ``user_id``.

        Raises:
            NotFoundError: the user has not onboarded.
            DuplicateEntryError: an entry for ``metrics.date_key`` already exists;
                the stored AgeState is left unchanged.

        Store failures propagate. If the state write fails the appended entry is
        removed again, so the day can be retried.
        """
        profile = await self.get_profile(user_id)

        if await self.entry_store.exists(user_id, metrics.date_key):
            self.logger.warning(
                "duplicate_entry_rejected", user_id=user_id, date_key=metrics.date_key
            )
            raise DuplicateEntryError(user_id, metrics.date_key)

        next_state, entry = apply_daily(
            profile.state,
            metrics,
            user_id=user_id,
            timezone=profile.timezone,
            policy=self.policy,
            epsilon=self.config.streaks.neutral_epsilon,
        )

        try:
            await self.entry_store.append(user_id, entry)
        except DuplicateEntryError:
            self.logger.warning(
                "duplicate_entry_rejected", user_id=user_id, date_key=metrics.date_key
            )
            raise

        try:
            await self.profile_store.save_state(user_id, next_state)
        except Exception:
            # Entry and state move together; a failed state write un-applies the day
            self.logger.error(
                "state_write_failed", user_id=user_id, date_key=metrics.date_key, exc_info=True
            )
            await self.entry_store.remove(user_id, metrics.date_key)
            raise
        return next_state, entry

    async def check_in_payload(
        self, user_id: str, payload: Mapping[str, Any]
    ) -> tuple[AgeState, Entry]:
        """Normalize a loosely typed payload (missing date means today in the user's zone)."""
        profile = await self.get_profile(user_id)
        metrics = normalize_daily_metrics(payload, self.clock.today(profile.timezone))
        return await self.check_in(user_id, metrics)

    async def entries(self, user_id: str) -> list[Entry]:
        await self.get_profile(user_id)
        return await self.entry_store.list(user_id)

    async def today_entry(self, user_id: str) -> Entry | None:
        profile = await self.get_profile(user_id)
        return await self.entry_store.get(user_id, self.clock.today(profile.timezone))

    async def trend(self, user_id: str, trend_range: str | TrendRange) -> TrendResult:
        """Trend for the selected range plus the current state summary."""
        selected = parse_range(trend_range)
        profile = await self.get_profile(user_id)
        history = await self.entry_store.list(user_id)
        result = analyze_range(history, selected, self.config.trends)
        return result.model_copy(update={"summary": StateSummary.from_state(profile.state)})

    async def stats_summary(self, user_id: str) -> StatsSummary:
        """Current state, today's entry and the weekly, monthly and yearly trends."""
        profile = await self.get_profile(user_id)
        history = await self.entry_store.list(user_id)
        today = await self.entry_store.get(user_id, self.clock.today(profile.timezone))
        summary = StateSummary.from_state(profile.state)
        trends = {
            r: analyze_range(history, r, self.config.trends).model_copy(
                update={"summary": summary}
            )
            for r in TrendRange
        }
        return StatsSummary(
            user_id=user_id,
            state=profile.state,
            today=today,
            weekly=trends[TrendRange.WEEKLY],
            monthly=trends[TrendRange.MONTHLY],
            yearly=trends[TrendRange.YEARLY],
        )

    async def deltas(
        self,
        user_id: str,
        trend_range: str | TrendRange,
        reference_day: date | None = None,
    ) -> DeltaView:
        """Delta buckets for the calendar week, month or year containing ``reference_day``."""
        selected = parse_range(trend_range)
        profile = await self.get_profile(user_id)
        history = await self.entry_store.list(user_id)
        day = reference_day or date.fromisoformat(self.clock.today(profile.timezone))
        return build_delta_view(selected, history, profile.state, day)
