"""
Domain models for the biological-age engine.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; every model is frozen so entries and states
can be shared without defensive copies.
"""

from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATE_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class TrendRange(str, Enum):
    """Read-query range selector."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def window_days(self) -> int:
        return {TrendRange.WEEKLY: 7, TrendRange.MONTHLY: 30, TrendRange.YEARLY: 365}[self]


class DeltaClass(str, Enum):
    """Direction of a daily delta once the neutral band is applied."""

    REJUVENATION = "rejuvenation"
    ACCELERATION = "acceleration"
    NEUTRAL = "neutral"


class AgingSpeed(str, Enum):
    """Coarse label for the onboarding total score."""

    REJUVENATING = "rejuvenating"
    STABLE = "stable"
    ACCELERATED = "accelerated"


class OnboardingAnswers(BaseModel):
    """Ten normalized onboarding answers; each in [-1, 1], positive is healthier."""

    model_config = ConfigDict(frozen=True)

    activity: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    smoking_alcohol: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    metabolic_health: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    energy_focus: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    visceral_fat: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    sleep: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    stress: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    muscle: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    nutrition_pattern: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)
    sugar: float = Field(ge=-1.0, le=1.0, allow_inf_nan=False)


class OnboardingResult(BaseModel):
    """Output of the onboarding scorer."""

    model_config = ConfigDict(frozen=True)

    total_score: float = Field(ge=-1.0, le=1.0)
    bao_years: float = Field(description="Biological Age Offset; negative means younger")
    baseline_biological_age_years: float
    aging_speed_label: AgingSpeed


class DailyMetrics(BaseModel):
    """One day's normalized health metrics, keyed by calendar day in the user's timezone."""

    model_config = ConfigDict(frozen=True)

    date_key: str = Field(pattern=DATE_KEY_PATTERN, description="YYYY-MM-DD in user timezone")
    sleep_hours: float = Field(default=0.0, ge=0.0, le=24.0, allow_inf_nan=False)
    steps: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)
    vigorous_minutes: float = Field(default=0.0, ge=0.0, le=1440.0, allow_inf_nan=False)
    processed_food_score: float = Field(
        default=0.0, ge=0.0, le=5.0, allow_inf_nan=False, description="1-5, lower is better"
    )
    alcohol_units: float = Field(default=0.0, ge=0.0, allow_inf_nan=False)
    stress_level: float = Field(default=0.0, ge=0.0, le=10.0, allow_inf_nan=False)
    late_caffeine: bool = False
    screen_late: bool = False
    bedtime_hour: float = Field(
        default=23.0,
        ge=0.0,
        le=30.0,
        allow_inf_nan=False,
        description="Hour of day; times past midnight may be written as 24+",
    )

    @field_validator("date_key")
    def validate_calendar_day(cls, v):
        date.fromisoformat(v)
        return v


class ScoreResult(BaseModel):
    """Daily scoring output. Only ``delta_years`` drives state transitions."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(description="Explainability artifact, bounded")
    delta_years: float = Field(description="Positive ages the user, negative rejuvenates")
    reasons: tuple[str, ...] = ()


class StreakCounters(BaseModel):
    """Streak and total counters; the two streaks are mutually exclusive."""

    model_config = ConfigDict(frozen=True)

    rejuvenation_streak_days: int = Field(default=0, ge=0)
    acceleration_streak_days: int = Field(default=0, ge=0)
    total_rejuvenation_days: int = Field(default=0, ge=0)
    total_acceleration_days: int = Field(default=0, ge=0)


class AgeState(BaseModel):
    """Per-user running biological age state."""

    model_config = ConfigDict(frozen=True)

    chronological_age_years: float
    baseline_biological_age_years: float
    current_biological_age_years: float
    aging_debt_years: float = Field(description="Signed: current minus chronological")
    rejuvenation_streak_days: int = Field(default=0, ge=0)
    acceleration_streak_days: int = Field(default=0, ge=0)
    total_rejuvenation_days: int = Field(default=0, ge=0)
    total_acceleration_days: int = Field(default=0, ge=0)
    last_check_in_date_key: str | None = Field(default=None, pattern=DATE_KEY_PATTERN)

    @property
    def counters(self) -> StreakCounters:
        return StreakCounters(
            rejuvenation_streak_days=self.rejuvenation_streak_days,
            acceleration_streak_days=self.acceleration_streak_days,
            total_rejuvenation_days=self.total_rejuvenation_days,
            total_acceleration_days=self.total_acceleration_days,
        )

    @property
    def baseline_offset_years(self) -> float:
        return self.baseline_biological_age_years - self.chronological_age_years


class Entry(BaseModel):
    """Immutable record of one applied day: metrics, score and the resulting state."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    date_key: str = Field(pattern=DATE_KEY_PATTERN)
    metrics: DailyMetrics
    result: ScoreResult
    biological_age_years: float
    aging_debt_years: float
    rejuvenation_streak_days: int = Field(ge=0)
    acceleration_streak_days: int = Field(ge=0)
    total_rejuvenation_days: int = Field(ge=0)
    total_acceleration_days: int = Field(ge=0)
    applied: bool = Field(
        default=True, description="False when an anomaly left the AgeState untouched"
    )
    anomaly: str | None = Field(default=None, description="AnomalyWarning kind, if any")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def delta_years(self) -> float:
        """Delta this entry contributed to the running age; 0 when not applied."""
        return self.result.delta_years if self.applied else 0.0

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date_key)


class UserProfile(BaseModel):
    """Persisted per-user document: onboarding inputs plus the current AgeState."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    timezone: str = "UTC"
    date_of_birth: date | None = None
    onboarding_answers: OnboardingAnswers
    onboarding_total_score: float
    baseline_bao_years: float
    state: AgeState
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TrendPoint(BaseModel):
    """One chart sample of the biological age series."""

    model_config = ConfigDict(frozen=True)

    date_key: str
    biological_age_years: float
    aging_debt_years: float
    delta_years: float
    score: float


class StateSummary(BaseModel):
    """Current age, debt and streak counters reported next to trend points."""

    model_config = ConfigDict(frozen=True)

    current_biological_age_years: float
    aging_debt_years: float
    rejuvenation_streak_days: int = Field(ge=0)
    acceleration_streak_days: int = Field(ge=0)
    total_rejuvenation_days: int = Field(ge=0)
    total_acceleration_days: int = Field(ge=0)

    @classmethod
    def from_state(cls, state: AgeState) -> "StateSummary":
        return cls(
            current_biological_age_years=state.current_biological_age_years,
            aging_debt_years=state.aging_debt_years,
            rejuvenation_streak_days=state.rejuvenation_streak_days,
            acceleration_streak_days=state.acceleration_streak_days,
            total_rejuvenation_days=state.total_rejuvenation_days,
            total_acceleration_days=state.total_acceleration_days,
        )


class TrendResult(BaseModel):
    """Bounded-window trend over the entry history."""

    model_config = ConfigDict(frozen=True)

    window_days: int = Field(gt=0)
    value: float | None
    available: bool
    projection: bool = False
    points: tuple[TrendPoint, ...] = ()
    summary: StateSummary | None = None


class DeltaBucket(BaseModel):
    """
    One calendar bucket of display-signed deltas (positive = rejuvenation).

    ``value`` is None when the bucket has no check-in, never 0.
    """

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(description="YYYY-MM-DD for day buckets, YYYY-MM for month buckets")
    value: float | None
    check_ins: int = Field(default=0, ge=0)
    average: float | None = Field(default=None, description="Per check-in; month buckets only")


class DeltaSummary(BaseModel):
    """Lifetime and range-scoped aggregates, display-signed."""

    model_config = ConfigDict(frozen=True)

    lifetime_net_delta_years: float
    rejuvenation_years: float = Field(ge=0.0)
    aging_years: float = Field(ge=0.0)
    check_ins: int = Field(ge=0)


class DeltaView(BaseModel):
    """Bucketed deltas for a weekly, monthly or yearly calendar range."""

    model_config = ConfigDict(frozen=True)

    range: TrendRange
    start: date
    end: date
    buckets: tuple[DeltaBucket, ...]
    summary: DeltaSummary


class StatsSummary(BaseModel):
    """Dashboard snapshot: current state, today's entry and all three trend ranges."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    state: AgeState
    today: Entry | None = None
    weekly: TrendResult
    monthly: TrendResult
    yearly: TrendResult
