"""
Daily scoring: one day's metrics to a bounded score, a delta in years and the
ordered reasons behind it.

Key patterns:
- Protocol-based strategy so the state machine stays formula-agnostic
- Declarative band tables evaluated in a fixed priority order
- Pure functions: same metrics, same score, same reason order
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import structlog

from longevity.config import ScoringConfig
from longevity.domain.models import DailyMetrics, ScoreResult
from longevity.services.onboarding import clamp

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Band:
    """A threshold band: when ``matches`` holds, add ``points`` and record ``reason``."""

    matches: Callable[[float], bool]
    points: float
    reason: str


@dataclass(frozen=True)
class MetricBands:
    """Mutually exclusive bands for one metric; the first match wins."""

    metric: str
    bands: tuple[Band, ...]

    def evaluate(self, value: float) -> Band | None:
        for band in self.bands:
            if band.matches(value):
                return band
        return None


DEFAULT_BANDS: tuple[MetricBands, ...] = (
    MetricBands(
        "sleep_hours",
        (
            Band(lambda v: 7 <= v <= 9, 2.0, "Sleep: good duration"),
            Band(lambda v: v < 6, -2.0, "Sleep: too short"),
            Band(lambda v: True, -0.5, "Sleep: could be better"),
        ),
    ),
    MetricBands(
        "steps",
        (
            Band(lambda v: v >= 10_000, 2.0, "Steps: active day"),
            Band(lambda v: v >= 7_000, 1.0, "Steps: moderate"),
            Band(lambda v: v < 4_000, -2.0, "Steps: low activity"),
            Band(lambda v: True, -1.0, "Steps: below target"),
        ),
    ),
    MetricBands(
        "vigorous_minutes",
        (
            Band(lambda v: v >= 30, 1.5, "Exercise: strong session"),
            Band(lambda v: v >= 10, 0.5, "Exercise: some intensity"),
            Band(lambda v: True, -0.5, "Exercise: add intensity"),
        ),
    ),
    MetricBands(
        "processed_food_score",
        (
            Band(lambda v: v <= 2, 1.0, "Food: minimally processed"),
            Band(lambda v: v >= 4, -1.5, "Food: too processed"),
            Band(lambda v: True, -0.5, "Food: mixed quality"),
        ),
    ),
    MetricBands(
        "alcohol_units",
        (
            Band(lambda v: v == 0, 1.0, "Alcohol: none"),
            Band(lambda v: v <= 2, 0.0, "Alcohol: moderate"),
            Band(lambda v: True, -1.0, "Alcohol: high"),
        ),
    ),
    MetricBands(
        "stress_level",
        (
            Band(lambda v: v <= 3, 1.0, "Stress: low"),
            Band(lambda v: v >= 7, -1.5, "Stress: high"),
            Band(lambda v: True, -0.5, "Stress: moderate"),
        ),
    ),
)

# Flat penalties for boolean habits, applied after the numeric bands
DEFAULT_FLAGS: tuple[tuple[str, float, str], ...] = (
    ("late_caffeine", -1.0, "Caffeine: late intake"),
    ("screen_late", -0.5, "Screen time: late use"),
)

DEFAULT_BEDTIME_BANDS = MetricBands(
    "bedtime_hour",
    (
        Band(lambda v: v > 24 or v < 5, -1.0, "Bedtime: very late"),
        Band(lambda v: v > 23, -0.5, "Bedtime: late"),
        Band(lambda v: True, 0.5, "Bedtime: good timing"),
    ),
)


class DailyScoringPolicy(Protocol):
    """
    Strategy that turns one day's metrics into a ScoreResult.

    Implementations must be pure and must never raise for a valid DailyMetrics.
    """

    def score(self, metrics: DailyMetrics) -> ScoreResult: ...


class BandedScoringPolicy:
    """
    Threshold-band scoring with a linear score-to-delta transform.

    Positive score means a rejuvenating day and therefore a negative delta.
    """

    def __init__(
        self,
        config: ScoringConfig | None = None,
        bands: tuple[MetricBands, ...] = DEFAULT_BANDS,
        flags: tuple[tuple[str, float, str], ...] = DEFAULT_FLAGS,
        bedtime: MetricBands = DEFAULT_BEDTIME_BANDS,
    ) -> None:
        self.config = config or ScoringConfig()
        self.bands = bands
        self.flags = flags
        self.bedtime = bedtime

    def score(self, metrics: DailyMetrics) -> ScoreResult:
        points = 0.0
        reasons: list[str] = []

        for metric_bands in self.bands:
            band = metric_bands.evaluate(getattr(metrics, metric_bands.metric))
            if band is not None:
                points += band.points
                reasons.append(band.reason)

        for flag, penalty, reason in self.flags:
            if getattr(metrics, flag):
                points += penalty
                reasons.append(reason)

        band = self.bedtime.evaluate(getattr(metrics, self.bedtime.metric))
        if band is not None:
            points += band.points
            reasons.append(band.reason)

        bound = self.config.score_bound
        score = clamp(points, -bound, bound)
        return ScoreResult(
            score=score, delta_years=self.delta_for_score(score), reasons=tuple(reasons)
        )

    def delta_for_score(self, score: float) -> float:
        cap = self.config.daily_max_delta_years
        return clamp(-score * self.config.delta_per_score_point, -cap, cap)


def score_daily_metrics(
    metrics: DailyMetrics, policy: DailyScoringPolicy | None = None
) -> ScoreResult:
    """Score one day with ``policy`` (banded scoring by default)."""
    result = (policy or BandedScoringPolicy()).score(metrics)
    logger.debug(
        "daily_metrics_scored",
        date_key=metrics.date_key,
        score=result.score,
        delta_years=result.delta_years,
    )
    return result
