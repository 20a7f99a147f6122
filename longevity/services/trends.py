"""
Bounded-window trends over a user's entry history.

Trend values are biological-age differences in years (positive = older over
the window). The yearly view falls back to a projection from recent deltas
while the history is too sparse to say anything direct.
"""

import statistics
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from longevity.config import TrendConfig
from longevity.domain.models import Entry, TrendPoint, TrendRange, TrendResult

DAYS_PER_YEAR = 365


def round_half_away_from_zero(value: float, digits: int = 2) -> float:
    """Round like a person would: 0.125 -> 0.13 and -0.125 -> -0.13."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _rounded(value: float | None) -> float | None:
    return None if value is None else round_half_away_from_zero(value, 2)


def sample_points(entries: Sequence[Entry], sample_count: int) -> tuple[TrendPoint, ...]:
    """Evenly down-sample to at most ``sample_count`` points, always keeping first and last."""
    if not entries:
        return ()
    if len(entries) <= sample_count or sample_count < 2:
        chosen = list(entries) if sample_count >= 2 else [entries[-1]]
    else:
        step = (len(entries) - 1) / (sample_count - 1)
        indices = sorted({round(i * step) for i in range(sample_count)})
        chosen = [entries[i] for i in indices]
    return tuple(
        TrendPoint(
            date_key=e.date_key,
            biological_age_years=round_half_away_from_zero(e.biological_age_years, 2),
            aging_debt_years=round_half_away_from_zero(e.aging_debt_years, 2),
            delta_years=round_half_away_from_zero(e.delta_years, 4),
            score=round_half_away_from_zero(e.result.score, 2),
        )
        for e in chosen
    )


def _ordered(entries: Sequence[Entry]) -> list[Entry]:
    """Applied entries by date; entries left unapplied by an anomaly carry no snapshot."""
    return sorted((e for e in entries if e.applied), key=lambda e: e.date_key)


def analyze_trend(
    entries: Sequence[Entry], window_days: int, sample_count: int = 30
) -> TrendResult:
    """
    Age change over the last ``window_days`` entries.

    - at least ``window_days`` entries: last minus the entry ``window_days`` back, available
    - 2 or more but fewer: last minus first as a partial trend, not available
    - fewer than 2: no value
    """
    history = _ordered(entries)
    points = sample_points(history[-window_days:], sample_count)

    if len(history) >= window_days:
        value = history[-1].biological_age_years - history[-window_days].biological_age_years
        return TrendResult(
            window_days=window_days, value=_rounded(value), available=True, points=points
        )

    if len(history) >= 2:
        value = history[-1].biological_age_years - history[0].biological_age_years
        return TrendResult(
            window_days=window_days, value=_rounded(value), available=False, points=points
        )

    return TrendResult(window_days=window_days, value=None, available=False, points=points)


def analyze_yearly(
    entries: Sequence[Entry], config: TrendConfig | None = None
) -> TrendResult:
    """
    Yearly trend with a projection fallback.

    With fewer than ``projection_min_deltas`` non-zero deltas the value is the
    mean of the most recent ones scaled to a year, flagged as a projection.
    """
    config = config or TrendConfig()
    history = _ordered(entries)
    qualifying = [e.delta_years for e in history if e.delta_years != 0]

    if len(qualifying) < config.projection_min_deltas:
        recent = qualifying[-config.projection_window :]
        value = statistics.fmean(recent) * DAYS_PER_YEAR if recent else None
        return TrendResult(
            window_days=DAYS_PER_YEAR,
            value=_rounded(value),
            available=False,
            projection=True,
            points=sample_points(history[-DAYS_PER_YEAR:], config.chart_sample_count),
        )

    return analyze_trend(history, DAYS_PER_YEAR, config.chart_sample_count)


def analyze_range(
    entries: Sequence[Entry], trend_range: TrendRange, config: TrendConfig | None = None
) -> TrendResult:
    """Trend for a weekly (7), monthly (30) or yearly (365) selector."""
    config = config or TrendConfig()
    if trend_range is TrendRange.YEARLY:
        return analyze_yearly(entries, config)
    return analyze_trend(entries, trend_range.window_days, config.chart_sample_count)
