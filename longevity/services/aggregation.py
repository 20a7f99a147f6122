"""
Calendar bucketing of daily deltas for display.

Internally a positive delta means aging. Everything this module reports uses
the display convention (positive = rejuvenation), and the flip happens only in
``to_display_delta``.

Buckets without a check-in carry ``None`` so absence is never confused with a
day of zero change.
"""

import calendar
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from longevity.domain.models import (
    AgeState,
    DeltaBucket,
    DeltaSummary,
    DeltaView,
    Entry,
    TrendRange,
)
from longevity.services.trends import round_half_away_from_zero

DISPLAY_PRECISION = 4


def to_display_delta(delta_years: float) -> float:
    """Convert an internal delta (positive = aging) to display sign (positive = rejuvenation)."""
    return 0.0 - delta_years


def _display(delta_years: float) -> float:
    return round_half_away_from_zero(to_display_delta(delta_years), DISPLAY_PRECISION)


def week_bounds(day: date) -> tuple[date, date]:
    """Monday through Sunday containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def month_bounds(day: date) -> tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def year_bounds(day: date) -> tuple[date, date]:
    return date(day.year, 1, 1), date(day.year, 12, 31)


def range_bounds(trend_range: TrendRange, reference_day: date) -> tuple[date, date]:
    if trend_range is TrendRange.WEEKLY:
        return week_bounds(reference_day)
    if trend_range is TrendRange.MONTHLY:
        return month_bounds(reference_day)
    return year_bounds(reference_day)


def enumerate_days(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def enumerate_months(start: date, end: date) -> list[str]:
    months: list[str] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def filter_entries(entries: Iterable[Entry], start: date, end: date) -> list[Entry]:
    """Applied entries whose calendar day lies in the inclusive range [start, end], ascending."""
    selected = [e for e in entries if e.applied and start <= e.day <= end]
    return sorted(selected, key=lambda e: e.date_key)


def daily_buckets(entries: Iterable[Entry], days: Sequence[date]) -> tuple[DeltaBucket, ...]:
    by_day: dict[str, list[float]] = defaultdict(list)
    for entry in entries:
        by_day[entry.date_key].append(entry.delta_years)

    buckets = []
    for day in days:
        deltas = by_day.get(day.isoformat())
        if not deltas:
            buckets.append(DeltaBucket(bucket=day.isoformat(), value=None))
            continue
        buckets.append(
            DeltaBucket(bucket=day.isoformat(), value=_display(sum(deltas)), check_ins=len(deltas))
        )
    return tuple(buckets)


def monthly_buckets(entries: Iterable[Entry], months: Sequence[str]) -> tuple[DeltaBucket, ...]:
    """Per-month net display delta plus the average per check-in."""
    by_month: dict[str, list[float]] = defaultdict(list)
    for entry in entries:
        by_month[entry.date_key[:7]].append(entry.delta_years)

    buckets = []
    for month in months:
        deltas = by_month.get(month)
        if not deltas:
            buckets.append(DeltaBucket(bucket=month, value=None))
            continue
        total = sum(deltas)
        buckets.append(
            DeltaBucket(
                bucket=month,
                value=_display(total),
                check_ins=len(deltas),
                average=_display(total / len(deltas)),
            )
        )
    return tuple(buckets)


def summarize(
    all_entries: Sequence[Entry], state: AgeState, start: date, end: date
) -> DeltaSummary:
    """
    Lifetime net delta (baseline offset plus every daily delta) and range-scoped
    rejuvenation / aging magnitudes with the range's check-in count.
    """
    lifetime = state.baseline_offset_years + sum(e.delta_years for e in all_entries)
    in_range = filter_entries(all_entries, start, end)
    rejuvenation = sum(-e.delta_years for e in in_range if e.delta_years < 0)
    aging = sum(e.delta_years for e in in_range if e.delta_years > 0)
    return DeltaSummary(
        lifetime_net_delta_years=_display(lifetime),
        rejuvenation_years=round_half_away_from_zero(rejuvenation, DISPLAY_PRECISION),
        aging_years=round_half_away_from_zero(aging, DISPLAY_PRECISION),
        check_ins=len(in_range),
    )


def build_delta_view(
    trend_range: TrendRange,
    entries: Sequence[Entry],
    state: AgeState,
    reference_day: date,
) -> DeltaView:
    """
    Bucketed deltas for the calendar range containing ``reference_day``.

    Weekly and monthly views use day buckets; the yearly view uses month buckets.
    """
    start, end = range_bounds(trend_range, reference_day)
    in_range = filter_entries(entries, start, end)

    if trend_range is TrendRange.YEARLY:
        buckets = monthly_buckets(in_range, enumerate_months(start, end))
    else:
        buckets = daily_buckets(in_range, enumerate_days(start, end))

    return DeltaView(
        range=trend_range,
        start=start,
        end=end,
        buckets=buckets,
        summary=summarize(entries, state, start, end),
    )
