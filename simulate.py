"""
End-to-end simulation of the biological-age engine.

This script:
1. Onboards a demo user against in-memory stores
2. Applies a run of daily check-ins (with a skipped day and a duplicate)
3. Renders state, trends and delta buckets as tables

Run with: uv run python simulate.py --days 21
"""

import argparse
import asyncio
import random
from datetime import date, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from longevity.config import get_config
from longevity.domain.models import DailyMetrics, OnboardingAnswers, TrendRange
from longevity.errors import DuplicateEntryError
from longevity.logs import configure_logging
from longevity.services.clock import FixedClock
from longevity.services.engine import LongevityEngine
from longevity.storage import InMemoryEntryStore, InMemoryUserProfileStore

console = Console()

USER_ID = "demo-user"


def random_metrics(rng: random.Random, day: date) -> DailyMetrics:
    """Plausible daily metrics; roughly two good days for every bad one."""
    good = rng.random() < 0.65
    return DailyMetrics(
        date_key=day.isoformat(),
        sleep_hours=rng.uniform(7.0, 8.5) if good else rng.uniform(4.5, 6.5),
        steps=rng.randint(8_000, 14_000) if good else rng.randint(2_000, 6_000),
        vigorous_minutes=rng.randint(20, 60) if good else rng.randint(0, 10),
        processed_food_score=rng.randint(1, 2) if good else rng.randint(3, 5),
        alcohol_units=0 if good else rng.randint(1, 4),
        stress_level=rng.randint(1, 4) if good else rng.randint(5, 9),
        late_caffeine=not good and rng.random() < 0.5,
        screen_late=rng.random() < 0.4,
        bedtime_hour=rng.choice([22.0, 22.5, 23.0]) if good else rng.choice([23.5, 24.5, 1.0]),
    )


async def run_simulation(days: int, seed: int) -> None:
    config = get_config()
    configure_logging(config.logging)
    rng = random.Random(seed)

    start = date.today() - timedelta(days=days - 1)
    clock = FixedClock.on(start)
    engine = LongevityEngine(
        InMemoryEntryStore(), InMemoryUserProfileStore(), clock=clock, config=config
    )

    answers = OnboardingAnswers(
        activity=0.5,
        smoking_alcohol=1.0,
        metabolic_health=0.0,
        energy_focus=0.5,
        visceral_fat=-0.5,
        sleep=0.5,
        stress=-0.5,
        muscle=0.0,
        nutrition_pattern=0.5,
        sugar=0.0,
    )
    _, result = await engine.onboard(USER_ID, answers, 40.0, timezone="Europe/Istanbul")
    console.print(
        Panel(
            f"Baseline biological age {result.baseline_biological_age_years:.2f} "
            f"(BAO {result.bao_years:+.2f}, {result.aging_speed_label.value})",
            style="bold blue",
        )
    )

    daily_table = Table(title="Daily check-ins")
    daily_table.add_column("Date", style="cyan")
    daily_table.add_column("Score", justify="right")
    daily_table.add_column("Delta (y)", justify="right")
    daily_table.add_column("Bio age", justify="right")
    daily_table.add_column("Streak R/A", justify="right")

    skipped = start + timedelta(days=days // 2)
    for offset in range(days):
        day = start + timedelta(days=offset)
        if day == skipped:
            daily_table.add_row(day.isoformat(), "-", "-", "-", "skipped")
            continue
        clock.instant = clock.on(day).instant
        state, entry = await engine.check_in(USER_ID, random_metrics(rng, day))
        daily_table.add_row(
            entry.date_key,
            f"{entry.result.score:+.1f}",
            f"{entry.delta_years:+.3f}",
            f"{state.current_biological_age_years:.2f}",
            f"{state.rejuvenation_streak_days}/{state.acceleration_streak_days}",
        )
    console.print(daily_table)

    last_day = start + timedelta(days=days - 1)
    try:
        await engine.check_in(USER_ID, random_metrics(rng, last_day))
    except DuplicateEntryError as e:
        console.print(f"Duplicate rejected for {e.date_key}", style="yellow")

    trend_table = Table(title="Trends")
    trend_table.add_column("Range", style="cyan")
    trend_table.add_column("Value (y)", justify="right")
    trend_table.add_column("Available")
    trend_table.add_column("Projection")
    for trend_range in TrendRange:
        trend = await engine.trend(USER_ID, trend_range)
        value = "n/a" if trend.value is None else f"{trend.value:+.2f}"
        trend_table.add_row(trend_range.value, value, str(trend.available), str(trend.projection))
    console.print(trend_table)

    view = await engine.deltas(USER_ID, TrendRange.WEEKLY, last_day)
    delta_table = Table(title=f"Week {view.start} to {view.end} (positive = rejuvenation)")
    delta_table.add_column("Day", style="cyan")
    delta_table.add_column("Delta (y)", justify="right")
    for bucket in view.buckets:
        delta_table.add_row(bucket.bucket, "-" if bucket.value is None else f"{bucket.value:+.3f}")
    console.print(delta_table)

    summary = view.summary
    console.print(
        f"Lifetime net {summary.lifetime_net_delta_years:+.2f}y, "
        f"this week +{summary.rejuvenation_years:.2f}y rejuvenation / "
        f"-{summary.aging_years:.2f}y aging over {summary.check_ins} check-ins",
        style="green",
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate daily check-ins")
    parser.add_argument("--days", type=int, default=21)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()
    asyncio.run(run_simulation(max(args.days, 2), args.seed))


if __name__ == "__main__":
    main()
