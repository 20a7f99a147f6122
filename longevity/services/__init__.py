"""
Core services for the biological-age engine.

This package contains the scoring functions, the daily state machine, the
trend and aggregation views, and the engine that ties them to the stores.
"""

from .aggregation import build_delta_view, to_display_delta
from .engine import LongevityEngine, parse_range
from .onboarding import calculate_onboarding_result, create_initial_state
from .scoring import BandedScoringPolicy, DailyScoringPolicy, score_daily_metrics
from .state_machine import apply_daily
from .streaks import calculate_streaks
from .trends import analyze_range, analyze_trend

__all__ = [
    "BandedScoringPolicy",
    "DailyScoringPolicy",
    "LongevityEngine",
    "analyze_range",
    "analyze_trend",
    "apply_daily",
    "build_delta_view",
    "calculate_onboarding_result",
    "calculate_streaks",
    "create_initial_state",
    "parse_range",
    "score_daily_metrics",
    "to_display_delta",
]
