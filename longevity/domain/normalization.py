"""
Coercion of caller-supplied payloads into typed domain models.

Daily metrics never fail on bad numbers: non-finite or out-of-range values fall
back to a safe default so a logged-in user's check-in always scores. Onboarding
answers are strict, since they seed the baseline once.
"""

import math
from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from longevity.domain.models import DailyMetrics, OnboardingAnswers
from longevity.errors import ValidationError

# field -> (accepted keys, fallback, lower bound, upper bound)
_METRIC_FIELDS: dict[str, tuple[tuple[str, ...], float, float, float]] = {
    "sleep_hours": (("sleep_hours", "sleepHours"), 0.0, 0.0, 24.0),
    "steps": (("steps",), 0.0, 0.0, 200_000.0),
    "vigorous_minutes": (("vigorous_minutes", "vigorousMinutes"), 0.0, 0.0, 1440.0),
    "processed_food_score": (("processed_food_score", "processedFoodScore"), 0.0, 0.0, 5.0),
    "alcohol_units": (("alcohol_units", "alcoholUnits"), 0.0, 0.0, 50.0),
    "stress_level": (("stress_level", "stressLevel"), 0.0, 0.0, 10.0),
    "bedtime_hour": (("bedtime_hour", "bedtimeHour"), 23.0, 0.0, 30.0),
}

_FLAG_FIELDS: dict[str, tuple[str, ...]] = {
    "late_caffeine": ("late_caffeine", "lateCaffeine"),
    "screen_late": ("screen_late", "screenLate", "lateScreenUsage"),
}

_ONBOARDING_KEYS: dict[str, tuple[str, ...]] = {
    "activity": ("activity",),
    "smoking_alcohol": ("smoking_alcohol", "smokingAlcohol"),
    "metabolic_health": ("metabolic_health", "metabolicHealth"),
    "energy_focus": ("energy_focus", "energyFocus"),
    "visceral_fat": ("visceral_fat", "visceralFat"),
    "sleep": ("sleep",),
    "stress": ("stress",),
    "muscle": ("muscle",),
    "nutrition_pattern": ("nutrition_pattern", "nutritionPattern"),
    "sugar": ("sugar",),
}


def _first(source: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in source and source[key] is not None:
            return source[key]
    return None


def coerce_number(
    value: Any, fallback: float = 0.0, lo: float = -math.inf, hi: float = math.inf
) -> float:
    """Return ``value`` as a finite float within [lo, hi], else ``fallback``."""
    if isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number) or number < lo or number > hi:
        return fallback
    return number


def parse_date_key(value: Any, field: str = "date_key") -> str:
    """Validate a YYYY-MM-DD calendar key."""
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or len(value) != 10:
        raise ValidationError(f"Invalid date key: {value!r}", field=field)
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as e:
        raise ValidationError(f"Invalid date key: {value!r}", field=field) from e


def normalize_daily_metrics(payload: Mapping[str, Any], today_key: str) -> DailyMetrics:
    """
    Build DailyMetrics from a loosely typed payload.

    Accepts snake_case or camelCase keys, optionally nested under ``metrics``.
    A missing date falls back to ``today_key``; a malformed one is a ValidationError.
    """
    source = payload.get("metrics", payload)
    if not isinstance(source, Mapping):
        raise ValidationError("metrics must be an object", field="metrics")

    raw_date = _first(source, ("date_key", "date"))
    date_key = parse_date_key(raw_date if raw_date is not None else today_key)

    values: dict[str, Any] = {"date_key": date_key}
    for name, (keys, fallback, lo, hi) in _METRIC_FIELDS.items():
        values[name] = coerce_number(_first(source, keys), fallback, lo, hi)
    for name, keys in _FLAG_FIELDS.items():
        values[name] = bool(_first(source, keys))

    return DailyMetrics(**values)


def normalize_onboarding_answers(payload: Mapping[str, Any]) -> OnboardingAnswers:
    """Strictly validate onboarding answers; missing or out-of-range values are rejected."""
    source = payload.get("answers", payload)
    if not isinstance(source, Mapping):
        raise ValidationError("answers must be an object", field="answers")

    values: dict[str, float] = {}
    for name, keys in _ONBOARDING_KEYS.items():
        raw = _first(source, keys)
        if raw is None:
            raise ValidationError(f"Missing onboarding answer: {name}", field=name)
        number = coerce_number(raw, math.nan, -1.0, 1.0)
        if math.isnan(number):
            raise ValidationError(
                f"Onboarding answer {name} must be a number in [-1, 1], got {raw!r}", field=name
            )
        values[name] = number

    try:
        return OnboardingAnswers(**values)
    except PydanticValidationError as e:
        raise ValidationError(str(e), field="answers") from e
