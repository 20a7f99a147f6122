"""
Onboarding scorer: questionnaire answers plus chronological age to a baseline
biological age.

Positive total score means healthier habits and therefore a negative
Biological Age Offset (BAO).
"""

import math
from datetime import date

from longevity.config import ScoringConfig
from longevity.domain.models import AgeState, AgingSpeed, OnboardingAnswers, OnboardingResult
from longevity.errors import ValidationError

CATEGORY_WEIGHTS: dict[str, float] = {
    "sleep": 0.22,
    "movement": 0.25,
    "metabolic": 0.25,
    "nutrition": 0.15,
    "stress": 0.13,
}

AGING_SPEED_THRESHOLD = 0.25
MAX_CHRONOLOGICAL_AGE_YEARS = 130.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def category_scores(answers: OnboardingAnswers) -> dict[str, float]:
    """Per-category averages before weighting."""
    return {
        "sleep": answers.sleep,
        "movement": (answers.activity + answers.muscle) / 2,
        "metabolic": (answers.visceral_fat + answers.sugar + answers.metabolic_health) / 3,
        "nutrition": answers.nutrition_pattern,
        "stress": (answers.stress + answers.smoking_alcohol + answers.energy_focus) / 3,
    }


def aging_speed_label(total_score: float) -> AgingSpeed:
    if total_score >= AGING_SPEED_THRESHOLD:
        return AgingSpeed.REJUVENATING
    if total_score <= -AGING_SPEED_THRESHOLD:
        return AgingSpeed.ACCELERATED
    return AgingSpeed.STABLE


def validate_chronological_age(chronological_age_years: float) -> float:
    if (
        isinstance(chronological_age_years, bool)
        or not isinstance(chronological_age_years, int | float)
        or not math.isfinite(chronological_age_years)
        or not 0.0 <= chronological_age_years <= MAX_CHRONOLOGICAL_AGE_YEARS
    ):
        raise ValidationError(
            f"chronological_age_years must be within [0, {MAX_CHRONOLOGICAL_AGE_YEARS:g}], "
            f"got {chronological_age_years!r}",
            field="chronological_age_years",
        )
    return float(chronological_age_years)


def calculate_onboarding_result(
    answers: OnboardingAnswers,
    chronological_age_years: float,
    config: ScoringConfig | None = None,
) -> OnboardingResult:
    """
    Compute the onboarding total score and baseline biological age.

    The total is a weighted sum over five categories, clamped to [-1, 1];
    BAO is ``-total * max_offset_years`` clamped to +/- max_offset_years.
    """
    config = config or ScoringConfig()
    age = validate_chronological_age(chronological_age_years)

    scores = category_scores(answers)
    total_score = clamp(sum(scores[name] * CATEGORY_WEIGHTS[name] for name in scores), -1.0, 1.0)

    max_offset = config.max_offset_years
    bao_years = clamp(-total_score * max_offset, -max_offset, max_offset)

    return OnboardingResult(
        total_score=total_score,
        bao_years=bao_years,
        baseline_biological_age_years=age + bao_years,
        aging_speed_label=aging_speed_label(total_score),
    )


def create_initial_state(result: OnboardingResult, chronological_age_years: float) -> AgeState:
    """AgeState for a freshly onboarded user: current age equals baseline, all counters zero."""
    return AgeState(
        chronological_age_years=chronological_age_years,
        baseline_biological_age_years=result.baseline_biological_age_years,
        current_biological_age_years=result.baseline_biological_age_years,
        aging_debt_years=result.baseline_biological_age_years - chronological_age_years,
    )


def chronological_age_from_birth_date(date_of_birth: date, today: date) -> float:
    """Full years elapsed since ``date_of_birth`` as of ``today``."""
    if date_of_birth > today:
        raise ValidationError("date_of_birth is in the future", field="date_of_birth")
    years = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return float(years)
