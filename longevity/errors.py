"""
Error taxonomy for the biological-age engine.

Fatal errors abort the single request and carry enough context for the caller
to decide between retry and abort. Anomalies are non-fatal: they are attached
to results and logged, never raised.
"""

from typing import Any


class LongevityError(Exception):
    """Base class for all engine errors."""


class ValidationError(LongevityError, ValueError):
    """Input failed validation (onboarding answers, metrics, date keys, ranges)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DuplicateEntryError(LongevityError):
    """A daily entry already exists for this (user, date_key)."""

    def __init__(self, user_id: str, date_key: str) -> None:
        super().__init__(f"Entry for user {user_id!r} on {date_key} already exists")
        self.user_id = user_id
        self.date_key = date_key


class NotFoundError(LongevityError, LookupError):
    """Operation on a user that has not completed onboarding."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No profile found for user {user_id!r}; complete onboarding first")
        self.user_id = user_id


class AnomalyWarning(UserWarning):
    """
    Non-fatal inconsistency detected while advancing state.

    Kinds:
    - ``same_day_reentry``: calendar gap of zero reached the streak calculator
    - ``clock_skew``: today's date key precedes the last check-in
    """

    def __init__(self, kind: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(f"{kind}: {detail or {}}")
        self.kind = kind
        self.detail = detail or {}
