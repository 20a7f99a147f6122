"""Deterministic biological-age engine.

This package contains the scoring, state transition and trend logic,
isolated from persistence and transport so it can be tested and reasoned
about on its own.
"""
