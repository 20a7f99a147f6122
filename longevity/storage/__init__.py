"""
Storage contracts and reference implementations.

The engine depends only on the protocols; the in-memory stores back tests
and local simulations.
"""

from .base import EntryStore, UserProfileStore
from .memory import InMemoryEntryStore, InMemoryUserProfileStore

__all__ = [
    "EntryStore",
    "UserProfileStore",
    "InMemoryEntryStore",
    "InMemoryUserProfileStore",
]
