"""
Persistence contracts.

The engine only imports these protocols; backends satisfy them structurally.
"""

from typing import Protocol

from longevity.domain.models import AgeState, Entry, UserProfile


class EntryStore(Protocol):
    """
    Append-only daily entry history, one entry per (user, date_key).

    ``append`` must check for an existing entry and write in one atomic unit
    (transaction or compare-and-set) and raise DuplicateEntryError on conflict.
    """

    async def exists(self, user_id: str, date_key: str) -> bool: ...

    async def get(self, user_id: str, date_key: str) -> Entry | None: ...

    async def append(self, user_id: str, entry: Entry) -> None: ...

    async def remove(self, user_id: str, date_key: str) -> None:
        """Delete one entry; used to roll back an append whose state write failed."""
        ...

    async def list(self, user_id: str) -> list[Entry]:
        """All entries for ``user_id`` in ascending date_key order."""
        ...


class UserProfileStore(Protocol):
    """Per-user profile and current AgeState; read before and written after every check-in."""

    async def get(self, user_id: str) -> UserProfile | None: ...

    async def create(self, profile: UserProfile) -> None: ...

    async def save_state(self, user_id: str, state: AgeState) -> UserProfile: ...
