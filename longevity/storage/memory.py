"""
In-memory store implementations.

Used by tests and the simulation; in production these contracts are backed by
a document database with transactional writes.
"""

import asyncio
from collections import defaultdict
from datetime import UTC, datetime

import structlog

from longevity.domain.models import AgeState, Entry, UserProfile
from longevity.errors import DuplicateEntryError, NotFoundError

logger = structlog.get_logger(__name__)


class InMemoryEntryStore:
    """
    Entry history keyed by user then date_key.

    A per-user asyncio.Lock makes the exists-then-append sequence atomic, so
    concurrent check-ins for the same day cannot both land.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, Entry]] = defaultdict(dict)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.logger = logger.bind(component="in_memory_entry_store")

    async def exists(self, user_id: str, date_key: str) -> bool:
        return date_key in self._entries.get(user_id, {})

    async def get(self, user_id: str, date_key: str) -> Entry | None:
        return self._entries.get(user_id, {}).get(date_key)

    async def append(self, user_id: str, entry: Entry) -> None:
        async with self._locks[user_id]:
            user_entries = self._entries[user_id]
            if entry.date_key in user_entries:
                raise DuplicateEntryError(user_id, entry.date_key)
            # Yield inside the critical section, as a real backend write would
            await asyncio.sleep(0)
            user_entries[entry.date_key] = entry
        self.logger.debug("entry_appended", user_id=user_id, date_key=entry.date_key)

    async def remove(self, user_id: str, date_key: str) -> None:
        async with self._locks[user_id]:
            self._entries.get(user_id, {}).pop(date_key, None)
        self.logger.debug("entry_removed", user_id=user_id, date_key=date_key)

    async def list(self, user_id: str) -> list[Entry]:
        entries = self._entries.get(user_id, {})
        return [entries[key] for key in sorted(entries)]


class InMemoryUserProfileStore:
    """Profiles keyed by user id."""

    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}
        self.logger = logger.bind(component="in_memory_profile_store")

    async def get(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    async def create(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile
        self.logger.debug("profile_saved", user_id=profile.user_id)

    async def save_state(self, user_id: str, state: AgeState) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFoundError(user_id)
        updated = profile.model_copy(update={"state": state, "updated_at": datetime.now(UTC)})
        self._profiles[user_id] = updated
        return updated
