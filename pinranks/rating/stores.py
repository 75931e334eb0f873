"""Store protocols consumed by the rating pipeline, with in-memory versions.

The in-memory stores emulate a document database with optimistic
transactions: ``read_modify_write`` snapshots a versioned document, runs the
update function, and commits only if nobody else committed in between,
otherwise it re-runs the whole read-modify-write.
"""

import asyncio
import copy
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pinranks.errors import RatingTransactionConflict
from pinranks.logging import get_logger
from pinranks.models import UserPreferences, VoteEvent

log = get_logger(__name__)

Document = dict[str, Any]
UpdateFn = Callable[[Document | None], Document | Awaitable[Document]]


class UserRatingStore(Protocol):
    async def get(self, key: str) -> Document | None:
        ...

    async def read_modify_write(self, key: str, fn: UpdateFn) -> Document:
        """Atomically replace the document at ``key`` with ``fn(current)``.

        Raises:
            RatingTransactionConflict: the retry budget ran out
        """
        ...


class VoteLogStore(Protocol):
    async def append(self, event: VoteEvent) -> None:
        ...


class PreferencesStore(Protocol):
    async def get(self, user_id: str) -> UserPreferences:
        ...

    async def add_excluded_group(self, user_id: str, group_id: str) -> UserPreferences:
        ...


class InMemoryRatingStore:
    """Versioned document store with optimistic read-modify-write."""

    def __init__(self, max_attempts: int = 5):
        self.max_attempts = max_attempts
        self._docs: dict[str, tuple[int, Document]] = {}
        self.commits = 0
        self.conflicts = 0

    async def get(self, key: str) -> Document | None:
        await asyncio.sleep(0)
        entry = self._docs.get(key)
        return copy.deepcopy(entry[1]) if entry else None

    async def read_modify_write(self, key: str, fn: UpdateFn) -> Document:
        for attempt in range(1, self.max_attempts + 1):
            version, current = self._docs.get(key, (0, None))
            # Yield between read and commit like a real round trip would
            await asyncio.sleep(0)
            updated = fn(copy.deepcopy(current))
            if asyncio.iscoroutine(updated):
                updated = await updated
            await asyncio.sleep(0)

            latest_version = self._docs.get(key, (0, None))[0]
            if latest_version == version:
                self._docs[key] = (version + 1, copy.deepcopy(updated))
                self.commits += 1
                return copy.deepcopy(updated)

            self.conflicts += 1
            log.debug("transaction_conflict", key=key, attempt=attempt)

        raise RatingTransactionConflict(key, self.max_attempts)

    async def put(self, key: str, document: Document) -> None:
        """Overwrite a document unconditionally (fixtures and migrations)."""
        version = self._docs.get(key, (0, None))[0]
        self._docs[key] = (version + 1, copy.deepcopy(document))


class InMemoryVoteLog:
    """Append-only vote log."""

    def __init__(self):
        self.events: list[VoteEvent] = []

    async def append(self, event: VoteEvent) -> None:
        await asyncio.sleep(0)
        self.events.append(event)


class InMemoryPreferencesStore:
    def __init__(self):
        self._prefs: dict[str, UserPreferences] = {}

    async def get(self, user_id: str) -> UserPreferences:
        await asyncio.sleep(0)
        return self._prefs.get(user_id, UserPreferences()).model_copy(deep=True)

    async def add_excluded_group(self, user_id: str, group_id: str) -> UserPreferences:
        prefs = self._prefs.setdefault(user_id, UserPreferences())
        if group_id in prefs.excluded_group_ids:
            log.info("group_already_excluded", user_id=user_id, group_id=group_id)
        else:
            prefs.excluded_group_ids.add(group_id)
            log.info("group_excluded", user_id=user_id, group_id=group_id)
        await asyncio.sleep(0)
        return prefs.model_copy(deep=True)
