"""Caller-facing facade over selection, replacement and voting.

One ``MatchupEngine`` serves one UI session: it remembers the current
matchup and active category filter. Voting is optimistic: the rating update
is handed to the ``VoteQueue`` and the next matchup is drawn immediately,
without waiting for the update to land.
"""

import asyncio
import random
from collections.abc import Iterable, Mapping
from typing import Protocol

from pinranks.categories import CATEGORY_OVERRIDES, CategoryResolver
from pinranks.errors import NotAuthenticated
from pinranks.events import EventHandler, NullEventHandler
from pinranks.logging import get_logger
from pinranks.models import Entity, FilterCategory, Matchup, RatingRecord
from pinranks.rating.queue import VoteQueue
from pinranks.rating.service import RatingService
from pinranks.rating.stores import PreferencesStore
from pinranks.reference_data import ReferenceDataLoader
from pinranks.replacement import ReplacementEngine
from pinranks.selection import select_matchup

log = get_logger(__name__)


class AuthContext(Protocol):
    @property
    def user_id(self) -> str | None:
        ...


class StaticAuthContext:
    """Auth context with a fixed (possibly absent) user."""

    def __init__(self, user_id: str | None = None):
        self._user_id = user_id

    @property
    def user_id(self) -> str | None:
        return self._user_id


def _consume_result(future: asyncio.Future) -> None:
    # Failures are already logged and reported by the queue
    if not future.cancelled():
        future.exception()


class MatchupEngine:
    """Session-level entry point for the UI shell."""

    def __init__(
        self,
        loader: ReferenceDataLoader,
        rating_service: RatingService,
        preferences: PreferencesStore,
        auth: AuthContext,
        vote_queue: VoteQueue | None = None,
        event_handler: EventHandler | None = None,
        rng: random.Random | None = None,
        overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
    ):
        self.loader = loader
        self.rating_service = rating_service
        self.preferences = preferences
        self.auth = auth
        self.event_handler = event_handler or NullEventHandler()
        self.vote_queue = vote_queue or VoteQueue(self.event_handler)
        self.rng = rng or random.Random()
        self.overrides = overrides

        self.matchup: Matchup | None = None
        self.categories: list[FilterCategory] = [FilterCategory.ALL]

    async def _excluded_for_user(self) -> set[str]:
        user_id = self.auth.user_id
        if user_id is None:
            return set()
        prefs = await self.preferences.get(user_id)
        return set(prefs.excluded_group_ids)

    def _require_user(self) -> str:
        user_id = self.auth.user_id
        if user_id is None:
            raise NotAuthenticated("You must be logged in to do this.")
        return user_id

    def _require_matchup(self) -> Matchup:
        if self.matchup is None:
            raise RuntimeError("No current matchup; call fetch_matchup first")
        return self.matchup

    async def fetch_matchup(
        self,
        categories: Iterable[FilterCategory | str] | None = None,
        excluded_group_ids: Iterable[str] | None = None,
    ) -> Matchup | None:
        """Draw a fresh matchup.

        Args:
            categories: Category filter; None keeps the session's current one
            excluded_group_ids: Groups to leave out; None uses the signed-in
                user's stored exclusions

        Returns:
            The new matchup, or None when fewer than two groups are eligible

        Raises:
            DataUnavailable: reference data could not be loaded
        """
        if categories is not None:
            self.categories = [FilterCategory(c) for c in categories] or [FilterCategory.ALL]
        if excluded_group_ids is None:
            excluded = await self._excluded_for_user()
        else:
            excluded = set(excluded_group_ids)

        entities, groups = await self.loader.load()
        selected = select_matchup(
            entities, groups, self.categories, excluded, rng=self.rng, overrides=self.overrides
        )

        if len(selected) < 2:
            log.info(
                "no_matchup_available",
                categories=[str(c) for c in self.categories],
                excluded=len(excluded),
            )
            self.matchup = None
        else:
            self.matchup = Matchup(entities=(selected[0], selected[1]), groups=groups)
            log.info("matchup_ready", entities=[e.id for e in selected])

        self.event_handler.on_matchup_ready(self.matchup)
        return self.matchup

    async def vote(self, winner_side_index: int) -> int:
        """Record a win for one side and move on to the next matchup.

        The rating update runs in the background through the vote queue;
        its outcome is reported via the event handler, never raised here.

        Returns:
            The queue task id of the submitted vote
        """
        user_id = self._require_user()
        matchup = self._require_matchup()
        if winner_side_index not in (0, 1):
            raise ValueError(f"winner_side_index must be 0 or 1, got {winner_side_index}")

        winner = matchup.entities[winner_side_index]
        loser = matchup.entities[1 - winner_side_index]

        entities, _ = await self.loader.load()
        resolver = CategoryResolver(entities, self.overrides)
        winner_category = resolver.resolve(winner)
        loser_category = resolver.resolve(loser)

        async def task() -> RatingRecord:
            return await self.rating_service.process_vote(
                user_id,
                winner.group_id,
                loser.group_id,
                winner_category,
                loser_category,
            )

        task_id, future = self.vote_queue.submit(user_id, task)
        future.add_done_callback(_consume_result)
        log.info("vote_submitted", user_id=user_id, task_id=task_id, winner=winner.group_id, loser=loser.group_id)

        await self.fetch_matchup()
        return task_id

    async def replace_side(self, side_index: int) -> Entity | None:
        """Swap out one side of the current matchup.

        Returns:
            The new entity, or None when the cascade ran dry and a whole new
            matchup was drawn instead
        """
        matchup = self._require_matchup()
        entities, groups = await self.loader.load()
        engine = ReplacementEngine(entities, groups, self.preferences, self.rng, self.overrides)
        excluded = await self._excluded_for_user()
        result = await engine.replace(side_index, matchup, self.categories, excluded)
        return await self._apply_replacement(side_index, matchup, result.entity)

    async def exclude_side(self, side_index: int) -> Entity | None:
        """Mark a side's group as not played by the user and replace it."""
        user_id = self._require_user()
        matchup = self._require_matchup()
        entities, groups = await self.loader.load()
        engine = ReplacementEngine(entities, groups, self.preferences, self.rng, self.overrides)
        result = await engine.exclude_and_replace(user_id, side_index, matchup, self.categories)
        return await self._apply_replacement(side_index, matchup, result.entity)

    async def _apply_replacement(
        self,
        side_index: int,
        matchup: Matchup,
        entity: Entity | None,
    ) -> Entity | None:
        if entity is None:
            self.event_handler.on_side_replaced(side_index, None, True)
            await self.fetch_matchup()
            return None
        self.matchup = matchup.with_side(side_index, entity)
        self.event_handler.on_side_replaced(side_index, entity, False)
        return entity

    async def rankings(self, category: FilterCategory | str | None = None) -> list[tuple[str, int]]:
        """The signed-in user's (group id, score) list, best first."""
        user_id = self._require_user()
        return await self.rating_service.get_rankings(
            user_id, FilterCategory(category) if category is not None else None
        )

    async def wait_for_votes(self) -> None:
        """Block until all background rating updates have finished."""
        await self.vote_queue.join()
