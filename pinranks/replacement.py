"""Replacing one side of a matchup without redrawing the other.

When a side becomes ineligible (typically because the user just excluded
it) only that side is redrawn. The cascade degrades filter fidelity before
giving up:

1. Normal filters, minus the other side's group; random eligible group.
2. If that group yields no representative, the remaining eligible groups
   in order.
3. If no group was eligible at all, a broad search over the whole catalog
   that ignores category filters but still honours blocked manufacturers,
   conversion kits, user exclusions and the other side's group.
4. Otherwise signal that the caller must draw a whole new matchup.
"""

import random
from collections.abc import Iterable, Mapping

from pydantic import BaseModel

from pinranks.categories import CATEGORY_OVERRIDES
from pinranks.logging import get_logger
from pinranks.models import Entity, FilterCategory, Group, Matchup
from pinranks.rating.stores import PreferencesStore
from pinranks.selection import eligible_groups, filter_pool, select_representative

log = get_logger(__name__)


class ReplacementResult(BaseModel):
    success: bool
    entity: Entity | None = None
    needs_refresh: bool = False

    @classmethod
    def replaced(cls, entity: Entity) -> "ReplacementResult":
        return cls(success=True, entity=entity)

    @classmethod
    def refresh(cls) -> "ReplacementResult":
        return cls(success=False, needs_refresh=True)


class ReplacementEngine:
    """Finds a substitute for one side of a matchup."""

    def __init__(
        self,
        entities: list[Entity],
        groups: list[Group],
        preferences: PreferencesStore | None = None,
        rng: random.Random | None = None,
        overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
    ):
        self.entities = entities
        self.groups = groups
        self.preferences = preferences
        self.rng = rng or random.Random()
        self.overrides = overrides
        self._groups_by_id = {g.id: g for g in groups}

    def _broad_search(self, other_group_id: str, excluded: set[str]) -> Entity | None:
        pool = [
            e for e in filter_pool(self.entities, [FilterCategory.ALL], excluded, self.overrides)
            if e.group_id != other_group_id
        ]
        if not pool:
            return None
        pick = self.rng.choice(pool)
        group = self._groups_by_id.get(pick.group_id)
        if group is None:
            return None
        return select_representative(group.id, pool, group.display_name)

    async def replace(
        self,
        side_index: int,
        matchup: Matchup,
        categories: Iterable[FilterCategory | str],
        excluded_group_ids: Iterable[str] = (),
    ) -> ReplacementResult:
        """Replace the entity at ``side_index`` (0 or 1).

        The returned entity never shares a group with the untouched side.

        Raises:
            ValueError: ``side_index`` is not 0 or 1
        """
        if side_index not in (0, 1):
            raise ValueError(f"side_index must be 0 or 1, got {side_index}")

        excluded = set(excluded_group_ids)
        other_group_id = matchup.entities[1 - side_index].group_id
        old_id = matchup.entities[side_index].id

        pool = [
            e for e in filter_pool(self.entities, categories, excluded, self.overrides)
            if e.group_id != other_group_id
        ]
        candidates = eligible_groups(pool, self.groups)

        if not candidates:
            log.warning("replacement_broad_search", side=side_index, other_group=other_group_id)
            entity = self._broad_search(other_group_id, excluded)
            if entity is None:
                log.error("replacement_exhausted", side=side_index, stage="broad_search")
                return ReplacementResult.refresh()
            log.info("side_replaced", side=side_index, old=old_id, new=entity.id, stage="broad_search")
            return ReplacementResult.replaced(entity)

        first = self.rng.choice(candidates)
        entity = select_representative(first.id, pool, first.display_name)
        if entity is None:
            log.warning("replacement_group_unresolved", side=side_index, group=first.id)
            for group in candidates:
                if group.id == first.id:
                    continue
                entity = select_representative(group.id, pool, group.display_name)
                if entity is not None:
                    break
            if entity is None:
                log.error("replacement_exhausted", side=side_index, stage="eligible_groups")
                return ReplacementResult.refresh()

        log.info("side_replaced", side=side_index, old=old_id, new=entity.id, stage="filtered")
        return ReplacementResult.replaced(entity)

    async def exclude_and_replace(
        self,
        user_id: str,
        side_index: int,
        matchup: Matchup,
        categories: Iterable[FilterCategory | str],
    ) -> ReplacementResult:
        """Exclude the side's group for the user, then replace that side."""
        if self.preferences is None:
            raise RuntimeError("exclude_and_replace needs a preferences store")
        if side_index not in (0, 1):
            raise ValueError(f"side_index must be 0 or 1, got {side_index}")

        group_id = matchup.entities[side_index].group_id
        prefs = await self.preferences.add_excluded_group(user_id, group_id)
        return await self.replace(side_index, matchup, categories, prefs.excluded_group_ids)
