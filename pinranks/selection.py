"""Candidate filtering, representative selection and matchup drawing."""

import random
import re
from collections.abc import Iterable, Mapping

from pinranks.categories import (
    CATEGORY_OVERRIDES,
    filter_by_categories,
    is_blocked_manufacturer,
    is_conversion_kit,
)
from pinranks.logging import get_logger
from pinranks.models import Entity, FilterCategory, Group

log = get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_name(name: str | None) -> str:
    """Lowercase and drop everything that is not a-z or 0-9."""
    return _NON_ALNUM.sub("", (name or "").lower())


def _name_match(entity: Entity, group_key: str) -> int:
    """2 for an exact normalized match, 1 for a substring match, else 0."""
    name = normalize_name(entity.display_name)
    if name == group_key:
        return 2
    if group_key in name:
        return 1
    return 0


def _composite_score(entity: Entity, group_key: str) -> int:
    score = {2: 5, 1: 3, 0: 0}[_name_match(entity, group_key)]

    if "Premium edition" in entity.feature_tags:
        score += 2
    elif "Pro edition" in entity.feature_tags:
        score += 1

    if entity.has_usable_image():
        score += 1

    return score


def select_representative(
    group_id: str,
    pool: Iterable[Entity],
    group_display_name: str | None,
) -> Entity | None:
    """Pick the single variant that best represents a group.

    Deterministic for a given pool order: the best name match fixes the
    canonical manufacturer, variants from other manufacturers are dropped,
    and the rest are ranked by name match, edition and image availability.
    Among the ranked variants the first with a usable image wins; if none
    has an image the top-ranked variant is returned.

    Args:
        group_id: Group to resolve
        pool: Candidate entities (may contain other groups)
        group_display_name: The group's canonical name

    Returns:
        The chosen entity, or None if the group has no eligible variant
    """
    variants = [
        e for e in pool
        if e.group_id == group_id and not is_conversion_kit(e)
    ]
    if not variants:
        return None

    group_key = normalize_name(group_display_name)

    # max() keeps the first of equal scores, so ties go to pool order
    best_name_match = max(variants, key=lambda e: _name_match(e, group_key))
    canonical_manufacturer = best_name_match.manufacturer

    same_maker = [e for e in variants if e.manufacturer == canonical_manufacturer]
    prioritized = sorted(same_maker, key=lambda e: _composite_score(e, group_key), reverse=True)

    for entity in prioritized:
        if entity.has_usable_image():
            return entity
    return prioritized[0]


def filter_pool(
    entities: Iterable[Entity],
    categories: Iterable[FilterCategory | str],
    excluded_group_ids: Iterable[str] = (),
    overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
) -> list[Entity]:
    """Apply the candidate filtering pipeline.

    Order: blocked manufacturers, conversion kits, category filter, then
    user exclusions. An exclusion is a group id (every variant of the group
    is dropped) or a full entity id (only that variant).
    """
    catalog = list(entities)
    pool = [
        e for e in catalog
        if not is_blocked_manufacturer(e) and not is_conversion_kit(e)
    ]
    pool = filter_by_categories(pool, categories, overrides, catalog=catalog)

    excluded = set(excluded_group_ids)
    if excluded:
        pool = [e for e in pool if e.group_id not in excluded and e.id not in excluded]
    return pool


def eligible_groups(pool: Iterable[Entity], groups: Iterable[Group]) -> list[Group]:
    """Groups with at least one entity in ``pool``, in ``groups`` order."""
    present = {e.group_id for e in pool}
    return [g for g in groups if g.id in present]


def resolve_groups(groups: Iterable[Group], pool: list[Entity]) -> list[Entity]:
    chosen = []
    for group in groups:
        entity = select_representative(group.id, pool, group.display_name)
        if entity is not None:
            chosen.append(entity)
    return chosen


def select_matchup(
    entities: Iterable[Entity],
    groups: Iterable[Group],
    categories: Iterable[FilterCategory | str],
    excluded_group_ids: Iterable[str] = (),
    rng: random.Random | None = None,
    overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
) -> list[Entity]:
    """Draw two entities from two distinct eligible groups.

    Returns fewer than two entities when fewer than two groups survive the
    filters; callers treat that as "no matchup available".
    """
    rng = rng or random.Random()
    pool = filter_pool(entities, categories, excluded_group_ids, overrides)
    candidates = eligible_groups(pool, groups)
    rng.shuffle(candidates)

    picked: list[Group] = []
    seen: set[str] = set()
    for group in candidates:
        if group.id not in seen:
            picked.append(group)
            seen.add(group.id)
        if len(picked) == 2:
            break

    selected = resolve_groups(picked, pool)
    log.debug(
        "matchup_selected",
        pool_size=len(pool),
        eligible_groups=len(candidates),
        selected=[e.id for e in selected],
    )
    return selected
