"""Category derivation and catalog-wide exclusion rules."""

from collections.abc import Iterable, Mapping

from pinranks.models import DisplayTechnology, Entity, FilterCategory

DISPLAY_TO_CATEGORY: dict[DisplayTechnology, FilterCategory] = {
    DisplayTechnology.REELS: FilterCategory.EM,
    DisplayTechnology.LIGHTS: FilterCategory.EM,
    DisplayTechnology.ALPHANUMERIC: FilterCategory.SOLID_STATE,
    DisplayTechnology.DMD: FilterCategory.DMD,
    DisplayTechnology.LCD: FilterCategory.MODERN,
}

MODERN_CATEGORIES = frozenset({FilterCategory.DMD, FilterCategory.MODERN})

# Keyed by full entity id or bare group id; a full id wins over its group.
# Used where the catalog's display type is wrong or missing.
CATEGORY_OVERRIDES: dict[str, FilterCategory] = {
    "G50Wr-MLeZP": FilterCategory.DMD,          # Revenge from Mars
    "GRL9r-MD34z": FilterCategory.DMD,          # Star Wars Episode 1
    "GR6qB-MQZxk": FilterCategory.SOLID_STATE,  # Harem Cat
    "GR02j-MLy1Z": FilterCategory.SOLID_STATE,  # Dakar
    "GRb2y-MZezV": FilterCategory.SOLID_STATE,  # Motor Show
    "G56Y8-MDlqK": FilterCategory.SOLID_STATE,  # World Cup '90
    "G5Kvx-MQdpl": FilterCategory.SOLID_STATE,  # Baby Pac-Man
    "G4OKd-Mb51r": FilterCategory.SOLID_STATE,  # Granny and the Gators
    "GrJ07-MjB7X": FilterCategory.SOLID_STATE,  # Mac Attack
}

BLOCKED_MANUFACTURERS = frozenset({
    "Mac Pinball",
    "Maguinas",
    "Maguinas / Mac Pinball",
    "I.D.I.",
})

CONVERSION_KIT_MARKER = "conversion kit"


def is_conversion_kit(entity: Entity) -> bool:
    """True if any tag-like field mentions a conversion kit (case-insensitive)."""
    fields = [entity.kind or "", *entity.feature_tags, *entity.keywords]
    return any(CONVERSION_KIT_MARKER in value.lower() for value in fields)


def is_blocked_manufacturer(entity: Entity) -> bool:
    return entity.manufacturer in BLOCKED_MANUFACTURERS


def category_for_display(display: DisplayTechnology | str | None) -> FilterCategory | None:
    """Map a display technology to its category (None for unknown)."""
    if display is None:
        return None
    return DISPLAY_TO_CATEGORY.get(DisplayTechnology(display))


def override_category(
    entity: Entity,
    overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
) -> FilterCategory | None:
    if entity.id in overrides:
        return overrides[entity.id]
    return overrides.get(entity.group_id)


class CategoryResolver:
    """Resolves the effective category of entities within one catalog snapshot.

    Order: override table, then the entity's own display technology, then
    the first sibling variant in the same group that has a known display.
    Sibling lookups are memoised per group for the lifetime of the resolver.
    """

    def __init__(
        self,
        catalog: Iterable[Entity],
        overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
    ):
        self.catalog = list(catalog)
        self.overrides = overrides
        self._sibling_cache: dict[str, FilterCategory | None] = {}

    def _sibling_category(self, group_id: str) -> FilterCategory | None:
        if group_id not in self._sibling_cache:
            found = None
            for candidate in self.catalog:
                if candidate.group_id != group_id:
                    continue
                found = category_for_display(candidate.display_technology)
                if found is not None:
                    break
            self._sibling_cache[group_id] = found
        return self._sibling_cache[group_id]

    def resolve(self, entity: Entity) -> FilterCategory | None:
        overridden = override_category(entity, self.overrides)
        if overridden is not None:
            return overridden
        direct = category_for_display(entity.display_technology)
        if direct is not None:
            return direct
        return self._sibling_category(entity.group_id)


def filter_by_categories(
    entities: list[Entity],
    categories: Iterable[FilterCategory | str],
    overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
    catalog: Iterable[Entity] | None = None,
) -> list[Entity]:
    """Keep entities whose effective category is one of ``categories``.

    Sibling fallback looks up ``catalog`` when given, so a variant that was
    already filtered out (a kit, a blocked maker) can still lend its display
    type to the rest of its group.
    """
    wanted = {FilterCategory(c) for c in categories}
    if FilterCategory.ALL in wanted:
        return list(entities)
    resolver = CategoryResolver(entities if catalog is None else catalog, overrides)
    return [e for e in entities if resolver.resolve(e) in wanted]


def filter_by_priority(
    entities: list[Entity],
    priority: str,
    overrides: Mapping[str, FilterCategory] = CATEGORY_OVERRIDES,
) -> list[Entity]:
    """Filter for batch jobs: ``all``, ``modern`` (DMD and Modern) or one category."""
    if priority == "all":
        return list(entities)
    resolver = CategoryResolver(entities, overrides)
    if priority == "modern":
        return [e for e in entities if resolver.resolve(e) in MODERN_CATEGORIES]
    target = FilterCategory(priority)
    return [e for e in entities if resolver.resolve(e) == target]


def matches_filter(entity: Entity, categories: Iterable[FilterCategory | str]) -> bool:
    """Quick check using only the entity's own display technology."""
    wanted = {FilterCategory(c) for c in categories}
    if FilterCategory.ALL in wanted:
        return True
    return category_for_display(entity.display_technology) in wanted
