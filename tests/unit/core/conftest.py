"""Shared catalog fixtures for matchup engine tests."""

from collections.abc import Callable

import pytest

from pinranks.models import Entity, Group


def _entity(
    entity_id: str,
    name: str = "Machine",
    manufacturer: str = "Williams",
    display: str = "dmd",
    features: tuple[str, ...] = (),
    image: str | None = "large",
    kind: str | None = "machine",
) -> Entity:
    images = ()
    if image:
        images = ({"type": "backglass", "urls": {image: f"https://img/{entity_id}/{image}.jpg"}},)
    return Entity(
        id=entity_id,
        display_name=name,
        manufacturer=manufacturer,
        display_technology=display,
        feature_tags=frozenset(features),
        image_refs=images,
        kind=kind,
    )


@pytest.fixture
def make_entity() -> Callable[..., Entity]:
    return _entity


@pytest.fixture
def catalog() -> tuple[list[Entity], list[Group]]:
    """Five groups across every category plus some awkward variants.

    - GEM01: electromechanical, two variants
    - GSS02: alphanumeric
    - GDM03: dmd, with a conversion kit variant
    - GLC04: lcd, premium and pro editions
    - GKT05: only a conversion kit, so never eligible
    - GBL06: blocked manufacturer
    """
    entities = [
        _entity("GEM01-M1", "Fireball", "Bally", "reels"),
        _entity("GEM01-M2", "Fireball Classic", "Bally", "reels", image=None),
        _entity("GSS02-M1", "Xenon", "Bally", "alphanumeric"),
        _entity("GDM03-M1", "Twilight Zone", "Midway", "dmd"),
        _entity("GDM03-M9", "Twilight Zone Kit", "Midway", "dmd", kind="Conversion Kit"),
        _entity("GLC04-M1", "Godzilla (Pro)", "Stern", "lcd", features=("Pro edition",)),
        _entity("GLC04-M2", "Godzilla (Premium)", "Stern", "lcd", features=("Premium edition",)),
        _entity("GKT05-M1", "Retheme", "Homebrew", "dmd", features=("conversion kit",)),
        _entity("GBL06-M1", "Clone", "Mac Pinball", "dmd"),
    ]
    groups = [
        Group(id="GEM01", display_name="Fireball"),
        Group(id="GSS02", display_name="Xenon"),
        Group(id="GDM03", display_name="Twilight Zone"),
        Group(id="GLC04", display_name="Godzilla"),
        Group(id="GKT05", display_name="Retheme"),
        Group(id="GBL06", display_name="Clone"),
    ]
    return entities, groups
