"""Unit tests for core domain models."""

import pytest
from pydantic import ValidationError

from pinranks.models import (
    DisplayTechnology,
    EloScores,
    Entity,
    FilterCategory,
    Group,
    Matchup,
    VoteEvent,
    normalize_record,
)

# Mark all tests in this module as unit tests
pytestmark = pytest.mark.unit


OPDB_RECORD = {
    "opdb_id": "GrXzD-MjBPX",
    "name": "Godzilla (Premium)",
    "manufacturer": {"manufacturer_id": 12, "name": "Stern"},
    "manufacture_date": "2021-10-01",
    "display": "lcd",
    "features": ["Premium edition"],
    "images": [
        {"type": "backglass", "urls": {"medium": "https://img/m.jpg", "large": "https://img/l.jpg"}},
        {"type": "playfield", "urls": {"small": "https://img/p.jpg"}},
    ],
}


class TestDisplayTechnology:
    def test_known_values(self):
        assert DisplayTechnology("dmd") is DisplayTechnology.DMD
        assert str(DisplayTechnology.REELS) == "reels"

    def test_unknown_values_coerce(self):
        assert DisplayTechnology("plasma") is DisplayTechnology.UNKNOWN


class TestFilterCategory:
    def test_values(self):
        assert FilterCategory.SOLID_STATE.value == "Solid State"
        assert str(FilterCategory.MODERN) == "Modern"

    def test_lcd_alias(self):
        """Older data labels the Modern bucket as LCD."""
        assert FilterCategory("LCD") is FilterCategory.MODERN

    def test_case_insensitive(self):
        assert FilterCategory("dmd") is FilterCategory.DMD

    def test_invalid(self):
        with pytest.raises(ValueError):
            FilterCategory("Pachinko")


class TestEntity:
    def test_from_record(self):
        entity = Entity.from_record(OPDB_RECORD)
        assert entity.id == "GrXzD-MjBPX"
        assert entity.group_id == "GrXzD"
        assert entity.display_name == "Godzilla (Premium)"
        assert entity.manufacturer == "Stern"
        assert entity.display_technology is DisplayTechnology.LCD
        assert "Premium edition" in entity.feature_tags
        assert entity.has_usable_image()

    def test_missing_display_is_unknown(self):
        entity = Entity.from_record({"opdb_id": "G1-M1", "name": "X", "display": None})
        assert entity.display_technology is DisplayTechnology.UNKNOWN

    def test_group_id_uses_first_dash(self):
        entity = Entity(id="GAB12-M1-A7", display_name="x")
        assert entity.group_id == "GAB12"

    def test_small_image_only_is_not_usable(self):
        entity = Entity(
            id="G1-M1",
            display_name="x",
            image_refs=({"type": "backglass", "urls": {"small": "s.jpg"}},),
        )
        assert not entity.has_usable_image()

    def test_non_backglass_image_is_not_usable(self):
        entity = Entity(
            id="G1-M1",
            display_name="x",
            image_refs=({"type": "playfield", "urls": {"large": "l.jpg"}},),
        )
        assert not entity.has_usable_image()

    def test_frozen(self):
        entity = Entity(id="G1-M1", display_name="x")
        with pytest.raises(ValidationError):
            entity.display_name = "y"


class TestGroup:
    def test_from_record(self):
        group = Group.from_record({"opdb_id": "GrXzD", "name": "Godzilla"})
        assert group.id == "GrXzD"
        assert group.display_name == "Godzilla"


class TestEloScores:
    def test_legacy_bare_number(self):
        scores = EloScores.normalize(1250)
        assert scores.all == 1250
        assert scores.score(FilterCategory.EM) == 1200

    def test_none_is_base(self):
        assert EloScores.normalize(None).all == 1200

    def test_mapping_with_categories(self):
        scores = EloScores.normalize({"all": 1300, "DMD": 1290})
        assert scores.score() == 1300
        assert scores.score(FilterCategory.DMD) == 1290
        assert scores.score(FilterCategory.ALL) == 1300

    def test_with_score_returns_copy(self):
        scores = EloScores()
        updated = scores.with_score(FilterCategory.SOLID_STATE, 1215)
        assert updated.score(FilterCategory.SOLID_STATE) == 1215
        assert scores.score(FilterCategory.SOLID_STATE) == 1200
        assert updated.model_dump() == {"all": 1200, "Solid State": 1215}

    def test_normalize_record(self):
        record = normalize_record({"G1": 1210, "G2": {"all": 1190, "EM": 1195}})
        assert record["G1"].all == 1210
        assert record["G2"].score(FilterCategory.EM) == 1195
        assert normalize_record(None) == {}


class TestVoteEvent:
    def test_timestamp_defaults_to_now(self):
        event = VoteEvent(user_id="u1", winner_group_id="G1", loser_group_id="G2")
        assert event.timestamp.tzinfo is not None


class TestMatchup:
    def test_with_side(self):
        a = Entity(id="G1-M1", display_name="a")
        b = Entity(id="G2-M1", display_name="b")
        c = Entity(id="G3-M1", display_name="c")
        matchup = Matchup(entities=(a, b))
        replaced = matchup.with_side(0, c)
        assert replaced.group_ids() == ("G3", "G2")
        assert matchup.group_ids() == ("G1", "G2")
