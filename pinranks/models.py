"""Domain models for catalog entities, groups, preferences and ratings."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

BASE_SCORE = 1200


class DisplayTechnology(str, Enum):
    """Display hardware reported for a catalog entity."""
    REELS = "reels"
    LIGHTS = "lights"
    ALPHANUMERIC = "alphanumeric"
    DMD = "dmd"
    LCD = "lcd"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "DisplayTechnology":
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class FilterCategory(str, Enum):
    """Coarse display-technology bucket used for filtering and segmented ratings."""
    ALL = "All"
    EM = "EM"
    SOLID_STATE = "Solid State"
    DMD = "DMD"
    MODERN = "Modern"

    @classmethod
    def _missing_(cls, value: object) -> "FilterCategory | None":
        # Older records bucket LCD machines under their own label
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "lcd":
                return cls.MODERN
            if lowered in ("solidstate", "solid_state"):
                return cls.SOLID_STATE
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None

    def __str__(self) -> str:
        return self.value


class ImageUrls(BaseModel):
    model_config = ConfigDict(frozen=True)

    small: str | None = None
    medium: str | None = None
    large: str | None = None


class ImageRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    urls: ImageUrls = Field(default_factory=ImageUrls)


class Entity(BaseModel):
    """One catalogued variant of a real-world machine.

    The ``id`` has the form ``<groupId>-<variantSuffix>``; ``group_id`` is
    always derived from it and never stored independently.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    manufacturer: str | None = None
    release_date: str | None = None
    display_technology: DisplayTechnology = DisplayTechnology.UNKNOWN
    feature_tags: frozenset[str] = frozenset()
    image_refs: tuple[ImageRef, ...] = ()
    # Tag-like fields scanned for conversion kits
    kind: str | None = None
    keywords: tuple[str, ...] = ()

    @field_validator("display_technology", mode="before")
    @classmethod
    def _coerce_display(cls, value: Any) -> Any:
        if value is None:
            return DisplayTechnology.UNKNOWN
        if isinstance(value, str):
            return DisplayTechnology(value.lower())
        return value

    @property
    def group_id(self) -> str:
        return self.id.split("-", 1)[0]

    def backglass(self) -> ImageRef | None:
        for image in self.image_refs:
            if image.type == "backglass":
                return image
        return None

    def has_usable_image(self) -> bool:
        """True when a backglass image exists at large or medium resolution."""
        image = self.backglass()
        return bool(image and (image.urls.large or image.urls.medium))

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Entity":
        """Build an Entity from an OPDB-style machine record."""
        manufacturer = record.get("manufacturer")
        if isinstance(manufacturer, dict):
            manufacturer = manufacturer.get("name")
        return cls(
            id=record["opdb_id"],
            display_name=record.get("name") or "",
            manufacturer=manufacturer,
            release_date=record.get("manufacture_date"),
            display_technology=record.get("display"),
            feature_tags=frozenset(record.get("features") or ()),
            image_refs=tuple(
                ImageRef(type=img.get("type", ""), urls=ImageUrls(**(img.get("urls") or {})))
                for img in record.get("images") or ()
            ),
            kind=record.get("type"),
            keywords=tuple(record.get("keywords") or ()),
        )


class Group(BaseModel):
    """Canonical cluster of variants sharing a group id."""
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str = ""

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Group":
        return cls(id=record["opdb_id"], display_name=record.get("name") or "")


class UserPreferences(BaseModel):
    excluded_group_ids: set[str] = Field(default_factory=set)


class EloScores(BaseModel):
    """Rating entry for one group: the overall score plus per-category scores."""
    model_config = ConfigDict(extra="allow")

    all: int = BASE_SCORE

    @classmethod
    def normalize(cls, raw: Any) -> "EloScores":
        """Coerce a stored rating entry into an EloScores.

        Legacy records hold a bare number instead of a mapping.
        """
        if isinstance(raw, EloScores):
            return raw.model_copy(deep=True)
        if isinstance(raw, dict):
            return cls(**{key: int(round(value)) for key, value in raw.items() if value is not None})
        if raw is None:
            return cls()
        return cls(all=int(round(raw)))

    def score(self, category: FilterCategory | str | None = None) -> int:
        """Score for a category (``None`` or All means the overall score)."""
        if category is None or category == FilterCategory.ALL:
            return self.all
        value = (self.model_extra or {}).get(str(category))
        return BASE_SCORE if value is None else value

    def with_score(self, category: FilterCategory | str | None, value: int) -> "EloScores":
        data = self.model_dump()
        if category is None or category == FilterCategory.ALL:
            data["all"] = value
        else:
            data[str(category)] = value
        return EloScores(**data)


RatingRecord = dict[str, EloScores]


def normalize_record(raw: dict[str, Any] | None) -> RatingRecord:
    """Normalize a stored ratings mapping at the read boundary."""
    return {group_id: EloScores.normalize(entry) for group_id, entry in (raw or {}).items()}


class VoteEvent(BaseModel):
    """Append-only record of one head-to-head outcome."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    winner_group_id: str
    loser_group_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Matchup(BaseModel):
    """Session-only pairing shown to the user; never persisted."""
    entities: tuple[Entity, Entity]
    groups: list[Group] = Field(default_factory=list)

    def group_ids(self) -> tuple[str, str]:
        return self.entities[0].group_id, self.entities[1].group_id

    def with_side(self, side_index: int, entity: Entity) -> "Matchup":
        entities = list(self.entities)
        entities[side_index] = entity
        return Matchup(entities=(entities[0], entities[1]), groups=self.groups)
