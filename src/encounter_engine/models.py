"""
Shared models for the encounter engine.

Enumerations and pydantic models describing normalized creatures, party
profiles and search constraints. Raw catalog records never travel past the
catalog normalizer; everything downstream works with these types.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Combat role assigned to a creature by the catalog normalizer."""
    SPELLCASTER = "spellcaster"
    SKIRMISHER = "skirmisher"
    BRUISER = "bruiser"
    SWARM = "swarm"


# Aliases accepted from older inputs (e.g. "skirmish").
_STYLE_ALIASES: dict[str, str] = {
    "skirmish": "skirmisher",
    "skirmishers": "skirmisher",
    "bruisers": "bruiser",
    "spellcasters": "spellcaster",
    "swarms": "swarm",
}


class Style(str, Enum):
    """Requested role composition for an encounter."""
    ANY = "any"
    SKIRMISHER = "skirmisher"
    BRUISER = "bruiser"
    SPELLCASTER = "spellcaster"
    SWARM = "swarm"

    @property
    def role(self) -> Role | None:
        """The role implied by this style, or None for 'any'."""
        if self is Style.ANY:
            return None
        return Role(self.value)

    @classmethod
    def parse(cls, value: str | Style | None) -> Style:
        """Parse a style name, accepting plural/legacy aliases.

        Raises:
            ValueError: If the value names no known style.
        """
        if isinstance(value, Style):
            return value
        key = (value or "any").strip().lower()
        key = _STYLE_ALIASES.get(key, key)
        return cls(key)


class Difficulty(str, Enum):
    """Encounter difficulty levels."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    DEADLY = "deadly"


class StyleStatus(str, Enum):
    """How well a selection satisfies the requested style."""
    MATCHED = "matched"
    PARTIAL = "partial"
    FELL_BACK = "fell_back"
    NOT_APPLICABLE = "not_applicable"


class ResultLabel(str, Enum):
    """Outcome label of a search."""
    ON_TARGET = "on_target"
    CLOSEST_MATCH = "closest_match"


class VarietyResult(str, Enum):
    """Duplicate readout shown alongside a generated encounter."""
    NO_DUPLICATES = "no_duplicates"
    SOME_DUPLICATES = "some_duplicates"
    DUPLICATES_LIMITED_POOL = "duplicates_limited_pool"


class Candidate(BaseModel):
    """A normalized creature eligible for encounter selection."""

    model_config = ConfigDict(frozen=True)

    identity: str = Field(description="Stable key used for duplicate counting (slug, else name)")
    name: str = Field(description="Display name")
    slug: str | None = Field(default=None, description="Catalog slug, if the source provided one")
    challenge_rating: float = Field(ge=0, description="Canonical numeric challenge rating")
    xp: int = Field(ge=0, description="XP value looked up from the challenge rating")
    type: str = Field(description="Creature type used for theme matching")
    role: Role = Field(description="Classified combat role")
    armor_class: int | None = Field(default=None, description="Armor class, if known")
    hit_points: int | None = Field(default=None, description="Hit points, if known")
    speed_value: int = Field(default=0, ge=0, description="Primary speed in feet per round")
    speed_display: str = Field(default="Unknown", description="Human-readable speed")
    size: str | None = Field(default=None, description="Creature size")
    alignment: str | None = Field(default=None, description="Creature alignment")


class CatalogSnapshot(BaseModel):
    """Immutable snapshot of a normalized catalog.

    Loaded once per process or session and handed explicitly to every
    generation request.
    """

    model_config = ConfigDict(frozen=True)

    candidates: tuple[Candidate, ...] = Field(description="Normalized, deduplicated candidates")
    rejected: int = Field(default=0, ge=0, description="Raw records dropped during normalization")
    source: str = Field(default="unknown", description="Where the raw records came from")
    loaded_at: datetime = Field(default_factory=datetime.now, description="When the snapshot was built")

    def __len__(self) -> int:
        return len(self.candidates)


class PartyProfile(BaseModel):
    """Party inputs that determine the target XP."""
    level: int = Field(description="Party level (1-10)")
    size: int = Field(description="Number of characters in the party")
    difficulty: str = Field(description="Difficulty: easy, medium, hard or deadly")


class SearchConstraints(BaseModel):
    """Soft preferences and hard locks applied to a generation request."""
    theme: str = Field(default="any", description="Creature type substring, or 'any'")
    style: Style = Field(default=Style.ANY, description="Requested role composition")
    prefer_variety: bool = Field(default=False, description="Penalize duplicate creatures")
    lock_theme: bool = Field(default=False, description="Fail instead of falling back on a small theme pool")
    lock_style: bool = Field(default=False, description="Discard trials that do not fully match the style")
