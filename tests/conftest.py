"""
Pytest configuration and fixtures for encounter-engine tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing encounter_engine
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from encounter_engine.catalog.normalizer import xp_for_cr
from encounter_engine.models import Candidate, CatalogSnapshot, Role


def _candidate(
    name: str,
    cr: float = 1,
    role: Role = Role.BRUISER,
    creature_type: str = "humanoid",
    slug: str | None = None,
) -> Candidate:
    identity = slug or name.lower().replace(" ", "-")
    return Candidate(
        identity=identity,
        name=name,
        slug=identity,
        challenge_rating=cr,
        xp=xp_for_cr(cr),
        type=creature_type,
        role=role,
        armor_class=14,
        hit_points=30,
        speed_value=30,
        speed_display="walk 30 ft.",
    )


@pytest.fixture
def make_candidate():
    """Factory for normalized candidates."""
    return _candidate


@pytest.fixture
def make_catalog():
    """Factory wrapping candidates into a snapshot."""
    def _make(candidates) -> CatalogSnapshot:
        return CatalogSnapshot(candidates=tuple(candidates), source="test")
    return _make


@pytest.fixture
def sample_catalog() -> CatalogSnapshot:
    """A 48-creature catalog: 36 humanoids across the CR range plus 12 undead."""
    crs = [0.125, 0.25, 0.5, 1, 2, 3]
    roles = [Role.BRUISER, Role.SKIRMISHER, Role.SPELLCASTER]
    candidates = []
    for i in range(36):
        cr = crs[i % len(crs)]
        role = Role.SWARM if cr <= 0.5 else roles[i % len(roles)]
        candidates.append(_candidate(f"Humanoid {i}", cr=cr, role=role))
    for i in range(12):
        cr = crs[i % len(crs)]
        role = Role.SWARM if cr <= 0.5 else Role.BRUISER
        candidates.append(_candidate(f"Undead {i}", cr=cr, role=role, creature_type="undead"))
    return CatalogSnapshot(candidates=tuple(candidates), source="test")


# ==============================================================================
# Sample Open5e Data
# ==============================================================================

SAMPLE_GOBLIN = {
    "slug": "goblin",
    "name": "Goblin",
    "size": "Small",
    "type": "humanoid",
    "subtype": "goblinoid",
    "alignment": "neutral evil",
    "armor_class": 15,
    "armor_desc": "leather armor, shield",
    "hit_points": 7,
    "hit_dice": "2d6",
    "speed": {"walk": 30},
    "challenge_rating": "1/4",
    "cr": 0.25,
    "actions": [
        {
            "name": "Scimitar",
            "desc": "Melee Weapon Attack: +4 to hit, reach 5 ft., one target. Hit: 5 (1d6 + 2) slashing damage.",
        }
    ],
    "special_abilities": [
        {
            "name": "Nimble Escape",
            "desc": "The goblin can take the Disengage or Hide action as a bonus action on each of its turns.",
        }
    ],
    "document__slug": "wotc-srd",
}

SAMPLE_MAGE = {
    "slug": "mage",
    "name": "Mage",
    "size": "Medium",
    "type": "humanoid",
    "alignment": "any alignment",
    "armor_class": 12,
    "hit_points": 40,
    "speed": {"walk": 30},
    "challenge_rating": "6",
    "actions": [{"name": "Dagger", "desc": "Melee or Ranged Weapon Attack."}],
    "special_abilities": [
        {"name": "Spellcasting", "desc": "The mage is a 9th-level spellcaster."}
    ],
    "document__slug": "wotc-srd",
}

SAMPLE_OGRE = {
    "slug": "ogre",
    "name": "Ogre",
    "size": "Large",
    "type": "giant",
    "alignment": "chaotic evil",
    "armor_class": 11,
    "hit_points": 59,
    "speed": "40 ft.",
    "challenge_rating": "2",
    "actions": [{"name": "Greatclub", "desc": "Melee Weapon Attack."}],
    "document__slug": "wotc-srd",
}


@pytest.fixture
def goblin_record() -> dict:
    return dict(SAMPLE_GOBLIN)


@pytest.fixture
def open5e_records() -> list[dict]:
    return [dict(SAMPLE_GOBLIN), dict(SAMPLE_MAGE), dict(SAMPLE_OGRE)]
