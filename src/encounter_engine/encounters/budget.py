"""
XP budget calculator.

Implements the DMG encounter maths used by the composition search: the
party's target XP for a difficulty, and the group-size multiplier that
turns a selection's base XP into adjusted XP.
"""

from __future__ import annotations

import math
from typing import Sequence

from ..exceptions import InvalidPartyError
from ..models import Candidate, Difficulty


# =============================================================================
# Constants: XP Thresholds per Character Level (DMG p.82)
# =============================================================================

# Per-character XP thresholds. Key: character level (1-10),
# Value: dict of difficulty -> XP threshold
XP_THRESHOLDS: dict[int, dict[str, int]] = {
    1:  {"easy": 25,  "medium": 50,   "hard": 75,   "deadly": 100},
    2:  {"easy": 50,  "medium": 100,  "hard": 150,  "deadly": 200},
    3:  {"easy": 75,  "medium": 150,  "hard": 225,  "deadly": 400},
    4:  {"easy": 125, "medium": 250,  "hard": 375,  "deadly": 500},
    5:  {"easy": 250, "medium": 500,  "hard": 750,  "deadly": 1100},
    6:  {"easy": 300, "medium": 600,  "hard": 900,  "deadly": 1400},
    7:  {"easy": 350, "medium": 750,  "hard": 1100, "deadly": 1700},
    8:  {"easy": 450, "medium": 900,  "hard": 1400, "deadly": 2100},
    9:  {"easy": 550, "medium": 1100, "hard": 1600, "deadly": 2400},
    10: {"easy": 600, "medium": 1200, "hard": 1900, "deadly": 2800},
}

MIN_LEVEL = min(XP_THRESHOLDS)
MAX_LEVEL = max(XP_THRESHOLDS)


# =============================================================================
# Constants: Encounter Multipliers (DMG p.82)
# =============================================================================

# Ordered list of (monster_count_threshold, multiplier).
# For a given number of monsters, use the multiplier of the last entry
# whose threshold is <= monster_count.
ENCOUNTER_MULTIPLIERS: list[tuple[int, float]] = [
    (1,  1.0),
    (2,  1.5),
    (3,  2.0),
    (7,  2.5),
    (11, 3.0),
    (15, 4.0),
]


def target_xp(level: int, size: int, difficulty: str | Difficulty) -> int:
    """Calculate the party's target XP.

    Args:
        level: Party level (1-10).
        size: Number of characters (>= 1).
        difficulty: 'easy', 'medium', 'hard' or 'deadly'.

    Returns:
        Per-character threshold for the level and difficulty, times size.

    Raises:
        InvalidPartyError: If level, size or difficulty is invalid.
    """
    if isinstance(level, bool) or not isinstance(level, int) or level not in XP_THRESHOLDS:
        raise InvalidPartyError(
            f"Invalid party level: {level!r}. Must be between {MIN_LEVEL} and {MAX_LEVEL}",
            details={"level": level},
        )
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise InvalidPartyError(f"Party size must be >= 1, got {size!r}", details={"size": size})

    key = difficulty.value if isinstance(difficulty, Difficulty) else str(difficulty).lower()
    row = XP_THRESHOLDS[level]
    if key not in row:
        raise InvalidPartyError(
            f"Invalid difficulty: '{difficulty}'. Must be one of: easy, medium, hard, deadly",
            details={"difficulty": difficulty},
        )
    return row[key] * size


def group_multiplier(count: int) -> float:
    """Get the encounter multiplier for a number of monsters.

    Counts of 0 or 1 use the single-monster multiplier.
    """
    multiplier = ENCOUNTER_MULTIPLIERS[0][1]
    for threshold, value in ENCOUNTER_MULTIPLIERS:
        if count >= threshold:
            multiplier = value
    return multiplier


def round_xp(value: float) -> int:
    """Round half up, so 37.5 becomes 38."""
    return int(math.floor(value + 0.5))


def base_xp(monsters: Sequence[Candidate]) -> int:
    return sum(m.xp for m in monsters)


def adjusted_xp(monsters: Sequence[Candidate]) -> int:
    """Base XP scaled by the group multiplier for the selection's size."""
    return round_xp(base_xp(monsters) * group_multiplier(len(monsters)))
