"""
Catalog normalizer.

Turns heterogeneous raw creature records (challenge ratings as numbers or
fraction strings, speeds as free text, maps or bare numbers) into canonical
``Candidate`` models with a derived XP value and a classified combat role.
Records that cannot be given an XP value are dropped here and never reach
the encounter search.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from ..exceptions import CatalogUnusableError
from ..models import Candidate, CatalogSnapshot, Role

logger = logging.getLogger("encounter-engine.catalog")


# =============================================================================
# Constants: Challenge Rating to XP (DMG p.274)
# =============================================================================

CR_TO_XP: dict[float, int] = {
    0:    10,
    0.125: 25,
    0.25: 50,
    0.5:  100,
    1:    200,
    2:    450,
    3:    700,
    4:    1100,
    5:    1800,
    6:    2300,
    7:    2900,
    8:    3900,
    9:    5000,
    10:   5900,
    11:   7200,
    12:   8400,
    13:   10000,
    14:   11500,
    15:   13000,
    16:   15000,
    17:   18000,
    18:   20000,
    19:   22000,
    20:   25000,
    21:   33000,
    22:   41000,
    23:   50000,
    24:   62000,
    25:   75000,
    26:   90000,
    27:   105000,
    28:   120000,
    29:   135000,
    30:   155000,
}


# =============================================================================
# Constants: Role heuristics
# =============================================================================

# Matched at the start of a word ("spellcasting", "magical", "sorcerer")
SPELLCASTING_INDICATORS: tuple[str, ...] = (
    "spell", "magic", "enchant", "arcane", "divine",
    "sorcer", "wizard", "warlock", "druid",
)

# "cast" only as a word or verb form, so "castle" and "forecast" do not count
_SPELLCASTING_RE = re.compile(
    r"\b(?:" + "|".join(SPELLCASTING_INDICATORS) + r")"
    r"|\bcast(?:s|ing|er|ers)?\b"
)

MOBILITY_INDICATORS: tuple[str, ...] = ("fly", "climb", "burrow", "swim", "hover")

SWARM_MAX_CR = 0.5
SKIRMISHER_FAST_SPEED = 40
SKIRMISHER_MOBILE_SPEED = 30
BRUISER_HIGH_AC = 16

# (max CR inclusive, HP baseline); CRs above the last step use BRUISER_HP_CEILING
BRUISER_HP_BASELINES: list[tuple[float, int]] = [
    (0.5, 12),
    (1,   22),
    (2,   45),
    (4,   75),
    (6,   110),
]
BRUISER_HP_CEILING = 140

# Raw text fields scanned for spellcasting indicators
_ROLE_TEXT_FIELDS = ("actions", "special_abilities", "reactions", "legendary_actions", "desc")

_NUMBER_RE = re.compile(r"\d+")


# =============================================================================
# Challenge rating and XP
# =============================================================================

def parse_challenge_rating(value: Any) -> float | None:
    """Parse a raw challenge rating into its canonical float value.

    Accepts numbers, fraction strings ("1/8", "1/4", "1/2") and numeric
    strings ("2", "0.5").

    Args:
        value: Raw challenge rating from a catalog record.

    Returns:
        The challenge rating as a float, or None if it cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        cr = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if "/" in text:
            parts = text.split("/")
            if len(parts) != 2:
                return None
            try:
                numerator = float(parts[0])
                denominator = float(parts[1])
            except ValueError:
                return None
            if denominator == 0:
                return None
            cr = numerator / denominator
        else:
            try:
                cr = float(text)
            except ValueError:
                return None
    else:
        return None

    if not math.isfinite(cr):
        return None
    return cr


def xp_for_cr(cr: float | None) -> int | None:
    """Look up the XP value for a challenge rating.

    Returns:
        XP value, or None when the rating has no table entry.
    """
    if cr is None:
        return None
    return CR_TO_XP.get(cr)


def format_cr(cr: float) -> str:
    """Format a CR value for display (e.g. '1/8', '1/2', '5')."""
    if cr == 0.125:
        return "1/8"
    elif cr == 0.25:
        return "1/4"
    elif cr == 0.5:
        return "1/2"
    elif cr == int(cr):
        return str(int(cr))
    else:
        return str(cr)


# =============================================================================
# Speed
# =============================================================================

@dataclass(frozen=True)
class SpeedInfo:
    """Parsed movement data.

    Attributes:
        value: Primary speed in feet (walk when known), 0 when unknown
        text: Lower-cased searchable text containing all movement modes
        display: Human-readable speed, 'Unknown' when nothing parsed
    """
    value: int = 0
    text: str = ""
    display: str = "Unknown"


UNKNOWN_SPEED = SpeedInfo()


def _first_number(text: str) -> int:
    match = _NUMBER_RE.search(text)
    return int(match.group(0)) if match else 0


def parse_speed(speed: Any) -> SpeedInfo:
    """Extract the primary speed from free text, a movement map or a number.

    Never raises: anything unparsable yields ``UNKNOWN_SPEED``.

    Examples:
        "30 ft., fly 60 ft."          -> value 30
        {"walk": 30, "fly": 60}       -> value 30
        {"fly": "50 ft."}             -> value 50
        {"walk": 0, "fly": 30}        -> value 30
        40                            -> value 40
    """
    try:
        if speed is None or speed == "" or speed == {}:
            return UNKNOWN_SPEED

        if isinstance(speed, bool):
            return UNKNOWN_SPEED

        if isinstance(speed, str):
            return SpeedInfo(
                value=_first_number(speed),
                text=speed.lower(),
                display=speed.strip() or "Unknown",
            )

        if isinstance(speed, Mapping):
            parts: list[str] = []
            for mode, amount in speed.items():
                if not amount:
                    continue
                if amount is True:
                    parts.append(str(mode))
                elif isinstance(amount, (int, float)):
                    parts.append(f"{mode} {amount} ft.")
                else:
                    parts.append(f"{mode} {amount}")

            text = " ".join(parts).lower()
            # A zero or missing walk defers to the first listed mode (flying-only creatures)
            walk = speed.get("walk")
            value = _first_number(str(walk)) if walk and walk is not True else 0
            if not value:
                value = _first_number(text)
            return SpeedInfo(
                value=value,
                text=text,
                display=", ".join(parts) or "Unknown",
            )

        if isinstance(speed, (int, float)):
            if not math.isfinite(speed) or speed < 0:
                return UNKNOWN_SPEED
            feet = int(speed)
            return SpeedInfo(value=feet, text=f"{feet} ft.", display=f"{feet} ft.")

        text = str(speed)
        return SpeedInfo(value=_first_number(text), text=text.lower(), display=text or "Unknown")

    except Exception as e:
        logger.debug(f"Unparsable speed {speed!r}: {e}")
        return UNKNOWN_SPEED


# =============================================================================
# Role classification
# =============================================================================

def hp_baseline(cr: float) -> int:
    """Hit point baseline above which a creature counts as tough for its CR."""
    for max_cr, baseline in BRUISER_HP_BASELINES:
        if cr <= max_cr:
            return baseline
    return BRUISER_HP_CEILING


def has_spellcasting(text: str) -> bool:
    return _SPELLCASTING_RE.search(text.lower()) is not None


def classify_role(
    challenge_rating: float,
    armor_class: int | None,
    hit_points: int | None,
    speed: SpeedInfo,
    ability_text: str = "",
) -> Role:
    """Assign exactly one combat role using fixed-priority heuristics.

    Order (first match wins):
    0. Swarm for any creature of CR 1/2 or lower
    1. Spellcaster when ability text mentions spellcasting
    2. Skirmisher for speed >= 40, or speed >= 30 with a mobility mode
    3. Bruiser for AC >= 16 or HP above the CR baseline
    4. Swarm otherwise

    Args:
        challenge_rating: Canonical CR.
        armor_class: Armor class, if known.
        hit_points: Hit points, if known.
        speed: Parsed speed.
        ability_text: Concatenated action/ability/reaction text.

    Returns:
        The classified Role.
    """
    if challenge_rating <= SWARM_MAX_CR:
        return Role.SWARM

    if ability_text and has_spellcasting(ability_text):
        return Role.SPELLCASTER

    if speed.value >= SKIRMISHER_FAST_SPEED:
        return Role.SKIRMISHER
    if speed.value >= SKIRMISHER_MOBILE_SPEED and any(m in speed.text for m in MOBILITY_INDICATORS):
        return Role.SKIRMISHER

    high_ac = armor_class is not None and armor_class >= BRUISER_HIGH_AC
    high_hp = hit_points is not None and hit_points > hp_baseline(challenge_rating)
    if high_ac or high_hp:
        return Role.BRUISER

    return Role.SWARM


# =============================================================================
# Record normalization
# =============================================================================

def _coerce_int(value: Any) -> int | None:
    """Read an integer stat that may arrive as a number, text or AC list."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        return int(match.group(0)) if match else None
    if isinstance(value, Mapping):
        return _coerce_int(value.get("value"))
    if isinstance(value, (list, tuple)) and value:
        return _coerce_int(value[0])
    return None


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _text_or_none(value: Any) -> str | None:
    """Keep descriptive fields only when they are non-empty text."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flatten_text(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return " ".join(_flatten_text(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return " ".join(_flatten_text(v) for v in value)
    return str(value)


def ability_text(record: Mapping[str, Any]) -> str:
    """Concatenate the text fields scanned for spellcasting indicators."""
    chunks = (_flatten_text(record.get(field)) for field in _ROLE_TEXT_FIELDS)
    return " ".join(chunk for chunk in chunks if chunk)


def normalize_monster(record: Mapping[str, Any]) -> Candidate | None:
    """Normalize one raw catalog record.

    Args:
        record: Raw creature record (e.g. an Open5e monster).

    Returns:
        A Candidate, or None when the record is missing its name or type,
        or its challenge rating has no XP mapping, or a stat fails
        validation. Odd descriptive fields (size, alignment) are dropped
        rather than rejecting the record.
    """
    if not isinstance(record, Mapping):
        return None

    name = record.get("name")
    creature_type = record.get("type")
    if not name or not isinstance(name, str) or not creature_type:
        return None

    cr = parse_challenge_rating(_first_present(record, "challenge_rating", "cr"))
    xp = xp_for_cr(cr)
    if cr is None or xp is None:
        logger.debug(f"Dropping {name!r}: no XP mapping for challenge rating {record.get('challenge_rating', record.get('cr'))!r}")
        return None

    armor_class = _coerce_int(_first_present(record, "armor_class", "armour_class", "ac"))
    hit_points = _coerce_int(_first_present(record, "hit_points", "hp"))
    speed = parse_speed(record.get("speed"))
    role = classify_role(cr, armor_class, hit_points, speed, ability_text(record))

    slug = record.get("slug") or None
    try:
        return Candidate(
            identity=str(slug) if slug else name,
            name=name,
            slug=str(slug) if slug else None,
            challenge_rating=cr,
            xp=xp,
            type=str(creature_type),
            role=role,
            armor_class=armor_class,
            hit_points=hit_points,
            speed_value=speed.value,
            speed_display=speed.display,
            size=_text_or_none(record.get("size")),
            alignment=_text_or_none(record.get("alignment")),
        )
    except ValidationError as e:
        logger.debug(f"Dropping {name!r}: {e.error_count()} invalid field(s)")
        return None


def normalize_catalog(records: Iterable[Mapping[str, Any]], source: str = "unknown") -> CatalogSnapshot:
    """Normalize a flattened list of raw records into a catalog snapshot.

    Records are deduplicated by identity (first occurrence wins).

    Raises:
        CatalogUnusableError: If no record survives normalization.
    """
    candidates: list[Candidate] = []
    seen: set[str] = set()
    rejected = 0

    for record in records:
        candidate = normalize_monster(record)
        if candidate is None:
            rejected += 1
            continue
        if candidate.identity in seen:
            continue
        seen.add(candidate.identity)
        candidates.append(candidate)

    if not candidates:
        raise CatalogUnusableError(
            "No suitable monsters available in the catalog.",
            details={"source": source, "rejected": rejected},
        )

    logger.info(f"Normalized catalog from {source}: {len(candidates)} candidates, {rejected} rejected")
    return CatalogSnapshot(candidates=tuple(candidates), rejected=rejected, source=source)
