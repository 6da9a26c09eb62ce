"""
Creature catalog: normalization of raw records and the Open5e source.
"""

from .normalizer import (
    CR_TO_XP,
    SpeedInfo,
    classify_role,
    format_cr,
    normalize_catalog,
    normalize_monster,
    parse_challenge_rating,
    parse_speed,
    xp_for_cr,
)
from .open5e import Open5eCatalogSource

__all__ = [
    "CR_TO_XP",
    "SpeedInfo",
    "classify_role",
    "format_cr",
    "normalize_catalog",
    "normalize_monster",
    "parse_challenge_rating",
    "parse_speed",
    "xp_for_cr",
    "Open5eCatalogSource",
]
