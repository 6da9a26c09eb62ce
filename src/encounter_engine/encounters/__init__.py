"""
Encounter composition: XP budgets, candidate pools, evaluators, search and documents.
"""

from .budget import (
    ENCOUNTER_MULTIPLIERS,
    XP_THRESHOLDS,
    adjusted_xp,
    base_xp,
    group_multiplier,
    target_xp,
)
from .document import (
    DOCUMENT_VERSION,
    EncounterDocument,
    deviation_text,
    export_document,
    import_document,
    write_document,
)
from .evaluators import DUPLICATE_MAX, duplicate_report, style_match
from .generator import GenerationRequest, generate_encounter, reroll_encounter
from .pool import CandidatePool, build_candidate_pool
from .search import EncounterTrial, SearchOutcome, find_best_encounter

__all__ = [
    "ENCOUNTER_MULTIPLIERS",
    "XP_THRESHOLDS",
    "adjusted_xp",
    "base_xp",
    "group_multiplier",
    "target_xp",
    "DOCUMENT_VERSION",
    "EncounterDocument",
    "deviation_text",
    "export_document",
    "import_document",
    "write_document",
    "DUPLICATE_MAX",
    "duplicate_report",
    "style_match",
    "GenerationRequest",
    "generate_encounter",
    "reroll_encounter",
    "CandidatePool",
    "build_candidate_pool",
    "EncounterTrial",
    "SearchOutcome",
    "find_best_encounter",
]
