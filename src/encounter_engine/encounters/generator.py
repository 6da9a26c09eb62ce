"""
Encounter generation flow.

Ties the components together for one request: clamp the raw inputs, build
the candidate pool, compute the target XP, run the composition search and
assemble a versioned ``EncounterDocument``.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..config import EngineSettings
from ..models import CatalogSnapshot, PartyProfile, SearchConstraints, Style
from .budget import MAX_LEVEL, MIN_LEVEL, target_xp
from .document import EncounterDocument, EncounterInputs, EncounterOutput, EncounterQuality
from .evaluators import variety_result
from .pool import ANY_THEME, build_candidate_pool, normalize_theme
from .search import SearchOutcome, find_best_encounter

logger = logging.getLogger("encounter-engine.encounters")

DEFAULT_LEVEL = 5
DEFAULT_SIZE = 4
DEFAULT_DIFFICULTY = "medium"


def _clamp_int(value: Any, low: int, high: int | None, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    try:
        number = int(float(value)) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    number = max(low, number)
    if high is not None:
        number = min(high, number)
    return number


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class GenerationRequest(BaseModel):
    """Raw generation inputs, clamped to valid bounds rather than rejected.

    Level is clamped to 1-10 and size to at least 1; unparsable numbers
    fall back to level 5 / size 4. Unknown styles fall back to 'any'.
    Difficulty is only lower-cased here; an unknown difficulty is rejected
    by the budget calculator.
    """
    party_level: int = Field(default=DEFAULT_LEVEL, description="Party level (1-10)")
    party_size: int = Field(default=DEFAULT_SIZE, description="Number of characters")
    theme: str = Field(default=ANY_THEME, description="Creature type substring, or 'any'")
    difficulty: str = Field(default=DEFAULT_DIFFICULTY, description="easy, medium, hard or deadly")
    style: Style = Field(default=Style.ANY, description="Requested style")
    prefer_variety: bool = Field(default=False)
    lock_theme: bool = Field(default=False)
    lock_style: bool = Field(default=False)

    @field_validator("party_level", mode="before")
    @classmethod
    def clamp_level(cls, v: Any) -> int:
        return _clamp_int(v, MIN_LEVEL, MAX_LEVEL, DEFAULT_LEVEL)

    @field_validator("party_size", mode="before")
    @classmethod
    def clamp_size(cls, v: Any) -> int:
        return _clamp_int(v, 1, None, DEFAULT_SIZE)

    @field_validator("theme", mode="before")
    @classmethod
    def normalize_theme_input(cls, v: Any) -> str:
        return normalize_theme(v if isinstance(v, str) else None)

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, v: Any) -> str:
        if v is None:
            return DEFAULT_DIFFICULTY
        return str(getattr(v, "value", v)).strip().lower() or DEFAULT_DIFFICULTY

    @field_validator("style", mode="before")
    @classmethod
    def parse_style(cls, v: Any) -> Style:
        try:
            return Style.parse(v)
        except (ValueError, AttributeError):
            return Style.ANY

    @field_validator("prefer_variety", "lock_theme", "lock_style", mode="before")
    @classmethod
    def coerce_flags(cls, v: Any) -> bool:
        return _coerce_bool(v)

    @property
    def party(self) -> PartyProfile:
        return PartyProfile(level=self.party_level, size=self.party_size, difficulty=self.difficulty)

    @property
    def constraints(self) -> SearchConstraints:
        return SearchConstraints(
            theme=self.theme,
            style=self.style,
            prefer_variety=self.prefer_variety,
            lock_theme=self.lock_theme,
            lock_style=self.lock_style,
        )


def build_document(
    request: GenerationRequest,
    outcome: SearchOutcome,
    target: int,
    did_theme_fallback: bool,
    theme_pool_size: int,
) -> EncounterDocument:
    """Assemble the versioned document for a finished search."""
    trial = outcome.trial
    return EncounterDocument(
        inputs=EncounterInputs(
            party_level=request.party_level,
            party_size=request.party_size,
            theme=request.theme,
            difficulty=request.difficulty,
            style=request.style,
            prefer_variety=request.prefer_variety,
            lock_theme=request.lock_theme,
            lock_style=request.lock_style,
        ),
        output=EncounterOutput(
            monsters=list(trial.monsters),
            base_xp=trial.base_xp,
            multiplier=trial.multiplier,
            adjusted_xp=trial.adjusted_xp,
            target_xp=target,
            result_label=outcome.label,
            did_theme_fallback=did_theme_fallback,
            theme_pool_size=theme_pool_size,
        ),
        quality=EncounterQuality(
            style_match=trial.style.status,
            variety_result=variety_result(trial.duplicates, request.prefer_variety),
        ),
    )


def generate_encounter(
    catalog: CatalogSnapshot,
    request: GenerationRequest | dict[str, Any],
    rng: random.Random | None = None,
    settings: EngineSettings | None = None,
    max_attempts: int | None = None,
) -> EncounterDocument:
    """Generate an encounter for a request against a catalog snapshot.

    Args:
        catalog: Normalized catalog snapshot.
        request: Generation inputs (raw mappings are clamped).
        rng: Random source; pass a seeded one for reproducible results.
        settings: Engine settings (defaults when omitted).
        max_attempts: Override of the attempt cap (e.g. for rerolls).

    Returns:
        EncounterDocument for the best encounter found.

    Raises:
        ThemeLockError, InvalidPartyError, StyleLockError, SearchExhaustedError
    """
    settings = settings or EngineSettings()
    if not isinstance(request, GenerationRequest):
        request = GenerationRequest.model_validate(request)

    pool = build_candidate_pool(
        catalog,
        theme=request.theme,
        lock_theme=request.lock_theme,
        min_pool=settings.theme_min_pool,
    )
    target = target_xp(request.party_level, request.party_size, request.difficulty)

    outcome = find_best_encounter(
        pool,
        target,
        request.constraints,
        rng=rng,
        max_attempts=max_attempts or settings.max_attempts,
        tolerance=settings.tolerance,
        count_weights=settings.count_weights,
    )

    logger.info(
        f"Generated {outcome.label.value} encounter: {len(outcome.trial.monsters)} monsters, "
        f"{outcome.trial.adjusted_xp}/{target} XP after {outcome.attempts} attempts"
    )
    return build_document(request, outcome, target, pool.did_fallback, pool.theme_pool_size)


def reroll_encounter(
    catalog: CatalogSnapshot,
    request: GenerationRequest,
    rng: random.Random | None = None,
    settings: EngineSettings | None = None,
) -> EncounterDocument:
    """Generate again for the same request with the smaller reroll attempt cap."""
    settings = settings or EngineSettings()
    return generate_encounter(catalog, request, rng=rng, settings=settings, max_attempts=settings.reroll_attempts)
