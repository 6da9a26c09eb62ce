"""
Composition search.

A bounded stochastic multi-objective search: repeatedly sample 1-4
creatures from the candidate pool, score each trial on XP deviation, style
match and duplicates, keep the best trial seen so far, and stop early as
soon as a trial is acceptable on every objective.

All randomness comes from the injected ``random.Random``, so a seeded
generator makes the search fully reproducible.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from ..exceptions import SearchExhaustedError, StyleLockError
from ..models import Candidate, ResultLabel, SearchConstraints, Style, StyleStatus
from .budget import base_xp, group_multiplier, round_xp
from .evaluators import DUPLICATE_MAX, DuplicateReport, StyleReport, duplicate_report, style_match
from .pool import CandidatePool

logger = logging.getLogger("encounter-engine.encounters")


# =============================================================================
# Constants
# =============================================================================

MAX_ATTEMPTS = 550
TOLERANCE = 0.15
MIN_MONSTERS = 1
MAX_MONSTERS = 4

# Bound on random draws while topping a selection up with repeats
REPEAT_DRAW_LIMIT = 250

STYLE_PENALTY_PARTIAL = 0.08
STYLE_PENALTY_FELL_BACK = 0.18
VARIETY_PENALTY = 0.08

# Score used when the target is 0 and relative deviation is undefined
ZERO_TARGET_SCORE = 999.0


@dataclass(frozen=True)
class EncounterTrial:
    """One scored selection produced during the search."""
    monsters: tuple[Candidate, ...]
    base_xp: int
    multiplier: float
    adjusted_xp: int
    xp_score: float
    style: StyleReport
    duplicates: DuplicateReport
    composite_score: float


@dataclass(frozen=True)
class SearchOutcome:
    """The surviving trial of a search and how it was reached."""
    trial: EncounterTrial
    label: ResultLabel
    attempts: int


# =============================================================================
# Sampling
# =============================================================================

def draw_count(rng: random.Random, count_weights: Sequence[float] | None = None) -> int:
    """Draw a monster count in [1, 4], uniformly unless weights are given."""
    if count_weights is None:
        return rng.randint(MIN_MONSTERS, MAX_MONSTERS)
    counts = list(range(MIN_MONSTERS, MAX_MONSTERS + 1))
    return rng.choices(counts, weights=count_weights, k=1)[0]


def pick_encounter(
    candidates: Sequence[Candidate],
    count: int,
    rng: random.Random,
) -> list[Candidate]:
    """Draw ``count`` creatures from the pool.

    The first pass takes distinct identities from a shuffled copy of the
    pool. If that runs short, repeats are drawn uniformly from the pool,
    never exceeding ``DUPLICATE_MAX`` copies of one identity.
    """
    if not candidates:
        return []

    shuffled = list(candidates)
    rng.shuffle(shuffled)

    picked: list[Candidate] = []
    counts: Counter[str] = Counter()

    for monster in shuffled:
        if len(picked) >= count:
            break
        if monster.identity not in counts:
            counts[monster.identity] = 1
            picked.append(monster)

    draws = 0
    while len(picked) < count and draws < REPEAT_DRAW_LIMIT:
        draws += 1
        monster = shuffled[rng.randrange(len(shuffled))]
        if counts[monster.identity] < DUPLICATE_MAX:
            counts[monster.identity] += 1
            picked.append(monster)

    return picked


# =============================================================================
# Scoring
# =============================================================================

def xp_deviation(adjusted: int, target: int) -> float:
    """Relative deviation of adjusted XP from the target."""
    if target == 0:
        return ZERO_TARGET_SCORE
    return abs(adjusted - target) / target


def style_penalty(style: Style, report: StyleReport) -> float:
    if style is Style.ANY:
        return 0.0
    if report.status is StyleStatus.PARTIAL:
        return STYLE_PENALTY_PARTIAL
    if report.status is StyleStatus.FELL_BACK:
        return STYLE_PENALTY_FELL_BACK
    return 0.0


def variety_penalty(prefer_variety: bool, report: DuplicateReport) -> float:
    return VARIETY_PENALTY if prefer_variety and report.has_duplicates else 0.0


def score_trial(
    monsters: Sequence[Candidate],
    target: int,
    style: Style,
    prefer_variety: bool,
) -> EncounterTrial:
    """Compute XP figures, quality reports and the composite score (lower is better)."""
    base = base_xp(monsters)
    multiplier = group_multiplier(len(monsters))
    adjusted = round_xp(base * multiplier)
    xp_score = xp_deviation(adjusted, target)
    style_report = style_match(monsters, style)
    duplicates = duplicate_report(monsters)

    composite = xp_score + style_penalty(style, style_report) + variety_penalty(prefer_variety, duplicates)

    return EncounterTrial(
        monsters=tuple(monsters),
        base_xp=base,
        multiplier=multiplier,
        adjusted_xp=adjusted,
        xp_score=xp_score,
        style=style_report,
        duplicates=duplicates,
        composite_score=composite,
    )


def violates_style_lock(trial: EncounterTrial, constraints: SearchConstraints) -> bool:
    return constraints.lock_style and not trial.style.satisfied


def is_acceptable(
    trial: EncounterTrial,
    constraints: SearchConstraints,
    distinct_in_pool: int,
    tolerance: float = TOLERANCE,
) -> bool:
    """Early-exit predicate: within tolerance, style satisfied, variety satisfied.

    Duplicates are tolerated when the pool holds fewer distinct creatures
    than the trial needs.
    """
    xp_ok = trial.xp_score <= tolerance
    style_ok = trial.style.satisfied
    variety_ok = (
        not constraints.prefer_variety
        or not trial.duplicates.has_duplicates
        or distinct_in_pool < len(trial.monsters)
    )
    return xp_ok and style_ok and variety_ok


# =============================================================================
# Search
# =============================================================================

def find_best_encounter(
    pool: CandidatePool,
    target: int,
    constraints: SearchConstraints,
    rng: random.Random | None = None,
    max_attempts: int = MAX_ATTEMPTS,
    tolerance: float = TOLERANCE,
    count_weights: Sequence[float] | None = None,
) -> SearchOutcome:
    """Search the pool for the encounter that best fits the target.

    Args:
        pool: Candidate pool for this request.
        target: Target XP.
        constraints: Style, variety and lock settings.
        rng: Random source; a fresh unseeded one is used when omitted.
        max_attempts: Attempt cap.
        tolerance: Accepted relative XP deviation.
        count_weights: Optional weights for counts 1-4.

    Returns:
        SearchOutcome with the best trial and its label.

    Raises:
        StyleLockError: If the style is locked and no trial matched it.
        SearchExhaustedError: If no valid trial was produced.
    """
    rng = rng or random.Random()

    if not pool.candidates:
        raise SearchExhaustedError(details={"reason": "empty_pool"})

    distinct_in_pool = pool.distinct_identities
    best: EncounterTrial | None = None
    attempts = 0

    for attempts in range(1, max_attempts + 1):
        count = draw_count(rng, count_weights)
        monsters = pick_encounter(pool.candidates, count, rng)
        if not monsters:
            continue

        trial = score_trial(monsters, target, constraints.style, constraints.prefer_variety)

        if violates_style_lock(trial, constraints):
            continue

        if best is None or trial.composite_score < best.composite_score:
            best = trial

        if is_acceptable(trial, constraints, distinct_in_pool, tolerance):
            logger.debug(f"On-target encounter found at attempt {attempts}")
            return SearchOutcome(trial=trial, label=ResultLabel.ON_TARGET, attempts=attempts)

    if best is None:
        if constraints.lock_style and constraints.style is not Style.ANY:
            raise StyleLockError(constraints.style.value, attempts)
        raise SearchExhaustedError(details={"attempts": attempts})

    label = ResultLabel.ON_TARGET if best.xp_score <= tolerance else ResultLabel.CLOSEST_MATCH
    logger.debug(
        f"Search exhausted {attempts} attempts; best composite {best.composite_score:.3f} ({label.value})"
    )
    return SearchOutcome(trial=best, label=label, attempts=attempts)
