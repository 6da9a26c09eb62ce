"""
Tests for the composition search.

Covers sampling, scoring, the early-exit predicate, lock handling, result
labels and reproducibility under a seeded random source.
"""

import random
from collections import Counter

import pytest

from encounter_engine.encounters.budget import group_multiplier, round_xp
from encounter_engine.encounters.pool import CandidatePool, build_candidate_pool
from encounter_engine.encounters.search import (
    MAX_ATTEMPTS,
    STYLE_PENALTY_FELL_BACK,
    STYLE_PENALTY_PARTIAL,
    VARIETY_PENALTY,
    ZERO_TARGET_SCORE,
    draw_count,
    find_best_encounter,
    is_acceptable,
    pick_encounter,
    score_trial,
    violates_style_lock,
    xp_deviation,
)
from encounter_engine.exceptions import SearchExhaustedError, StyleLockError
from encounter_engine.models import ResultLabel, Role, SearchConstraints, Style, StyleStatus


def pool_of(*candidates) -> CandidatePool:
    return CandidatePool(candidates=tuple(candidates), theme_pool_size=len(candidates))


# =============================================================================
# Sampling
# =============================================================================

class TestSampling:
    """Tests for draw_count() and pick_encounter()."""

    def test_uniform_counts_in_range(self):
        rng = random.Random(7)
        counts = {draw_count(rng) for _ in range(400)}
        assert counts == {1, 2, 3, 4}

    def test_weighted_counts(self):
        rng = random.Random(7)
        assert {draw_count(rng, [1, 0, 0, 0]) for _ in range(50)} == {1}
        assert {draw_count(rng, [0, 0, 0, 1]) for _ in range(50)} == {4}

    def test_distinct_first(self, sample_catalog):
        picked = pick_encounter(sample_catalog.candidates, 4, random.Random(3))
        assert len(picked) == 4
        assert len({m.identity for m in picked}) == 4

    def test_single_creature_pool_capped_at_two(self, make_candidate):
        ogre = make_candidate("Ogre")
        picked = pick_encounter([ogre], 4, random.Random(3))
        assert [m.identity for m in picked] == ["ogre", "ogre"]

    def test_repeats_fill_small_pool(self, make_candidate):
        picked = pick_encounter([make_candidate("Ogre"), make_candidate("Troll")], 4, random.Random(3))
        assert len(picked) == 4
        assert max(Counter(m.identity for m in picked).values()) == 2

    def test_empty_pool(self):
        assert pick_encounter([], 3, random.Random(3)) == []


# =============================================================================
# Scoring
# =============================================================================

class TestScoring:
    """Tests for score_trial() and is_acceptable()."""

    def test_xp_deviation(self):
        assert xp_deviation(230, 200) == pytest.approx(0.15)
        assert xp_deviation(170, 200) == pytest.approx(0.15)
        assert xp_deviation(100, 0) == ZERO_TARGET_SCORE

    def test_trial_xp_figures(self, make_candidate):
        monsters = [make_candidate(f"Orc {i}", cr=1) for i in range(3)]
        trial = score_trial(monsters, 1200, Style.ANY, False)
        assert trial.base_xp == 600
        assert trial.multiplier == 2.0
        assert trial.adjusted_xp == 1200
        assert trial.composite_score == 0.0

    def test_penalties_stack(self, make_candidate):
        mage = make_candidate("Mage", cr=1, role=Role.SPELLCASTER)
        ogre = make_candidate("Ogre", cr=1, role=Role.BRUISER)
        trial = score_trial([mage, ogre, ogre], 1200, Style.SPELLCASTER, True)
        assert trial.style.status is StyleStatus.PARTIAL
        assert trial.composite_score == pytest.approx(STYLE_PENALTY_PARTIAL + VARIETY_PENALTY)

        fell_back = score_trial([ogre], 200, Style.SPELLCASTER, False)
        assert fell_back.composite_score == pytest.approx(STYLE_PENALTY_FELL_BACK)

    def test_acceptable_requires_tolerance_and_style(self, make_candidate):
        ogre = make_candidate("Ogre", cr=1, role=Role.BRUISER)
        trial = score_trial([ogre], 200, Style.BRUISER, False)
        assert is_acceptable(trial, SearchConstraints(style=Style.BRUISER), 10)
        mismatch = score_trial([ogre], 200, Style.SPELLCASTER, False)
        assert not is_acceptable(mismatch, SearchConstraints(style=Style.SPELLCASTER), 10)
        assert not is_acceptable(score_trial([ogre], 400, Style.ANY, False), SearchConstraints(), 10)

    def test_style_lock_filter_reads_report(self, make_candidate):
        mage = make_candidate("Mage", role=Role.SPELLCASTER)
        ogre = make_candidate("Ogre", role=Role.BRUISER)
        locked = SearchConstraints(style=Style.SPELLCASTER, lock_style=True)
        assert violates_style_lock(score_trial([mage, ogre], 600, Style.SPELLCASTER, False), locked)
        assert not violates_style_lock(score_trial([mage], 200, Style.SPELLCASTER, False), locked)
        unlocked_any = SearchConstraints(lock_style=True)
        assert not violates_style_lock(score_trial([ogre], 200, Style.ANY, False), unlocked_any)

    def test_duplicates_tolerated_only_for_small_pools(self, make_candidate):
        ogre = make_candidate("Ogre", cr=1)
        trial = score_trial([ogre, ogre], 600, Style.ANY, True)
        constraints = SearchConstraints(prefer_variety=True)
        assert not is_acceptable(trial, constraints, distinct_in_pool=5)
        assert is_acceptable(trial, constraints, distinct_in_pool=1)


# =============================================================================
# Search
# =============================================================================

class TestFindBestEncounter:
    """Tests for find_best_encounter()."""

    def test_members_and_xp_invariants(self, sample_catalog):
        pool = build_candidate_pool(sample_catalog)
        for seed in range(30):
            outcome = find_best_encounter(pool, 1100, SearchConstraints(), rng=random.Random(seed))
            trial = outcome.trial
            assert 1 <= len(trial.monsters) <= 4
            assert max(Counter(m.identity for m in trial.monsters).values()) <= 2
            assert trial.base_xp == sum(m.xp for m in trial.monsters)
            assert trial.adjusted_xp == round_xp(trial.base_xp * group_multiplier(len(trial.monsters)))

    def test_exact_single_monster_exits_early(self, make_candidate):
        pool = pool_of(make_candidate("Orc", cr=1))
        outcome = find_best_encounter(pool, 200, SearchConstraints(), rng=random.Random(1))
        assert outcome.label is ResultLabel.ON_TARGET
        assert outcome.trial.adjusted_xp == 200
        assert len(outcome.trial.monsters) == 1
        assert outcome.attempts < MAX_ATTEMPTS

    def test_unreachable_target_is_closest_match(self, make_candidate):
        pool = pool_of(make_candidate("Tarrasque", cr=30))
        outcome = find_best_encounter(pool, 200, SearchConstraints(), rng=random.Random(1), max_attempts=50)
        assert outcome.label is ResultLabel.CLOSEST_MATCH
        assert outcome.attempts == 50
        # A lone tarrasque is the least overwhelming option
        assert len(outcome.trial.monsters) == 1

    def test_style_lock_without_role_raises(self, make_candidate):
        pool = pool_of(*(make_candidate(f"Ogre {i}", role=Role.BRUISER) for i in range(5)))
        constraints = SearchConstraints(style=Style.SPELLCASTER, lock_style=True)
        with pytest.raises(StyleLockError) as exc_info:
            find_best_encounter(pool, 400, constraints, rng=random.Random(1), max_attempts=40)
        assert exc_info.value.attempts == 40

    def test_unlocked_style_falls_back(self, make_candidate):
        pool = pool_of(*(make_candidate(f"Ogre {i}", role=Role.BRUISER) for i in range(5)))
        constraints = SearchConstraints(style=Style.SPELLCASTER)
        outcome = find_best_encounter(pool, 200, constraints, rng=random.Random(1), max_attempts=40)
        assert outcome.trial.style.status is StyleStatus.FELL_BACK
        # Never acceptable, but the best trial still lands on the XP target
        assert outcome.attempts == 40
        assert outcome.label is ResultLabel.ON_TARGET

    def test_style_lock_only_returns_matches(self, sample_catalog):
        pool = build_candidate_pool(sample_catalog)
        constraints = SearchConstraints(style=Style.SPELLCASTER, lock_style=True)
        outcome = find_best_encounter(pool, 1500, constraints, rng=random.Random(5))
        assert outcome.trial.style.status is StyleStatus.MATCHED

    def test_empty_pool_raises(self):
        with pytest.raises(SearchExhaustedError):
            find_best_encounter(pool_of(), 200, SearchConstraints(), rng=random.Random(1))

    def test_seeded_search_is_reproducible(self, sample_catalog):
        pool = build_candidate_pool(sample_catalog)
        constraints = SearchConstraints(style=Style.BRUISER, prefer_variety=True)
        first = find_best_encounter(pool, 1900, constraints, rng=random.Random(42))
        second = find_best_encounter(pool, 1900, constraints, rng=random.Random(42))
        assert first == second
