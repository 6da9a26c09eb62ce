"""
Tests for the generation flow and request clamping.
"""

import random
from unittest.mock import patch

import pytest

from encounter_engine.config import EngineSettings
from encounter_engine.encounters import generator
from encounter_engine.encounters.generator import (
    GenerationRequest,
    generate_encounter,
    reroll_encounter,
)
from encounter_engine.exceptions import InvalidPartyError, StyleLockError, ThemeLockError
from encounter_engine.models import ResultLabel, Role, Style, StyleStatus, VarietyResult


class TestGenerationRequest:
    """Tests for input clamping on GenerationRequest."""

    def test_defaults(self):
        request = GenerationRequest()
        assert request.party_level == 5
        assert request.party_size == 4
        assert request.theme == "any"
        assert request.difficulty == "medium"
        assert request.style is Style.ANY

    @pytest.mark.parametrize("raw,expected", [(0, 1), (-4, 1), (11, 10), (99, 10), ("7", 7), ("abc", 5), (None, 5)])
    def test_level_clamped(self, raw, expected):
        assert GenerationRequest(party_level=raw).party_level == expected

    @pytest.mark.parametrize("raw,expected", [(0, 1), (-2, 1), (6, 6), (12, 12), ("x", 4)])
    def test_size_clamped(self, raw, expected):
        assert GenerationRequest(party_size=raw).party_size == expected

    def test_text_inputs_normalized(self):
        request = GenerationRequest(theme="  Undead ", difficulty="HARD", style="skirmish")
        assert request.theme == "undead"
        assert request.difficulty == "hard"
        assert request.style is Style.SKIRMISHER

    def test_unknown_style_falls_back_to_any(self):
        assert GenerationRequest(style="ninja").style is Style.ANY

    def test_flags_coerced(self):
        request = GenerationRequest(prefer_variety="yes", lock_theme=1, lock_style="false")
        assert request.prefer_variety is True
        assert request.lock_theme is True
        assert request.lock_style is False

    def test_party_and_constraints(self):
        request = GenerationRequest(party_level=2, style="swarm", lock_style=True)
        assert request.party.level == 2
        assert request.constraints.style is Style.SWARM
        assert request.constraints.lock_style is True


class TestGenerateEncounter:
    """Tests for generate_encounter()."""

    def test_document_consistent_with_request(self, sample_catalog):
        document = generate_encounter(
            sample_catalog,
            {"party_level": 4, "party_size": 5, "difficulty": "medium"},
            rng=random.Random(3),
        )
        assert document.inputs.party_level == 4
        assert document.output.target_xp == 1250
        assert 1 <= len(document.output.monsters) <= 4
        assert document.output.base_xp == sum(m.xp for m in document.output.monsters)
        assert document.quality.style_match is StyleStatus.NOT_APPLICABLE
        assert document.id.startswith("enc_")

    def test_theme_fallback_recorded(self, sample_catalog):
        document = generate_encounter(sample_catalog, {"theme": "undead"}, rng=random.Random(3))
        assert document.output.did_theme_fallback is True
        assert document.output.theme_pool_size == 12

    def test_theme_respected_when_pool_is_large(self, sample_catalog):
        document = generate_encounter(sample_catalog, {"theme": "humanoid"}, rng=random.Random(3))
        assert all(m.type == "humanoid" for m in document.output.monsters)

    def test_theme_lock(self, sample_catalog):
        with pytest.raises(ThemeLockError):
            generate_encounter(sample_catalog, {"theme": "undead", "lock_theme": True}, rng=random.Random(3))

    def test_custom_theme_minimum(self, sample_catalog):
        settings = EngineSettings(theme_min_pool=10)
        document = generate_encounter(
            sample_catalog, {"theme": "undead", "lock_theme": True}, rng=random.Random(3), settings=settings
        )
        assert all(m.type == "undead" for m in document.output.monsters)

    def test_style_lock_with_no_spellcasters(self, make_candidate, make_catalog):
        catalog = make_catalog(make_candidate(f"Ogre {i}", role=Role.BRUISER) for i in range(40))
        with pytest.raises(StyleLockError):
            generate_encounter(
                catalog, {"style": "spellcaster", "lock_style": True}, rng=random.Random(3)
            )

    def test_invalid_difficulty(self, sample_catalog):
        with pytest.raises(InvalidPartyError):
            generate_encounter(sample_catalog, {"difficulty": "impossible"}, rng=random.Random(3))

    def test_limited_pool_variety(self, make_candidate, make_catalog):
        catalog = make_catalog([make_candidate("Orc", cr=0.5, role=Role.SWARM)])
        document = generate_encounter(
            catalog,
            {"party_level": 2, "party_size": 2, "difficulty": "medium", "prefer_variety": True},
            rng=random.Random(3),
        )
        # One orc (100) and two (300) miss the 200 target equally; the duplicate penalty decides
        assert len(document.output.monsters) == 1
        assert document.quality.variety_result is VarietyResult.NO_DUPLICATES

    def test_seeded_generation_is_reproducible(self, sample_catalog):
        request = {"party_level": 6, "party_size": 4, "difficulty": "deadly", "style": "bruiser"}
        first = generate_encounter(sample_catalog, request, rng=random.Random(99))
        second = generate_encounter(sample_catalog, request, rng=random.Random(99))
        assert first.output == second.output
        assert first.quality == second.quality

    def test_reroll_uses_reroll_attempts(self, make_candidate, make_catalog):
        catalog = make_catalog([make_candidate("Tarrasque", cr=30)])
        settings = EngineSettings(max_attempts=500, reroll_attempts=5)
        request = GenerationRequest(party_level=1, party_size=1)
        with patch.object(generator, "find_best_encounter", wraps=generator.find_best_encounter) as search:
            document = reroll_encounter(catalog, request, rng=random.Random(1), settings=settings)
        assert search.call_args.kwargs["max_attempts"] == 5
        assert document.output.result_label is ResultLabel.CLOSEST_MATCH
