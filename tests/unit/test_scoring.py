"""
Unit tests for the scoring engine and level curve.

Tests:
- XP award formula and tier multipliers
- Rubric bound validation
- Half-away-from-zero rounding
- Level curve monotonicity and non-regression
"""

from decimal import Decimal

import pytest

from questline.core.errors import InvalidScoreError
from questline.core.models import SubScores
from questline.core.tiers import DifficultyTier, LanguageLevel
from questline.engine.scoring import LevelCurve, ScoringEngine, round_half_away, score


def rubric(**overrides) -> SubScores:
    values = {
        "code_quality": 20,
        "problem_solving": 20,
        "concept_understanding": 10,
        "best_practices": 10,
        "creativity": 5,
    }
    values.update(overrides)
    return SubScores(**values)


class TestScore:
    def test_max_rubric_journeyman_awards_200(self, max_scores):
        assert score(max_scores, DifficultyTier.JOURNEYMAN) == 200

    def test_newbie_half_rubric_awards_50(self, half_scores):
        assert half_scores.total == 50
        assert score(half_scores, DifficultyTier.NEWBIE) == 50

    @pytest.mark.parametrize(
        "tier, expected",
        [
            (DifficultyTier.NEWBIE, 65),
            (DifficultyTier.APPRENTICE, 98),  # 97.5 rounds up
            (DifficultyTier.JOURNEYMAN, 130),
            (DifficultyTier.EXPERT, 163),  # 162.5 rounds up
            (DifficultyTier.MASTER, 195),
        ],
    )
    def test_multiplier_table(self, tier, expected):
        assert score(rubric(), tier) == expected

    def test_accepts_tier_value_string(self, max_scores):
        assert score(max_scores, "master") == 300

    def test_zero_rubric_awards_zero(self):
        zero = SubScores(
            code_quality=0, problem_solving=0, concept_understanding=0, best_practices=0, creativity=0
        )
        assert score(zero, DifficultyTier.MASTER) == 0

    def test_deterministic(self, half_scores):
        results = {score(half_scores, DifficultyTier.EXPERT) for _ in range(20)}
        assert len(results) == 1

    @pytest.mark.parametrize(
        "field, value",
        [
            ("code_quality", 26),
            ("problem_solving", 31),
            ("concept_understanding", -1),
            ("best_practices", 16),
            ("creativity", 11),
        ],
    )
    def test_out_of_range_names_field(self, field, value):
        with pytest.raises(InvalidScoreError) as exc_info:
            score(rubric(**{field: value}), DifficultyTier.NEWBIE)

        assert exc_info.value.field == field
        assert exc_info.value.value == value
        assert field in str(exc_info.value)

    def test_boundaries_are_inclusive(self, max_scores):
        # Upper bounds validate; lower bounds checked by the zero-rubric test
        assert score(max_scores, DifficultyTier.NEWBIE) == 100


class TestRounding:
    @pytest.mark.parametrize(
        "value, expected",
        [("2.5", 3), ("3.5", 4), ("2.4", 2), ("-2.5", -3), ("0.5", 1), ("7", 7)],
    )
    def test_ties_round_away_from_zero(self, value, expected):
        assert round_half_away(Decimal(value)) == expected


class TestSubScoresFromMapping:
    def test_camel_case_keys(self):
        scores = SubScores.from_mapping(
            {
                "codeQuality": 25,
                "problemSolving": 30,
                "conceptUnderstanding": 20,
                "bestPractices": 15,
                "creativity": 10,
            }
        )
        assert scores.total == 100
        assert scores.is_perfect

    def test_missing_field(self):
        with pytest.raises(InvalidScoreError) as exc_info:
            SubScores.from_mapping({"code_quality": 1, "problem_solving": 1})
        assert exc_info.value.field == "concept_understanding"

    def test_unknown_field(self):
        with pytest.raises(InvalidScoreError) as exc_info:
            SubScores.from_mapping({"code_qualty": 10})
        assert exc_info.value.field == "code_qualty"

    @pytest.mark.parametrize("bad", ["ten", True, 2.5, None])
    def test_non_integer_value(self, bad):
        with pytest.raises(InvalidScoreError):
            SubScores.from_mapping(
                {
                    "code_quality": bad,
                    "problem_solving": 1,
                    "concept_understanding": 1,
                    "best_practices": 1,
                    "creativity": 1,
                }
            )


class TestLevelCurve:
    def test_power_curve_defaults(self):
        curve = LevelCurve.power(base_xp=100, exponent=1.5, max_level=5)
        assert curve.thresholds == (0, 100, 283, 520, 800, 1118)
        assert curve.max_level == 5

    @pytest.mark.parametrize(
        "thresholds",
        [[0, 50, 150, 400], [0, 10, 20, 30, 40], [0, 1000]],
    )
    def test_level_for_is_monotonic(self, thresholds):
        curve = LevelCurve(thresholds)
        levels = [curve.level_for(xp) for xp in range(0, thresholds[-1] + 50, 7)]
        assert levels == sorted(levels)
        assert curve.level_for(0) == 0
        assert curve.level_for(thresholds[-1]) == len(thresholds) - 1

    def test_exact_threshold_reaches_level(self):
        curve = LevelCurve([0, 100, 300])
        assert curve.level_for(99) == 0
        assert curve.level_for(100) == 1
        assert curve.level_for(299) == 1
        assert curve.level_for(10_000) == 2

    def test_xp_for_level(self):
        curve = LevelCurve([0, 100, 300])
        assert curve.xp_for_level(2) == 300
        assert curve.xp_for_level(3) is None

    @pytest.mark.parametrize("thresholds", [[], [10, 20], [0, 20, 20], [0, 30, 10]])
    def test_rejects_invalid_thresholds(self, thresholds):
        with pytest.raises(ValueError):
            LevelCurve(thresholds)


class TestScoringEngine:
    def test_level_never_regresses_after_curve_change(self):
        # Learner reached level 3 on a gentle curve; a steeper curve must not demote them
        steep = ScoringEngine(curve=LevelCurve([0, 1000, 2000, 3000]))
        assert steep.level_for(total_xp=400, current_level=3) == 3

    def test_level_rises_with_xp(self):
        engine = ScoringEngine(curve=LevelCurve([0, 100, 200]))
        assert engine.level_for(total_xp=150, current_level=0) == 1

    @pytest.mark.parametrize(
        "xp, expected",
        [
            (0, LanguageLevel.BEGINNER),
            (499, LanguageLevel.BEGINNER),
            (500, LanguageLevel.INTERMEDIATE),
            (2000, LanguageLevel.ADVANCED),
        ],
    )
    def test_language_level_thresholds(self, xp, expected):
        engine = ScoringEngine(intermediate_language_xp=500, advanced_language_xp=2000)
        assert engine.language_level_for(xp) is expected

    def test_language_level_never_regresses(self):
        engine = ScoringEngine(intermediate_language_xp=500, advanced_language_xp=2000)
        assert engine.language_level_for(10, LanguageLevel.ADVANCED) is LanguageLevel.ADVANCED

    def test_from_settings(self, settings):
        engine = ScoringEngine.from_settings(settings)
        assert engine.curve.max_level == settings.max_level
        assert engine.curve.xp_for_level(1) == settings.level_base_xp
