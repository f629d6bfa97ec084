# tests/unit/test_scoring_engine.py
"""
Unit tests for ScoringEngine
"""
import pytest

from analysis.models import ComponentScoreResult
from analysis.scoring_engine import ScoringEngine
from utils.errors import ConfigurationError


@pytest.mark.unit
class TestScoringEngine:

    @pytest.fixture
    def engine(self):
        return ScoringEngine()

    def test_default_weights(self, engine):
        assert engine.weights == {
            "tokenomics": 0.30, "liquidity": 0.25, "social": 0.20, "onchain": 0.25,
        }

    def test_weighted_sum(self, engine):
        scores = {"tokenomics": 8.0, "liquidity": 6.0, "social": 4.0, "onchain": 10.0}
        assert engine.calculate_overall_score(scores) == 7.2

    @pytest.mark.parametrize("value", [0.0, 3.3, 5.0, 7.0, 10.0])
    def test_equal_components_give_same_overall(self, engine, value):
        scores = dict.fromkeys(engine.weights, value)
        assert engine.calculate_overall_score(scores) == value

    def test_missing_component_is_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.calculate_overall_score({"tokenomics": 5.0})

    @pytest.mark.parametrize("score,classification", [
        (10.0, "GREEN"),
        (7.0, "GREEN"),
        (6.999, "YELLOW"),
        (5.0, "YELLOW"),
        (4.999, "RED"),
        (0.0, "RED"),
    ])
    def test_classification_boundaries(self, engine, score, classification):
        assert engine.classify(score)[0] == classification

    @pytest.mark.parametrize("social", [0.14, 0.26])
    def test_weights_off_by_six_percent_are_rejected(self, engine, social):
        weights = {"tokenomics": 0.30, "liquidity": 0.25, "social": social, "onchain": 0.25}
        with pytest.raises(ConfigurationError):
            engine.update_weights(weights)
        assert engine.weights["social"] == 0.20

    @pytest.mark.parametrize("social", [0.19, 0.21])
    def test_weights_within_tolerance_are_accepted(self, engine, social):
        weights = {"tokenomics": 0.30, "liquidity": 0.25, "social": social, "onchain": 0.25}
        assert engine.update_weights(weights)["social"] == social

    @pytest.mark.parametrize("social", [0.185, 0.215])
    def test_weights_just_outside_tolerance_are_rejected(self, engine, social):
        weights = {"tokenomics": 0.30, "liquidity": 0.25, "social": social, "onchain": 0.25}
        with pytest.raises(ConfigurationError):
            engine.update_weights(weights)

    @pytest.mark.parametrize("component", ["tokenomics", "liquidity", "social", "onchain"])
    @pytest.mark.parametrize("delta", [-4.0, -1.3, 0.7, 2.5])
    def test_overall_moves_by_delta_times_weight(self, engine, component, delta):
        scores = dict.fromkeys(engine.weights, 5.0)
        before = engine.calculate_overall_score(scores)

        scores[component] += delta
        after = engine.calculate_overall_score(scores)

        assert after - before == pytest.approx(delta * engine.weights[component], abs=0.01)

    def test_valid_weights_are_applied(self, engine):
        weights = {"tokenomics": 0.25, "liquidity": 0.25, "social": 0.25, "onchain": 0.25}
        assert engine.update_weights(weights) == weights
        scores = {"tokenomics": 8.0, "liquidity": 6.0, "social": 4.0, "onchain": 10.0}
        assert engine.calculate_overall_score(scores) == 7.0

    def test_weights_must_name_every_component(self, engine):
        with pytest.raises(ConfigurationError):
            engine.update_weights({"tokenomics": 0.5, "liquidity": 0.5})

    def test_update_thresholds(self, engine):
        engine.update_thresholds(green=8.0, yellow=6.0)
        assert engine.classify(7.5)[0] == "YELLOW"
        with pytest.raises(ConfigurationError):
            engine.update_thresholds(green=5.0, yellow=6.0)

    def test_score_breakdown(self, engine):
        scores = {"tokenomics": 8.0, "liquidity": 6.0, "social": 4.0, "onchain": 10.0}
        breakdown = engine.get_score_breakdown(scores)

        assert breakdown['overall']['score'] == 7.2
        assert breakdown['tokenomics']['weighted_contribution'] == 2.4
        assert breakdown['onchain']['percentage_of_total'] == 34.72
        assert breakdown['social']['interpretation']['rating'] == "Below Average"

    @pytest.mark.parametrize("overall,red_flags,level", [
        (3.0, 0, "VERY HIGH"),
        (8.0, 3, "VERY HIGH"),
        (4.5, 0, "HIGH"),
        (8.0, 2, "HIGH"),
        (6.0, 0, "MEDIUM"),
        (8.0, 1, "MEDIUM"),
        (8.0, 0, "LOW"),
    ])
    def test_risk_level(self, overall, red_flags, level):
        assert ScoringEngine.risk_level(overall, red_flags) == level

    def test_investment_analysis(self, engine):
        components = {
            "tokenomics": ComponentScoreResult(score=9.0),
            "liquidity": ComponentScoreResult(score=6.0),
            "social": ComponentScoreResult(score=4.0),
            "onchain": ComponentScoreResult(score=3.0, red_flags=("NEAR-DEAD: only 4 active",),
                                            warnings=("Low data reliability",)),
        }
        analysis = engine.build_investment_analysis(5.85, "YELLOW", components)

        assert analysis['risk_level'] == "MEDIUM"
        assert analysis['strengths'] == ["Tokenomics (9.0/10)"]
        assert len(analysis['weaknesses']) == 2
        assert analysis['key_risks'] == ["NEAR-DEAD: only 4 active", "Low data reliability"]
        assert "1 on-chain red flag(s)" in analysis['summary']
