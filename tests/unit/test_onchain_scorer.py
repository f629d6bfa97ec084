# tests/unit/test_onchain_scorer.py
"""
Unit tests for the tier-aware on-chain scorer
"""
import pytest

from analysis.models import ChainMetrics, OnChainMetrics
from analysis.onchain_scorer import OnChainScorer, rate_score


@pytest.mark.unit
class TestOnChainScorer:

    @pytest.fixture
    def scorer(self):
        return OnChainScorer()

    def test_mega_holder_base_from_chain_data(self, scorer, mega_chain):
        result = scorer.score(OnChainMetrics(chains=(mega_chain,), reliability="high"))

        assert result.score == 10.0
        assert result.details['tier'] == "mega"
        assert result.details['total_holders'] == 2_000_000
        assert result.details['aggregation_note'] is not None
        assert result.details['rating'] == "Excellent"
        assert result.data_quality == "high"
        assert result.red_flags == ()
        assert any("Multi-chain aggregation used (ethereum)" in f for f in result.flags)

    def test_ghost_token(self, scorer):
        metrics = OnChainMetrics(total_holders=20, active_addresses_7d=1,
                                 active_addresses_30d=2, reliability="high")
        result = scorer.score(metrics)

        assert result.score <= 2.0
        assert result.details['tier'] == "micro"
        assert any(flag.startswith("GHOST TOKEN") for flag in result.red_flags)
        assert any(flag.startswith("PRE-LAUNCH") for flag in result.red_flags)

    def test_near_dead_token(self, scorer):
        metrics = OnChainMetrics(total_holders=400, active_addresses_7d=5,
                                 active_addresses_30d=40, reliability="medium")
        result = scorer.score(metrics)

        assert any(flag.startswith("NEAR-DEAD") for flag in result.red_flags)
        assert not any(flag.startswith("GHOST") for flag in result.red_flags)

    def test_whale_dominance_on_small_holder_base(self, scorer):
        metrics = OnChainMetrics(total_holders=2_000, active_addresses_7d=300,
                                 active_addresses_30d=600, top_10_concentration=95.0,
                                 reliability="high")
        result = scorer.score(metrics)

        assert result.details['tier'] == "small"
        assert any(flag.startswith("WHALE DOMINANCE") for flag in result.red_flags)

    def test_abandoned_large_token(self, scorer):
        metrics = OnChainMetrics(total_holders=200_000, active_addresses_7d=500,
                                 active_addresses_30d=4_000, reliability="high")
        result = scorer.score(metrics)

        assert result.details['tier'] == "large"
        assert any(flag.startswith("LIKELY ABANDONED") for flag in result.red_flags)

    def test_micro_tier_is_never_abandoned(self, scorer):
        metrics = OnChainMetrics(total_holders=900, active_addresses_7d=2,
                                 active_addresses_30d=30, reliability="high")
        result = scorer.score(metrics)
        assert not any(flag.startswith("LIKELY ABANDONED") for flag in result.red_flags)

    def test_low_reliability_warning(self, scorer):
        metrics = OnChainMetrics(total_holders=50_000, active_addresses_7d=5_000,
                                 active_addresses_30d=12_000, reliability="low")
        result = scorer.score(metrics)

        assert result.data_quality == "low"
        assert "Low data reliability" in result.warnings

    def test_unknown_tier_uses_micro_ladders(self, scorer):
        result = scorer.score(OnChainMetrics())

        assert result.details['tier'] == "unknown"
        assert result.score == 0.0
        assert result.data_quality == "unknown"

    def test_multichain_bonus(self, scorer):
        eth = ChainMetrics(chain="ethereum", total_holders=60_000, active_addresses_7d=6_000,
                           active_addresses_30d=15_000, top_10_concentration=30.0,
                           reliability="high")
        bsc = ChainMetrics(chain="bsc", total_holders=40_000, active_addresses_7d=4_000,
                           active_addresses_30d=10_000, top_10_concentration=50.0,
                           reliability="medium")
        result = scorer.score(OnChainMetrics(chains=(eth, bsc)))

        assert result.details['is_multichain'] is True
        assert result.details['concentration'] == 50.0
        assert "Deployed on 2 chains" in result.flags
        assert "Well balanced across chains" in result.flags

    @pytest.mark.parametrize("quality", ["simulated", "estimated"])
    def test_fallback_data_gets_neutral_score(self, scorer, quality):
        metrics = OnChainMetrics(total_holders=10, active_addresses_7d=0,
                                 data_quality=quality, data_source="fallback")
        result = scorer.score(metrics)

        assert result.score == 5.0
        assert result.data_quality == quality
        assert result.red_flags == ()
        assert result.details['rating'] == "Average"

    def test_growth_signals(self, scorer):
        base = dict(total_holders=50_000, active_addresses_7d=5_000,
                    active_addresses_30d=12_000, reliability="high")
        plain = scorer.score(OnChainMetrics(**base))
        collapsing = scorer.score(OnChainMetrics(address_growth_mom=-45.0, **base))

        assert collapsing.score < plain.score
        assert any(flag.startswith("COLLAPSING") for flag in collapsing.red_flags)


@pytest.mark.unit
@pytest.mark.parametrize("score,rating", [
    (10.0, "Excellent"), (8.5, "Excellent"), (8.49, "Very Good"), (6.5, "Good"),
    (5.0, "Average"), (3.5, "Below Average"), (2.5, "Poor"), (0.0, "Very Poor"),
])
def test_rate_score(score, rating):
    assert rate_score(score) == rating
