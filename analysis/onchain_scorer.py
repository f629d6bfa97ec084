# analysis/onchain_scorer.py

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from analysis.models import AggregatedOnChainMetrics, ComponentScoreResult, OnChainMetrics
from data.processors.aggregator import ChainAggregator
from data.processors.normalizer import (
    Direction, ScoreAdjustment, ThresholdLadder, build_result, ladder, neutral_result, note, rule,
)
from utils.constants import DataQuality, FlagKind, HolderTier
from utils.helpers import format_compact, is_missing, round_score, safe_divide

logger = logging.getLogger(__name__)

MEGA = HolderTier.MEGA.value
LARGE = HolderTier.LARGE.value
MID = HolderTier.MID.value
SMALL = HolderTier.SMALL.value
MICRO = HolderTier.MICRO.value

# ============= Holder base =============

HOLDER_LADDERS: Dict[str, ThresholdLadder] = {
    MEGA: ladder("holders", [], fallback=(3.0, "Massive holder base ({count} holders)")),
    LARGE: ladder("holders", [
        (500_000, 2.5, "Very large holder base ({count} holders)"),
    ], fallback=(2.0, "Large holder base ({count} holders)")),
    MID: ladder("holders", [
        (50_000, 1.5, "Solid holder base ({count} holders)"),
    ], fallback=(1.0, "Established holder base ({count} holders)")),
    SMALL: ladder("holders", [
        (5_000, 0.5, "Growing holder base ({count} holders)"),
    ], fallback=(0.2, "Small holder base ({count} holders)")),
    MICRO: ladder("holders", [
        (500, 0.0, "Micro holder base ({count} holders)"),
        (100, -0.5, "Very few holders ({count})", FlagKind.WARNING),
        (30, -1.0, "Tiny holder base ({count} holders)", FlagKind.WARNING, True),
    ], fallback=(-1.5, "PRE-LAUNCH: only {count} holders", FlagKind.RED_FLAG)),
}

# ============= Concentration (top-10 %, lower is better) =============

CONCENTRATION_BOUNDS: Dict[str, Tuple[float, float, float, float]] = {
    MEGA: (20, 35, 50, 70),
    LARGE: (20, 35, 50, 70),
    MID: (30, 45, 60, 80),
    SMALL: (40, 55, 70, 85),
    MICRO: (50, 65, 80, 90),
}

# Above this, whale dominance is a red flag when the holder base is also small
WHALE_CRITICAL: Dict[str, float] = {MEGA: 60, LARGE: 70, MID: 80, SMALL: 90, MICRO: 95}
WHALE_HOLDER_LIMIT = 5_000


def _concentration_ladder(tier: str) -> ThresholdLadder:
    excellent, good, moderate, high = CONCENTRATION_BOUNDS[tier]
    return ladder("concentration", [
        (excellent, 1.5, "Excellent distribution (top 10 hold {value:.1f}%)"),
        (good, 1.0, "Good distribution (top 10 hold {value:.1f}%)"),
        (moderate, 0.0, "Moderate concentration (top 10 hold {value:.1f}%)"),
        (high, -1.0, "High concentration (top 10 hold {value:.1f}%)", FlagKind.WARNING),
    ], fallback=(-2.0, "Extreme concentration (top 10 hold {value:.1f}%)", FlagKind.WARNING),
        direction=Direction.LOWER_IS_BETTER)


CONCENTRATION_LADDERS = {tier: _concentration_ladder(tier) for tier in CONCENTRATION_BOUNDS}

GINI_LADDER = ladder("gini", [
    (0.6, 0.5, "Balanced holder distribution (Gini {value:.2f})"),
    (0.8, 0.0, None),
    (0.9, -0.5, "Unequal holder distribution (Gini {value:.2f})", FlagKind.WARNING),
], fallback=(-1.0, "Highly unequal holder distribution (Gini {value:.2f})", FlagKind.WARNING),
    direction=Direction.LOWER_IS_BETTER)

# ============= Activity =============

ACTIVE_ABSOLUTE_LADDER = ladder("active_addresses", [
    (100_000, 1.5, "Very high weekly activity ({count} active addresses)"),
    (50_000, 1.0, "High weekly activity ({count} active addresses)"),
    (10_000, 0.5, "Good weekly activity ({count} active addresses)"),
    (1_000, 0.0, None),
    (100, -0.5, "Low weekly activity ({count} active addresses)", FlagKind.WARNING),
], fallback=(-1.0, "Minimal weekly activity ({count} active addresses)", FlagKind.WARNING))

ACTIVE_RATIO_BOUNDS: Dict[str, Tuple[float, float, float]] = {
    MEGA: (0.05, 0.02, 0.005),
    LARGE: (0.05, 0.02, 0.005),
    MID: (0.10, 0.04, 0.01),
    SMALL: (0.15, 0.06, 0.02),
    MICRO: (0.15, 0.06, 0.02),
}


def _active_ratio_ladder(tier: str) -> ThresholdLadder:
    strong, healthy, weak = ACTIVE_RATIO_BOUNDS[tier]
    return ladder("active_ratio", [
        (strong, 1.0, "Strong engagement ({value:.1%} of holders active weekly)"),
        (healthy, 0.5, "Healthy engagement ({value:.1%} of holders active weekly)"),
        (weak, 0.0, None),
    ], fallback=(-0.5, "Low engagement ({value:.2%} of holders active weekly)", FlagKind.WARNING),
        inclusive=True)


ACTIVE_RATIO_LADDERS = {tier: _active_ratio_ladder(tier) for tier in ACTIVE_RATIO_BOUNDS}

RETENTION_LADDER = ladder("retention", [
    (0.6, 0.75, "Sticky user base ({value:.0%} weekly/monthly retention)"),
    (0.4, 0.4, "Decent retention ({value:.0%} weekly/monthly)"),
    (0.2, 0.0, None),
], fallback=(-0.5, "Poor retention ({value:.0%} weekly/monthly)", FlagKind.WARNING), inclusive=True)

TRANSFERS_LADDER = ladder("transfers_7d", [
    (500_000, 1.0, "Very high transaction volume ({count} transfers/7d)"),
    (100_000, 0.75, "High transaction volume ({count} transfers/7d)"),
    (10_000, 0.4, "Moderate transaction volume ({count} transfers/7d)"),
    (1_000, 0.0, None),
], fallback=(-0.5, "Low transaction volume ({count} transfers/7d)", FlagKind.WARNING))

INTENSITY_LADDER = ladder("tx_intensity", [
    (20, -0.5, "Bot-like churn ({value:.1f} transfers per active address)", FlagKind.WARNING),
    (3, 0.5, "Healthy usage ({value:.1f} transfers per active address)"),
    (1, 0.0, None),
], fallback=(-0.25, "Light usage ({value:.2f} transfers per active address)"), inclusive=True)

# ============= Multi-chain =============

MULTICHAIN_LADDER = ladder("multichain", [
    (5, 1.5, "Deployed on {value} chains"),
    (4, 1.2, "Deployed on {value} chains"),
    (3, 0.8, "Deployed on {value} chains"),
    (2, 0.4, "Deployed on {value} chains"),
], inclusive=True)

CHAIN_BALANCE_LADDER = ladder("chain_balance", [
    (0.5, 0.3, "Well balanced across chains"),
    (0.1, 0.0, None),
], fallback=(-0.3, "Holders concentrated on one chain", FlagKind.WARNING), inclusive=True)

# ============= Growth =============

ADDRESS_GROWTH_LADDER = ladder("address_growth", [
    (50, 1.0, "EXPLOSIVE address growth (+{value:.1f}% MoM)"),
    (20, 0.6, "Strong address growth (+{value:.1f}% MoM)"),
    (5, 0.3, "Positive address growth (+{value:.1f}% MoM)"),
    (-5, 0.0, None, FlagKind.FLAG, True),
    (-15, -0.3, "Declining addresses ({value:.1f}% MoM)", FlagKind.FLAG, True),
    (-30, -0.7, "Shrinking user base ({value:.1f}% MoM)", FlagKind.WARNING, True),
], fallback=(-1.5, "COLLAPSING: addresses {value:.1f}% MoM", FlagKind.RED_FLAG))

TVL_CHANGE_LADDER = ladder("tvl_change", [
    (30, 0.5, "TVL surging (+{value:.1f}% 7d)"),
    (10, 0.3, "TVL growing (+{value:.1f}% 7d)"),
    (-10, 0.0, None, FlagKind.FLAG, True),
    (-30, -0.5, "TVL declining ({value:.1f}% 7d)", FlagKind.WARNING, True),
], fallback=(-1.0, "TVL exodus ({value:.1f}% 7d)", FlagKind.RED_FLAG))

DAU_MAU_LADDER = ladder("dau_mau", [
    (50, 0.5, "Excellent stickiness (DAU/MAU {value:.0f}%)"),
    (20, 0.25, "Good stickiness (DAU/MAU {value:.0f}%)"),
    (10, 0.0, None),
], fallback=(-0.25, "Low stickiness (DAU/MAU {value:.0f}%)"), inclusive=True)

# ============= Rating =============

RATING_BANDS: List[Tuple[float, str]] = [
    (8.5, "Excellent"),
    (7.5, "Very Good"),
    (6.5, "Good"),
    (5.5, "Above Average"),
    (4.5, "Average"),
    (3.5, "Below Average"),
    (2.5, "Poor"),
]


def rate_score(score: float) -> str:
    for threshold, label in RATING_BANDS:
        if score >= threshold:
            return label
    return "Very Poor"


def _ladder_tier(tier: str) -> str:
    """Unknown tier (no data at all) is judged with micro ladders"""
    return tier if tier in HOLDER_LADDERS else MICRO


class OnChainScorer:
    """
    Tier-aware on-chain scorer.

    Totals and tier are fixed once through the ChainAggregator, then every
    rule is evaluated independently against that frozen view and summed once.
    Simulated or estimated input is not ladder-scored; it gets the neutral
    score with its provenance tag.
    """

    def __init__(self, aggregator: Optional[ChainAggregator] = None):
        self.aggregator = aggregator or ChainAggregator()

    def score(self, metrics: OnChainMetrics) -> ComponentScoreResult:
        if metrics.data_quality in (DataQuality.SIMULATED.value, DataQuality.ESTIMATED.value):
            return self._score_fallback(metrics)

        view = self.aggregator.resolve(metrics)
        tier = _ladder_tier(view.tier)

        holders = view.total_holders
        active_7d = view.active_addresses_7d
        active_30d = view.active_addresses_30d
        concentration = view.worst_concentration
        active_ratio = safe_divide(active_7d, holders)
        retention = safe_divide(active_7d, active_30d) if active_30d else None
        intensity = safe_divide(view.transfers_7d, active_7d) if active_7d else None
        data_quality = self._data_quality(view)

        adjustments: List[Optional[ScoreAdjustment]] = []
        adjustments.extend(note(flag) for flag in view.flags)
        adjustments.append(HOLDER_LADDERS[tier].evaluate(holders, count=format_compact(holders)))
        adjustments.append(CONCENTRATION_LADDERS[tier].evaluate(concentration))
        adjustments.append(GINI_LADDER.evaluate(view.gini_coefficient))
        adjustments.append(ACTIVE_ABSOLUTE_LADDER.evaluate(active_7d, count=format_compact(active_7d)))
        adjustments.append(ACTIVE_RATIO_LADDERS[tier].evaluate(active_ratio))
        adjustments.append(RETENTION_LADDER.evaluate(retention))
        if view.transfers_7d is not None:
            adjustments.append(TRANSFERS_LADDER.evaluate(view.transfers_7d,
                                                         count=format_compact(view.transfers_7d)))
        adjustments.append(INTENSITY_LADDER.evaluate(intensity))
        adjustments.extend(self._multichain_adjustments(view))
        adjustments.append(ADDRESS_GROWTH_LADDER.evaluate(metrics.address_growth_mom))
        adjustments.append(TVL_CHANGE_LADDER.evaluate(metrics.tvl_change_7d))
        adjustments.append(DAU_MAU_LADDER.evaluate(metrics.daily_active_ratio))
        adjustments.append(rule("data_quality", data_quality == DataQuality.LOW.value, -0.5,
                                "Low data reliability", FlagKind.WARNING))
        adjustments.extend(self._red_flags(view, tier, active_ratio))

        details = {
            'tier': view.tier,
            'total_holders': holders,
            'active_addresses_7d': active_7d,
            'active_addresses_30d': active_30d,
            'active_ratio': round_score(active_ratio, 4) if active_ratio is not None else None,
            'retention_ratio': round_score(retention, 4) if retention is not None else None,
            'transfers_7d': view.transfers_7d,
            'concentration': concentration,
            'best_concentration': view.best_concentration,
            'gini_coefficient': view.gini_coefficient,
            'chain_count': view.chain_count,
            'is_multichain': view.is_multichain,
            'primary_chain': view.primary_chain,
            'chain_holders': dict(view.chain_holders),
            'aggregation_note': view.aggregation_note,
            'address_growth_mom': metrics.address_growth_mom,
            'tvl_change_7d': metrics.tvl_change_7d,
            'daily_active_ratio': metrics.daily_active_ratio,
            'data_source': metrics.data_source,
        }

        result = build_result(adjustments, details=details, data_quality=data_quality)
        result = replace(result, details={**result.details, 'rating': rate_score(result.score)})

        if result.red_flags:
            logger.info(f"On-chain red flags ({view.tier}): {list(result.red_flags)}")
        logger.debug(f"On-chain score {result.score} tier={view.tier} holders={holders}")
        return result

    def _score_fallback(self, metrics: OnChainMetrics) -> ComponentScoreResult:
        details = {
            'tier': HolderTier.UNKNOWN.value,
            'total_holders': metrics.total_holders,
            'active_addresses_7d': metrics.active_addresses_7d,
            'active_addresses_30d': metrics.active_addresses_30d,
            'active_ratio': None,
            'retention_ratio': None,
            'concentration': metrics.top_10_concentration,
            'chain_count': len(metrics.chains),
            'is_multichain': len(metrics.chains) > 1,
            'primary_chain': None,
            'aggregation_note': None,
            'data_source': metrics.data_source,
        }
        result = neutral_result(
            metrics.data_quality,
            f"On-chain data {metrics.data_quality}: neutral score applied",
            details=details,
        )
        return replace(result, details={**result.details, 'rating': rate_score(result.score)})

    @staticmethod
    def _data_quality(view: AggregatedOnChainMetrics) -> str:
        reliability = (view.reliability or DataQuality.UNKNOWN.value).lower()
        known = {q.value for q in (DataQuality.HIGH, DataQuality.MEDIUM, DataQuality.LOW)}
        return reliability if reliability in known else DataQuality.UNKNOWN.value

    @staticmethod
    def _multichain_adjustments(view: AggregatedOnChainMetrics) -> List[Optional[ScoreAdjustment]]:
        adjustments: List[Optional[ScoreAdjustment]] = [MULTICHAIN_LADDER.evaluate(view.chain_count)]
        populated = [h for h in view.chain_holders.values() if h > 0]
        if len(populated) >= 2:
            adjustments.append(CHAIN_BALANCE_LADDER.evaluate(min(populated) / max(populated)))
        return adjustments

    @staticmethod
    def _red_flags(view: AggregatedOnChainMetrics, tier: str,
                   active_ratio: Optional[float]) -> List[Optional[ScoreAdjustment]]:
        holders = view.total_holders
        active_7d = view.active_addresses_7d
        concentration = view.worst_concentration

        ghost = holders < 30 and active_7d < 3
        whale_dominated = (
            not is_missing(concentration)
            and concentration > WHALE_CRITICAL[tier]
            and holders < WHALE_HOLDER_LIMIT
        )
        abandoned = (
            tier != MICRO
            and active_ratio is not None
            and active_ratio < 0.005
        )

        return [
            rule("ghost_token", ghost, -3.0,
                 f"GHOST TOKEN: {holders} holders, {active_7d} active this week", FlagKind.RED_FLAG),
            rule("near_dead", not ghost and holders >= 30 and active_7d < 10, -2.0,
                 f"NEAR-DEAD: only {active_7d} active addresses this week", FlagKind.RED_FLAG),
            rule("whale_dominance", whale_dominated, -2.5,
                 f"WHALE DOMINANCE: top 10 hold {concentration:.1f}% with only {holders} holders"
                 if whale_dominated else None,
                 FlagKind.RED_FLAG),
            rule("abandoned", abandoned, -2.0,
                 f"LIKELY ABANDONED: {active_ratio:.2%} of holders active" if active_ratio is not None
                 else None, FlagKind.RED_FLAG),
        ]
