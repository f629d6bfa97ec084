"""
Chain Aggregator - combines per-chain on-chain metrics for multi-chain tokens
Sums holders and activity across chains, tracks worst/best concentration and provenance
"""

from dataclasses import replace
from typing import Iterable, Optional, Sequence

import numpy as np
from loguru import logger

from analysis.models import AggregatedOnChainMetrics, ChainMetrics, OnChainMetrics
from utils.constants import DataQuality, HolderTier, TIER_BREAKPOINTS


def classify_tier(total_holders: Optional[int]) -> str:
    """Holder-count tier; a pure step function of the count"""
    holders = total_holders or 0
    for lower_bound, tier in TIER_BREAKPOINTS:
        if holders > lower_bound:
            return tier.value
    return HolderTier.MICRO.value


def calculate_gini(balances: Iterable[float]) -> Optional[float]:
    """
    Gini coefficient over holder balances.

    0 means perfectly equal, values near 1 mean a handful of wallets hold
    everything. Returns None when there is nothing to measure.
    """
    values = np.sort(np.asarray([b for b in balances if b is not None and b >= 0], dtype=float))
    n = values.size
    total = values.sum() if n else 0.0
    if n == 0 or total <= 0:
        return None
    index = np.arange(1, n + 1)
    gini = np.sum((2 * index - n - 1) * values) / (n * total)
    return round(float(gini), 3)


def _sum_optional(values: Sequence[Optional[int]]) -> Optional[int]:
    present = [v for v in values if v is not None]
    return int(sum(present)) if present else None


class ChainAggregator:
    """
    Aggregates ChainMetrics records into one AggregatedOnChainMetrics.

    Holders are summed, not maxed, because each chain is its own ecosystem.
    Concentration keeps both extremes so the scorer can be conservative.
    """

    def aggregate(self, chains: Sequence[ChainMetrics],
                  weighted_concentration: Optional[float] = None) -> AggregatedOnChainMetrics:
        if not chains:
            logger.debug("No chain data to aggregate")
            return AggregatedOnChainMetrics(
                worst_concentration=weighted_concentration,
                best_concentration=weighted_concentration,
                tier=HolderTier.UNKNOWN.value,
            )

        total_holders = int(sum(c.total_holders or 0 for c in chains))
        concentrations = [
            c.top_10_concentration for c in chains
            if c.top_10_concentration is not None and c.top_10_concentration > 0
        ]
        if concentrations:
            worst = max(concentrations)
            best = min(concentrations)
        else:
            worst = best = weighted_concentration

        ginis = [c.gini_coefficient for c in chains if c.gini_coefficient is not None]
        primary = max(chains, key=lambda c: c.total_holders or 0)

        aggregated = AggregatedOnChainMetrics(
            total_holders=total_holders,
            active_addresses_7d=int(sum(c.active_addresses_7d or 0 for c in chains)),
            active_addresses_30d=int(sum(c.active_addresses_30d or 0 for c in chains)),
            transfers_24h=_sum_optional([c.transfers_24h for c in chains]),
            transfers_7d=_sum_optional([c.transfers_7d for c in chains]),
            worst_concentration=worst,
            best_concentration=best,
            gini_coefficient=max(ginis) if ginis else None,
            chain_count=len(chains),
            is_multichain=len(chains) > 1,
            primary_chain=primary.chain,
            chain_holders={c.chain: int(c.total_holders or 0) for c in chains},
            reliability=primary.reliability,
            tier=classify_tier(total_holders),
        )

        logger.debug(
            f"Aggregated {len(chains)} chain(s): holders={total_holders} "
            f"worst_concentration={worst} primary={primary.chain}"
        )
        return aggregated

    def resolve(self, metrics: OnChainMetrics) -> AggregatedOnChainMetrics:
        """
        Fix the totals and tier the on-chain scorer works from.

        Root-level totals win when present. When they are zero but chains
        exist, totals come from the chains and the result carries an
        aggregation_note.
        """
        chains = list(metrics.chains)
        chain_view = self.aggregate(chains, weighted_concentration=metrics.top_10_concentration)

        if not metrics.total_holders and chains:
            note = f"Aggregated from {len(chains)} chain(s): root totals were empty"
            logger.info(note)
            return replace(
                chain_view,
                aggregation_note=note,
                flags=(f"Multi-chain aggregation used ({', '.join(c.chain for c in chains)})",),
            )

        if not metrics.total_holders and not chains:
            return AggregatedOnChainMetrics(
                worst_concentration=metrics.top_10_concentration,
                best_concentration=metrics.top_10_concentration,
                gini_coefficient=metrics.gini_coefficient,
                reliability=metrics.reliability,
                tier=HolderTier.UNKNOWN.value,
            )

        concentration = chain_view.worst_concentration
        if concentration is None:
            concentration = metrics.top_10_concentration

        return AggregatedOnChainMetrics(
            total_holders=int(metrics.total_holders),
            active_addresses_7d=int(metrics.active_addresses_7d or 0),
            active_addresses_30d=int(metrics.active_addresses_30d or 0),
            transfers_24h=metrics.transfers_24h,
            transfers_7d=metrics.transfers_7d,
            worst_concentration=concentration,
            best_concentration=chain_view.best_concentration if chains else concentration,
            gini_coefficient=metrics.gini_coefficient if metrics.gini_coefficient is not None
            else chain_view.gini_coefficient,
            chain_count=chain_view.chain_count,
            is_multichain=chain_view.is_multichain,
            primary_chain=chain_view.primary_chain,
            chain_holders=chain_view.chain_holders,
            reliability=chain_view.reliability if chains else metrics.reliability,
            tier=classify_tier(metrics.total_holders),
        )
