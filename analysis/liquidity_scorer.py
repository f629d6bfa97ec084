# analysis/liquidity_scorer.py

import logging
from typing import Optional

from analysis.models import ComponentScoreResult, RawCoinMetrics
from data.processors.normalizer import ScoreAdjustment, build_result, ladder
from utils.constants import DataQuality, FlagKind
from utils.helpers import format_currency, is_missing, round_score, safe_divide

logger = logging.getLogger(__name__)

# Exchange share is a band, not a monotonic ladder: too little is wash
# trading, too much is a single venue carrying everything.
EXCHANGE_SHARE_LADDER = ladder(
    "primary_exchange_share",
    [
        (0.80, 1.0, "Good but centralized volume ({value:.0%} on {exchange})"),
        (0.30, 2.0, "Real organic volume ({value:.0%} on {exchange})"),
        (0.10, 0.5, "Weak primary exchange volume ({value:.0%} on {exchange})"),
    ],
    fallback=(-1.5, "Possible wash trading: only {value:.0%} on top exchange", FlagKind.WARNING),
    inclusive=True,
)

ABSOLUTE_VOLUME_LADDER = ladder(
    "volume_24h",
    [
        (50_000_000, 1.0, "Deep liquidity ({amount} 24h volume)"),
        (10_000_000, 0.5, "Solid liquidity ({amount} 24h volume)"),
    ],
    fallback=(0.0, None),
)

EXCHANGE_COUNT_LADDER = ladder(
    "exchange_count",
    [
        (50, 0.5, "Listed on {value} exchanges"),
        (10, 0.25, "Listed on {value} exchanges"),
        (3, 0.0, None),
    ],
    fallback=(-0.5, "Listed on only {value} exchange(s)", FlagKind.WARNING),
    inclusive=True,
)


def _volume_ratio_adjustment(ratio: Optional[float]) -> Optional[ScoreAdjustment]:
    """Turnover band: healthy in the middle, suspicious at both ends"""
    if is_missing(ratio):
        return None
    if ratio > 0.5:
        return ScoreAdjustment(-0.5, f"Extreme turnover ({ratio:.0%}), possible wash trading",
                               FlagKind.WARNING, "volume_ratio")
    if ratio > 0.25:
        return ScoreAdjustment(0.5, f"High turnover ({ratio:.0%})", rule="volume_ratio")
    if ratio >= 0.05:
        return ScoreAdjustment(1.5, f"Healthy turnover ({ratio:.0%} of market cap)", rule="volume_ratio")
    if ratio >= 0.01:
        return ScoreAdjustment(0.0, f"Modest turnover ({ratio:.1%})", rule="volume_ratio")
    return ScoreAdjustment(-1.0, f"Illiquid ({ratio:.2%} daily turnover)", FlagKind.WARNING, "volume_ratio")


def _absolute_volume_adjustment(volume: Optional[float]) -> Optional[ScoreAdjustment]:
    if is_missing(volume):
        return None
    if volume < 1_000_000:
        return ScoreAdjustment(-1.0, f"Thin trading ({format_currency(volume)} 24h volume)",
                               FlagKind.WARNING, "volume_24h")
    return ABSOLUTE_VOLUME_LADDER.evaluate(volume, amount=format_currency(volume))


class LiquidityScorer:
    """Trading depth: turnover, venue distribution and absolute volume"""

    def score(self, market: RawCoinMetrics) -> ComponentScoreResult:
        volume_ratio = safe_divide(market.volume_24h, market.market_cap)
        share = market.primary_exchange_share
        exchange = market.primary_exchange or "primary exchange"

        adjustments = [
            _volume_ratio_adjustment(volume_ratio),
            EXCHANGE_SHARE_LADDER.evaluate(share, exchange=exchange),
            _absolute_volume_adjustment(market.volume_24h),
            EXCHANGE_COUNT_LADDER.evaluate(market.exchange_count),
        ]

        details = {
            'volume_24h': market.volume_24h,
            'market_cap': market.market_cap,
            'volume_to_mcap_ratio': round_score(volume_ratio, 4) if volume_ratio is not None else None,
            'primary_exchange': market.primary_exchange,
            'primary_exchange_share': round_score(share, 4) if share is not None else None,
            'binance_volume': market.binance_volume,
            'exchange_count': market.exchange_count,
        }

        result = build_result(adjustments, details=details, data_quality=DataQuality.REAL.value)
        logger.debug(f"Liquidity score for {market.ticker}: {result.score}")
        return result
