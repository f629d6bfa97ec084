# analysis/tokenomics_scorer.py

import logging
from typing import Optional

from analysis.models import ComponentScoreResult, RawCoinMetrics
from data.processors.normalizer import Direction, build_result, ladder, rule
from utils.constants import DataQuality, FlagKind
from utils.helpers import round_score, safe_divide

logger = logging.getLogger(__name__)

CIRCULATING_LADDER = ladder(
    "circulating_ratio",
    [
        (0.70, 2.0, "High circulating supply ({value:.0%})"),
        (0.40, 1.0, "Moderate circulating supply ({value:.0%})", FlagKind.FLAG, True),
    ],
    fallback=(-1.0, "Low circulating supply ({value:.0%}), unlock pressure ahead", FlagKind.WARNING),
)

FDV_LADDER = ladder(
    "fdv_mc_ratio",
    [
        (1.5, 1.5, "Low dilution risk (FDV/MC {value:.2f}x)"),
        (3.0, 0.5, "Moderate dilution risk (FDV/MC {value:.2f}x)"),
    ],
    fallback=(-1.0, "High dilution risk (FDV/MC {value:.2f}x)", FlagKind.WARNING),
    direction=Direction.LOWER_IS_BETTER,
)


def dilution_risk(fdv_mc_ratio: Optional[float]) -> str:
    if fdv_mc_ratio is None:
        return "unknown"
    if fdv_mc_ratio < 1.5:
        return "low"
    if fdv_mc_ratio < 3:
        return "medium"
    return "high"


class TokenomicsScorer:
    """Supply structure: circulating share, supply cap and dilution overhang"""

    def score(self, market: RawCoinMetrics) -> ComponentScoreResult:
        circulating_ratio = safe_divide(market.circulating_supply, market.total_supply)
        fdv_mc_ratio = safe_divide(market.fdv, market.market_cap)
        has_max_supply = bool(market.max_supply and market.max_supply > 0)

        adjustments = [
            CIRCULATING_LADDER.evaluate(circulating_ratio),
            rule("max_supply", has_max_supply, 1.0, "Fixed max supply"),
            rule("max_supply", not has_max_supply, -0.5,
                 "Unlimited supply (inflationary)", FlagKind.WARNING),
            FDV_LADDER.evaluate(fdv_mc_ratio),
        ]

        details = {
            'circulating_ratio': round_score(circulating_ratio, 4) if circulating_ratio is not None else None,
            'circulating_supply': market.circulating_supply,
            'total_supply': market.total_supply,
            'max_supply': market.max_supply,
            'fdv': market.fdv,
            'fdv_mc_ratio': round_score(fdv_mc_ratio) if fdv_mc_ratio is not None else None,
            'dilution_risk': dilution_risk(fdv_mc_ratio),
        }

        result = build_result(adjustments, details=details, data_quality=DataQuality.REAL.value)
        logger.debug(f"Tokenomics score for {market.ticker}: {result.score}")
        return result
