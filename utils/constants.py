"""
System-wide Constants for the Crypto Fundamentals Analyzer
Centralized definitions for components, tiers, chains and data-source tags
"""

from enum import Enum
from typing import Dict, List, Tuple

# ============= Version Info =============
VERSION = "1.0.0"
APP_NAME = "fundamentals-analyzer"
PROJECT_NAME = "Crypto Fundamentals Analyzer"

# ============= Scoring Components =============

COMPONENTS: Tuple[str, ...] = ("tokenomics", "liquidity", "social", "onchain")

DEFAULT_WEIGHTS: Dict[str, float] = {
    "tokenomics": 0.30,
    "liquidity": 0.25,
    "social": 0.20,
    "onchain": 0.25,
}

WEIGHT_TOLERANCE = 0.01
BASE_SCORE = 5.0
NEUTRAL_SCORE = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0


class Classification(str, Enum):
    """Overall fundamentals rating"""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


CLASSIFICATION_DESCRIPTIONS = {
    Classification.GREEN: "Strong fundamentals",
    Classification.YELLOW: "Mixed fundamentals, proceed with caution",
    Classification.RED: "Weak fundamentals, high risk",
}


class DataQuality(str, Enum):
    """Provenance tag attached to every component score"""
    REAL = "real"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    ESTIMATED = "estimated"
    SIMULATED = "simulated"
    UNKNOWN = "unknown"


class FlagKind(str, Enum):
    FLAG = "flag"
    WARNING = "warning"
    RED_FLAG = "red_flag"

# ============= Holder Tiers =============

class HolderTier(str, Enum):
    MEGA = "mega"
    LARGE = "large"
    MID = "mid"
    SMALL = "small"
    MICRO = "micro"
    UNKNOWN = "unknown"


# (exclusive lower bound, tier), highest first
TIER_BREAKPOINTS: List[Tuple[int, HolderTier]] = [
    (1_000_000, HolderTier.MEGA),
    (100_000, HolderTier.LARGE),
    (10_000, HolderTier.MID),
    (1_000, HolderTier.SMALL),
]

# ============= Chain Configuration =============

# Provider platform name -> chain id, in detection priority order
PLATFORM_CHAIN_MAP: Dict[str, str] = {
    "ethereum": "ethereum",
    "binance-smart-chain": "bsc",
    "solana": "solana",
    "polygon-pos": "polygon",
    "avalanche": "avalanche",
    "arbitrum-one": "arbitrum",
    "optimistic-ethereum": "optimism",
}

EVM_CHAINS = {"ethereum", "bsc", "polygon", "avalanche", "arbitrum", "optimism"}

EVM_ADDRESS_PATTERN = r'^0x[a-fA-F0-9]{40}$'
SOLANA_ADDRESS_PATTERN = r'^[1-9A-HJ-NP-Za-km-z]{32,44}$'

NATIVE_COINS = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "BNB": "bsc",
    "ADA": "cardano",
    "AVAX": "avalanche",
    "DOT": "polkadot",
    "MATIC": "polygon",
    "ATOM": "cosmos",
    "XRP": "ripple",
}

EXPLORER_URLS: Dict[str, str] = {
    "ethereum": "https://api.etherscan.io/api",
    "bsc": "https://api.bscscan.com/api",
    "polygon": "https://api.polygonscan.com/api",
    "avalanche": "https://api.snowtrace.io/api",
    "arbitrum": "https://api.arbiscan.io/api",
    "optimism": "https://api-optimistic.etherscan.io/api",
}

# ============= Data Source Tags =============

SOURCE_SIMULATED_SOCIAL = "simulated (LunarCrush-style)"
SOURCE_SIMULATED_ONCHAIN = "simulated (fallback)"
SOURCE_ESTIMATED_ONCHAIN = "estimated (native coin)"
SOURCE_UNAVAILABLE = "unavailable"

# ============= Cache Keys =============

CACHE_KEY_PREFIX = "analysis"

DISCLAIMER = (
    "This analysis is generated automatically from public data and is not "
    "financial advice. Always do your own research."
)
