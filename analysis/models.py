# analysis/models.py

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from utils.constants import DataQuality, HolderTier, SOURCE_SIMULATED_SOCIAL
from utils.helpers import safe_divide


@dataclass(frozen=True)
class RawCoinMetrics:
    """Market snapshot for one coin, fetched once per analysis"""
    ticker: str
    coin_id: str
    name: str
    symbol: str
    price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    fully_diluted_valuation: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    volume_24h: Optional[float] = None
    volume_7d: Optional[float] = None
    volume_30d: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_7d: Optional[float] = None
    price_change_30d: Optional[float] = None
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    platforms: Dict[str, str] = field(default_factory=dict)
    exchange_volumes: Dict[str, float] = field(default_factory=dict)
    exchange_count: Optional[int] = None
    binance_volume: Optional[float] = None

    @property
    def fdv(self) -> Optional[float]:
        """Provider FDV, else price x total supply"""
        if self.fully_diluted_valuation:
            return self.fully_diluted_valuation
        if self.price and self.total_supply:
            return self.price * self.total_supply
        return None

    @property
    def primary_exchange(self) -> Optional[str]:
        if not self.exchange_volumes:
            return None
        return max(self.exchange_volumes, key=self.exchange_volumes.get)

    @property
    def primary_exchange_share(self) -> Optional[float]:
        """Largest single-exchange volume over total tracked exchange volume"""
        if not self.exchange_volumes:
            return None
        return safe_divide(max(self.exchange_volumes.values()), sum(self.exchange_volumes.values()))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['fdv'] = self.fdv
        data['primary_exchange'] = self.primary_exchange
        data['primary_exchange_share'] = self.primary_exchange_share
        return data


@dataclass(frozen=True)
class ChainMetrics:
    """On-chain record for a single blockchain deployment"""
    chain: str
    total_holders: int = 0
    top_10_concentration: Optional[float] = None
    top_50_concentration: Optional[float] = None
    gini_coefficient: Optional[float] = None
    whale_holders: Optional[int] = None
    active_addresses_7d: int = 0
    active_addresses_30d: int = 0
    transfers_24h: Optional[int] = None
    transfers_7d: Optional[int] = None
    reliability: str = DataQuality.UNKNOWN.value
    data_source: str = "unknown"
    contract_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OnChainMetrics:
    """Root-level on-chain input for one coin, possibly backed by per-chain records"""
    total_holders: int = 0
    active_addresses_7d: int = 0
    active_addresses_30d: int = 0
    transfers_24h: Optional[int] = None
    transfers_7d: Optional[int] = None
    top_10_concentration: Optional[float] = None
    gini_coefficient: Optional[float] = None
    chains: Tuple[ChainMetrics, ...] = ()
    reliability: str = DataQuality.UNKNOWN.value
    data_source: str = "unknown"
    data_quality: str = DataQuality.REAL.value
    address_growth_mom: Optional[float] = None
    tvl_change_7d: Optional[float] = None
    daily_active_ratio: Optional[float] = None


@dataclass(frozen=True)
class AggregatedOnChainMetrics:
    """Unified totals for a (possibly multi-chain) token"""
    total_holders: int = 0
    active_addresses_7d: int = 0
    active_addresses_30d: int = 0
    transfers_24h: Optional[int] = None
    transfers_7d: Optional[int] = None
    worst_concentration: Optional[float] = None
    best_concentration: Optional[float] = None
    gini_coefficient: Optional[float] = None
    chain_count: int = 0
    is_multichain: bool = False
    primary_chain: Optional[str] = None
    chain_holders: Dict[str, int] = field(default_factory=dict)
    reliability: str = DataQuality.UNKNOWN.value
    tier: str = HolderTier.UNKNOWN.value
    aggregation_note: Optional[str] = None
    flags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['flags'] = list(self.flags)
        return data


@dataclass(frozen=True)
class EnhancedSocialMetrics:
    """Social metrics built from real platform data"""
    community_score: float
    engagement_score: float
    developer_score: float
    sentiment: str = "neutral"
    confidence: str = "low"
    twitter: Optional[Dict[str, Any]] = None
    reddit: Optional[Dict[str, Any]] = None
    github: Optional[Dict[str, Any]] = None
    sources: Tuple[str, ...] = ()
    data_source: str = "real (enhanced)"

    @property
    def overall_score(self) -> float:
        return (
            self.community_score * 0.4
            + self.engagement_score * 0.3
            + self.developer_score * 0.3
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['sources'] = list(self.sources)
        data['overall_score'] = round(self.overall_score, 2)
        return data


@dataclass(frozen=True)
class LegacySocialMetrics:
    """Aggregate social snapshot in the galaxy-score shape, usually simulated"""
    galaxy_score: float
    alt_rank: int
    sentiment: str = "neutral"
    social_volume: int = 0
    data_source: str = SOURCE_SIMULATED_SOCIAL

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SocialMetrics = Union[EnhancedSocialMetrics, LegacySocialMetrics]


@dataclass(frozen=True)
class TVLData:
    """Protocol TVL snapshot"""
    protocol: str
    tvl: float
    change_1d: Optional[float] = None
    change_7d: Optional[float] = None
    change_1m: Optional[float] = None
    mcap_tvl_ratio: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComponentScoreResult:
    """Score for one component, never mutated after construction"""
    score: float
    details: Mapping[str, Any] = field(default_factory=dict)
    flags: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    red_flags: Tuple[str, ...] = ()
    data_quality: str = DataQuality.UNKNOWN.value

    def to_dict(self, include_onchain_lists: bool = False) -> Dict[str, Any]:
        data = {
            'score': self.score,
            'details': dict(self.details),
            'flags': list(self.flags),
            'data_quality': self.data_quality,
        }
        if include_onchain_lists:
            data['warnings'] = list(self.warnings)
            data['red_flags'] = list(self.red_flags)
        return data


@dataclass
class AnalysisReport:
    """Complete analysis output for one ticker"""
    ticker: str
    name: str
    symbol: str
    coin_id: str
    overall_score: float
    classification: str
    classification_description: str
    components: Dict[str, ComponentScoreResult]
    interpretation: Dict[str, Any]
    score_breakdown: Dict[str, Any]
    investment_analysis: Dict[str, Any]
    market_data: Dict[str, Any]
    data_sources: Dict[str, str]
    metadata: Dict[str, Any]
    timestamp: datetime
    disclaimer: str
    from_cache: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ticker': self.ticker,
            'name': self.name,
            'symbol': self.symbol,
            'coin_id': self.coin_id,
            'overall_score': self.overall_score,
            'classification': self.classification,
            'classification_description': self.classification_description,
            'scores': {name: result.score for name, result in self.components.items()},
            'details': {
                name: result.to_dict(include_onchain_lists=(name == 'onchain'))
                for name, result in self.components.items()
            },
            'interpretation': self.interpretation,
            'score_breakdown': self.score_breakdown,
            'investment_analysis': self.investment_analysis,
            'market_data': self.market_data,
            'data_sources': self.data_sources,
            'metadata': self.metadata,
            'timestamp': self.timestamp.isoformat(),
            'from_cache': self.from_cache,
            'disclaimer': self.disclaimer,
        }
