# tests/fixtures/mock_data.py
"""
Market builders and fake providers for testing
"""
import asyncio
from typing import Dict, Optional

from analysis.models import ChainMetrics, RawCoinMetrics
from utils.errors import CoinNotFoundError

# Captured before any test patches asyncio.sleep
REAL_SLEEP = asyncio.sleep

UNI_ADDRESS = "0x1f9840a85d5af5e3b1d7f9f97b24f2b8e4a8f1c2"

STRONG_MARKET = {
    "price": 100.0,
    "market_cap": 10_000_000_000.0,
    "market_cap_rank": 20,
    "fully_diluted_valuation": 11_000_000_000.0,
    "circulating_supply": 90_000_000.0,
    "total_supply": 100_000_000.0,
    "max_supply": 100_000_000.0,
    "volume_24h": 1_200_000_000.0,
    "exchange_volumes": {"Binance": 500_000_000.0, "Coinbase": 400_000_000.0,
                         "Kraken": 300_000_000.0},
    "exchange_count": 60,
    "binance_volume": 500_000_000.0,
}


def build_market(ticker: str = "UNI", **overrides) -> RawCoinMetrics:
    """Market snapshot with strong fundamentals unless overridden"""
    fields = dict(STRONG_MARKET)
    fields.update(overrides)
    return RawCoinMetrics(
        ticker=ticker.upper(),
        coin_id=fields.pop("coin_id", ticker.lower()),
        name=fields.pop("name", f"{ticker.upper()} Token"),
        symbol=ticker.upper(),
        **fields,
    )


def coingecko_document(**market_overrides) -> Dict:
    """A trimmed /coins/{id} response"""
    market_data = {
        "current_price": {"usd": 7.5},
        "market_cap": {"usd": 4_500_000_000},
        "fully_diluted_valuation": {"usd": 7_500_000_000},
        "total_volume": {"usd": 150_000_000},
        "circulating_supply": 600_000_000,
        "total_supply": 1_000_000_000,
        "max_supply": 1_000_000_000,
        "price_change_percentage_24h": -1.2,
        "ath": {"usd": 44.9},
        "ath_change_percentage": {"usd": -83.3},
    }
    market_data.update(market_overrides)
    return {
        "id": "uniswap",
        "symbol": "uni",
        "name": "Uniswap",
        "market_cap_rank": 22,
        "platforms": {"ethereum": UNI_ADDRESS, "": ""},
        "market_data": market_data,
        "tickers": [
            {"market": {"name": "Binance"}, "converted_volume": {"usd": 60_000_000}},
            {"market": {"name": "Binance"}, "converted_volume": {"usd": 20_000_000}},
            {"market": {"name": "Coinbase Exchange"}, "converted_volume": {"usd": 50_000_000}},
            {"market": {"name": "Dead Venue"}, "converted_volume": {"usd": 0}},
            {"market": {}, "converted_volume": {"usd": 1_000}},
        ],
    }


class FakeMarketProvider:
    """Market provider serving fixed snapshots and tracking concurrency"""

    provider = "coingecko"

    def __init__(self, markets: Optional[Dict[str, RawCoinMetrics]] = None,
                 default_factory=build_market, error: Optional[Exception] = None,
                 latency: float = 0.0):
        self.markets = markets or {}
        self.default_factory = default_factory
        self.error = error
        self.latency = latency
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def fetch(self, ticker: str) -> RawCoinMetrics:
        self.calls.append(ticker)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.latency:
                await REAL_SLEEP(self.latency)
            if self.error is not None:
                raise self.error
            if ticker in self.markets:
                return self.markets[ticker]
            if self.default_factory is None:
                raise CoinNotFoundError(ticker)
            return self.default_factory(ticker)
        finally:
            self.active -= 1


class FakeChainProvider:
    def __init__(self, metrics: Optional[ChainMetrics] = None, error: Optional[Exception] = None):
        self.metrics = metrics
        self.error = error
        self.calls = []

    async def fetch(self, chain: str, address: str) -> ChainMetrics:
        self.calls.append((chain, address))
        if self.error is not None:
            raise self.error
        return self.metrics


class FakeSocialProvider:
    def __init__(self, metrics=None, error: Optional[Exception] = None):
        self.metrics = metrics
        self.error = error

    async def fetch(self, ticker: str, coin_name: Optional[str] = None):
        if self.error is not None:
            raise self.error
        return self.metrics


class FakeTVLProvider:
    def __init__(self, tvl=None):
        self.tvl = tvl

    async def fetch_tvl(self, coin_id: str, name: str):
        return self.tvl
