"""
CoinGecko Collector - market snapshot per ticker
"""

from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from analysis.models import RawCoinMetrics
from data.collectors.base import HttpCollector
from utils.errors import CoinNotFoundError, ProviderTimeoutError, ProviderUnavailableError
from utils.helpers import TTLCache, measure_time, retry_async

COIN_LIST_TTL = 3600


class CoinGeckoCollector(HttpCollector):
    """Market data provider backed by the CoinGecko v3 API"""

    provider = "coingecko"

    def __init__(self, base_url: str = "https://api.coingecko.com/api/v3",
                 api_key: Optional[str] = None, timeout: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url, api_key=api_key, timeout=timeout, session=session)
        self._coin_list = TTLCache(ttl=COIN_LIST_TTL)

    def _headers(self) -> Dict[str, str]:
        return {'x-cg-pro-api-key': self.api_key} if self.api_key else {}

    @retry_async(max_retries=2, delay=1.0, exceptions=(ProviderTimeoutError,))
    async def _get_coin_list(self) -> List[Dict[str, Any]]:
        coins = self._coin_list.get('coins')
        if coins is None:
            coins = await self._make_request('coins/list')
            if not isinstance(coins, list):
                raise ProviderUnavailableError(self.provider, "unexpected /coins/list payload")
            self._coin_list.set('coins', coins)
            logger.debug(f"Cached CoinGecko coin list ({len(coins)} coins)")
        return coins

    async def find_coin_id(self, ticker: str) -> Optional[str]:
        """
        Resolve a ticker to a CoinGecko id.

        When several coins share the symbol, the one whose id equals the
        lower-cased symbol wins, otherwise the first listed match.
        """
        symbol = ticker.lower()
        matches = [c['id'] for c in await self._get_coin_list()
                   if (c.get('symbol') or '').lower() == symbol]
        if not matches:
            return None
        return symbol if symbol in matches else matches[0]

    @measure_time
    async def fetch(self, ticker: str) -> RawCoinMetrics:
        coin_id = await self.find_coin_id(ticker)
        if not coin_id:
            raise CoinNotFoundError(ticker, f"Coin {ticker} not found on CoinGecko")

        data = await self._make_request(f'coins/{coin_id}', params={
            'localization': 'false',
            'tickers': 'true',
            'market_data': 'true',
            'community_data': 'false',
            'developer_data': 'false',
        })
        if not data:
            raise CoinNotFoundError(ticker, f"Coin {ticker} not found on CoinGecko")

        metrics = self.parse_coin(ticker, data)
        logger.info(f"CoinGecko data fetched for {ticker} ({coin_id})")
        return metrics

    @staticmethod
    def parse_coin(ticker: str, data: Dict[str, Any]) -> RawCoinMetrics:
        """Build RawCoinMetrics from a /coins/{id} document"""
        market = data.get('market_data') or {}

        def usd(key: str) -> Optional[float]:
            value = (market.get(key) or {}).get('usd')
            return float(value) if value is not None else None

        volume_24h = usd('total_volume')
        tickers = data.get('tickers') or []

        exchange_volumes: Dict[str, float] = {}
        binance_volume = 0.0
        for t in tickers:
            exchange = (t.get('market') or {}).get('name')
            volume = (t.get('converted_volume') or {}).get('usd') or 0
            if not exchange:
                continue
            exchange_volumes[exchange] = exchange_volumes.get(exchange, 0.0) + float(volume)
            if 'binance' in exchange.lower():
                binance_volume += float(volume)

        # Windowed volumes are not published; extrapolate from 24h
        volume_7d = volume_24h * 7 if volume_24h is not None else None
        volume_30d = volume_24h * 30 if volume_24h is not None else None

        return RawCoinMetrics(
            ticker=ticker.upper(),
            coin_id=data.get('id', ''),
            name=data.get('name', ticker.upper()),
            symbol=(data.get('symbol') or ticker).upper(),
            price=usd('current_price'),
            market_cap=usd('market_cap'),
            market_cap_rank=data.get('market_cap_rank') or market.get('market_cap_rank'),
            fully_diluted_valuation=usd('fully_diluted_valuation'),
            circulating_supply=market.get('circulating_supply'),
            total_supply=market.get('total_supply'),
            max_supply=market.get('max_supply'),
            volume_24h=volume_24h,
            volume_7d=volume_7d,
            volume_30d=volume_30d,
            price_change_24h=market.get('price_change_percentage_24h'),
            price_change_7d=market.get('price_change_percentage_7d'),
            price_change_30d=market.get('price_change_percentage_30d'),
            ath=usd('ath'),
            ath_change_percentage=usd('ath_change_percentage'),
            platforms={k: v for k, v in (data.get('platforms') or {}).items() if k and v},
            exchange_volumes={k: v for k, v in exchange_volumes.items() if v > 0},
            exchange_count=len(exchange_volumes) if tickers else None,
            binance_volume=binance_volume if tickers else None,
        )
