"""
On-chain Collectors - holder distribution and activity per chain
Etherscan-family explorers share one client; Solana goes through Solscan
"""

import asyncio
from typing import Dict, List, Optional, Sequence

import aiohttp
from loguru import logger

from analysis.models import ChainMetrics
from data.collectors.base import HttpCollector
from data.processors.aggregator import calculate_gini
from utils.constants import DataQuality, EXPLORER_URLS
from utils.errors import ProviderUnavailableError

TOP_HOLDERS_PAGE = 100
WHALE_SHARE_PCT = 1.0
TRANSFERS_PER_ACTIVE = 3

# (top-10 concentration upper bound, share of holders active per week)
ACTIVITY_MULTIPLIERS = ((30, 0.15), (50, 0.10), (70, 0.07))
DEFAULT_ACTIVITY_MULTIPLIER = 0.05


def holder_distribution(balances: Sequence[float]) -> Dict[str, Optional[float]]:
    """
    Concentration figures over a top-holder list sorted largest first.

    Percentages are relative to the listed balances, so they describe
    concentration inside the visible top of the book.
    """
    values = [float(b) for b in balances if b is not None and float(b) > 0]
    total = sum(values)
    if not values or total <= 0:
        return {
            'top_10': None, 'top_50': None, 'top_100': None,
            'gini': None, 'whales': 0,
        }

    values.sort(reverse=True)

    def share(n: int) -> float:
        return round(sum(values[:n]) / total * 100, 2)

    return {
        'top_10': share(10),
        'top_50': share(50),
        'top_100': share(100),
        'gini': calculate_gini(values),
        'whales': sum(1 for v in values if v / total * 100 >= WHALE_SHARE_PCT),
    }


def estimate_weekly_active(total_holders: int, top_10: Optional[float]) -> int:
    """More concentrated books are assumed to trade less"""
    concentration = 100.0 if top_10 is None else top_10
    multiplier = DEFAULT_ACTIVITY_MULTIPLIER
    for bound, value in ACTIVITY_MULTIPLIERS:
        if concentration < bound:
            multiplier = value
            break
    return int(round(total_holders * multiplier))


class ExplorerCollector(HttpCollector):
    """
    On-chain provider for Etherscan-compatible explorers
    (ethereum, bsc, polygon, arbitrum, optimism, avalanche).
    """

    def __init__(self, chain: str, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url or EXPLORER_URLS[chain], api_key=api_key,
                         timeout=timeout, session=session)
        self.chain = chain
        self.provider = f"{chain}_explorer"

    async def _module_call(self, action: str, contract_address: str, **params):
        payload = await self._make_request('', params={
            'module': 'token',
            'action': action,
            'contractaddress': contract_address,
            'apikey': self.api_key or '',
            **params,
        })
        if not payload or str(payload.get('status')) != '1':
            message = (payload or {}).get('message', 'empty response')
            raise ProviderUnavailableError(self.provider, f"{action} failed: {message}")
        return payload.get('result')

    async def _top_holders(self, contract_address: str) -> List[float]:
        result = await self._module_call(
            'tokenholderlist', contract_address, page=1, offset=TOP_HOLDERS_PAGE
        )
        return [float(h.get('TokenHolderQuantity') or 0) for h in result or []]

    async def _holder_count(self, contract_address: str) -> Optional[int]:
        try:
            result = await self._module_call('tokeninfo', contract_address)
        except ProviderUnavailableError as e:
            logger.warning(f"[{self.chain}] token info unavailable: {e}")
            return None
        info = result[0] if isinstance(result, list) and result else result or {}
        count = info.get('holdersCount') or info.get('holders')
        return int(count) if count else None

    async def fetch(self, chain: str, contract_address: str) -> ChainMetrics:
        balances, holder_count = await asyncio.gather(
            self._top_holders(contract_address),
            self._holder_count(contract_address),
        )
        dist = holder_distribution(balances)
        total_holders = holder_count or len(balances)

        active_7d = estimate_weekly_active(total_holders, dist['top_10'])
        logger.info(f"[{self.chain}] {contract_address}: {total_holders} holders, "
                    f"top10={dist['top_10']}%")

        return ChainMetrics(
            chain=chain,
            total_holders=total_holders,
            top_10_concentration=dist['top_10'],
            top_50_concentration=dist['top_50'],
            gini_coefficient=dist['gini'],
            whale_holders=dist['whales'],
            active_addresses_7d=active_7d,
            active_addresses_30d=active_7d * 2,
            transfers_7d=active_7d * TRANSFERS_PER_ACTIVE,
            reliability=DataQuality.HIGH.value,
            data_source=f"{self.provider}_api",
            contract_address=contract_address,
        )


class SolscanCollector(HttpCollector):
    """On-chain provider for SPL tokens"""

    provider = "solscan"

    def __init__(self, base_url: str = "https://public-api.solscan.io", api_key: Optional[str] = None,
                 timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url, api_key=api_key, timeout=timeout, session=session)

    def _headers(self) -> Dict[str, str]:
        return {'token': self.api_key} if self.api_key else {}

    async def fetch(self, chain: str, contract_address: str) -> ChainMetrics:
        holders, transfers = await asyncio.gather(
            self._make_request('token/holders', params={
                'tokenAddress': contract_address, 'offset': 0, 'limit': 50,
            }),
            self._make_request('token/transfer', params={
                'tokenAddress': contract_address, 'offset': 0, 'limit': 100,
            }),
        )
        if not holders:
            raise ProviderUnavailableError(self.provider, f"no holder data for {contract_address}")

        balances = [float(h.get('amount') or 0) for h in holders.get('data') or []]
        dist = holder_distribution(balances)
        total_holders = int(holders.get('total') or len(balances))

        transfers_7d = len((transfers or {}).get('data') or []) if isinstance(transfers, dict) \
            else len(transfers or [])
        active_7d = int(round(transfers_7d / 10))

        return ChainMetrics(
            chain=chain,
            total_holders=total_holders,
            top_10_concentration=dist['top_10'],
            top_50_concentration=dist['top_50'],
            gini_coefficient=dist['gini'],
            whale_holders=dist['whales'],
            active_addresses_7d=active_7d,
            active_addresses_30d=active_7d * 4,
            transfers_7d=transfers_7d,
            reliability=DataQuality.HIGH.value,
            data_source="solscan_api",
            contract_address=contract_address,
        )
