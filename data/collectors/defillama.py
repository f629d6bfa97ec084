"""
DefiLlama Collector - protocol TVL lookups
"""

from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from analysis.models import TVLData
from data.collectors.base import HttpCollector
from utils.helpers import TTLCache, safe_divide


class DefiLlamaCollector(HttpCollector):
    """TVL provider; coins that are not DeFi protocols simply have no TVL"""

    provider = "defillama"

    def __init__(self, base_url: str = "https://api.llama.fi", timeout: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url, timeout=timeout, session=session)
        self._protocols = TTLCache(ttl=600)

    async def _get_protocols(self) -> List[Dict[str, Any]]:
        protocols = self._protocols.get('protocols')
        if protocols is None:
            protocols = await self._make_request('protocols') or []
            self._protocols.set('protocols', protocols)
        return protocols

    async def fetch_tvl(self, coin_id: str, name: str) -> Optional[TVLData]:
        """Match by slug first, then by protocol name"""
        protocols = await self._get_protocols()
        slug = (coin_id or '').lower()
        wanted = (name or '').lower()

        protocol = next((p for p in protocols if (p.get('slug') or '').lower() == slug), None)
        if protocol is None:
            protocol = next((p for p in protocols if (p.get('name') or '').lower() == wanted), None)
        if protocol is None:
            logger.debug(f"Protocol {name} not found on DefiLlama")
            return None

        tvl = float(protocol.get('tvl') or 0)
        return TVLData(
            protocol=protocol.get('name', name),
            tvl=tvl,
            change_1d=protocol.get('change_1d'),
            change_7d=protocol.get('change_7d'),
            change_1m=protocol.get('change_1m'),
            mcap_tvl_ratio=safe_divide(protocol.get('mcap'), tvl),
        )
