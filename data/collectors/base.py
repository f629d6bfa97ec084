"""
Shared aiohttp plumbing for provider collectors
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from utils.errors import APIRateLimitError, ProviderTimeoutError, ProviderUnavailableError


class HttpCollector:
    """
    Base class for collectors that speak JSON over HTTP.

    Owns one ClientSession (created lazily) and maps transport failures
    onto the provider error family: 429 -> APIRateLimitError, timeouts ->
    ProviderTimeoutError, anything else non-2xx -> ProviderUnavailableError.
    A 404 is returned as None so callers can decide what "missing" means.
    """

    provider = "http"

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key or None
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None

        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
        }

    async def initialize(self):
        """Create the HTTP session if one was not injected"""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    def _headers(self) -> Dict[str, str]:
        return {}

    async def _make_request(self, endpoint: str, params: Optional[Dict] = None,
                            headers: Optional[Dict] = None, url: Optional[str] = None) -> Any:
        """
        GET a JSON document.

        Args:
            endpoint: Path below base_url (ignored when url is given)
            params: Query parameters
            headers: Extra headers on top of the collector defaults
            url: Absolute URL override

        Returns:
            Decoded JSON, or None on 404
        """
        await self.initialize()
        target = url or f"{self.base_url}/{endpoint.lstrip('/')}"
        request_headers = {**self._headers(), **(headers or {})}

        self.stats['total_requests'] += 1
        try:
            async with self.session.get(target, params=params, headers=request_headers) as response:
                if response.status == 404:
                    self.stats['failed_requests'] += 1
                    return None
                if response.status == 429:
                    self.stats['failed_requests'] += 1
                    raise APIRateLimitError(self.provider, f"rate limited on {endpoint}")
                if response.status >= 400:
                    self.stats['failed_requests'] += 1
                    raise ProviderUnavailableError(
                        self.provider, f"HTTP {response.status} from {endpoint}"
                    )
                data = await response.json(content_type=None)
                self.stats['successful_requests'] += 1
                return data
        except asyncio.TimeoutError as e:
            self.stats['failed_requests'] += 1
            logger.warning(f"{self.provider} request timeout: {endpoint}")
            raise ProviderTimeoutError(self.provider, f"timeout on {endpoint}") from e
        except aiohttp.ClientError as e:
            self.stats['failed_requests'] += 1
            logger.warning(f"{self.provider} request error on {endpoint}: {e}")
            raise ProviderUnavailableError(self.provider, str(e)) from e
