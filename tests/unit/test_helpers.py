# tests/unit/test_helpers.py
"""
Unit tests for helpers and chain detection
"""
import math
from unittest.mock import AsyncMock, patch

import pytest

from data.processors.chain_detector import detect_chains, is_native_coin, is_valid_address
from utils.errors import APIRateLimitError, ProviderTimeoutError, ValidationError
from utils.helpers import (
    TTLCache, chunk_list, clamp, format_compact, is_missing, retry_async, round_score,
    safe_divide, validate_ticker,
)

SOL_ADDRESS = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
EVM_ADDRESS = "0x" + "ab" * 20


@pytest.mark.unit
class TestRounding:

    @pytest.mark.parametrize("value,expected", [
        (2.675, 2.68),
        (-2.675, -2.68),
        (7.125, 7.13),
        (6.994999, 6.99),
        (10.0, 10.0),
    ])
    def test_round_half_away_from_zero(self, value, expected):
        assert round_score(value) == expected

    def test_round_to_other_places(self):
        assert round_score(0.12345, 4) == 0.1235

    def test_clamp(self):
        assert clamp(12.5) == 10.0
        assert clamp(-1.0) == 0.0
        assert clamp(float("nan")) == 0.0

    def test_safe_divide(self):
        assert safe_divide(1.0, 4.0) == 0.25
        assert safe_divide(1.0, 0) is None
        assert safe_divide(None, 4.0) is None

    def test_clamp_infinities(self):
        assert clamp(float("inf")) == 10.0
        assert clamp(float("-inf")) == 0.0

    def test_safe_divide_never_returns_a_non_finite_ratio(self):
        assert safe_divide(float("inf"), 1e6) is None
        assert safe_divide(1e300, 1e-300) is None
        assert safe_divide(1e300, 1e-320) is None
        assert safe_divide(1.0, float("nan")) is None
        assert safe_divide(10 ** 400, 1) is None
        assert safe_divide(-5.0, 2.0) == -2.5

    @pytest.mark.parametrize("value,missing", [
        (None, True),
        (float("nan"), True),
        (float("inf"), True),
        (float("-inf"), True),
        (0, False),
        (1e300, False),
        (10 ** 400, False),
    ])
    def test_is_missing(self, value, missing):
        assert is_missing(value) is missing

    def test_round_score_passes_extremes_through(self):
        assert round_score(1e300, 4) == 1e300
        assert round_score(float("inf")) == float("inf")
        assert math.isnan(round_score(float("nan")))


@pytest.mark.unit
class TestValidateTicker:

    @pytest.mark.parametrize("raw,expected", [
        ("btc", "BTC"),
        (" eth ", "ETH"),
        ("1INCH", "1INCH"),
        ("ABCDEFGHIJ", "ABCDEFGHIJ"),
    ])
    def test_valid(self, raw, expected):
        assert validate_ticker(raw) == expected

    @pytest.mark.parametrize("raw", ["", "BTC-USD", "ABCDEFGHIJK", "$ETH", None, 42])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_ticker(raw)
        assert exc_info.value.field == "ticker"


@pytest.mark.unit
class TestChainDetector:

    def test_detects_supported_chains_in_priority_order(self):
        platforms = {
            "solana": SOL_ADDRESS,
            "tron": "TXYZ",
            "ethereum": EVM_ADDRESS,
        }
        assert list(detect_chains(platforms)) == ["ethereum", "solana"]

    def test_drops_invalid_addresses(self):
        platforms = {"ethereum": "0x1234", "binance-smart-chain": EVM_ADDRESS}
        assert detect_chains(platforms) == {"bsc": EVM_ADDRESS}

    def test_no_platforms(self):
        assert detect_chains({}) == {}
        assert detect_chains(None) == {}

    @pytest.mark.parametrize("chain,address,valid", [
        ("ethereum", EVM_ADDRESS, True),
        ("polygon", EVM_ADDRESS.upper().replace("0X", "0x"), True),
        ("ethereum", SOL_ADDRESS, False),
        ("solana", SOL_ADDRESS, True),
        ("solana", "0OIl" * 10, False),
        ("tron", EVM_ADDRESS, False),
        ("ethereum", None, False),
    ])
    def test_address_validation(self, chain, address, valid):
        assert is_valid_address(chain, address) is valid

    def test_native_coins(self):
        assert is_native_coin("btc")
        assert not is_native_coin("UNI")


@pytest.mark.unit
class TestMiscHelpers:

    def test_chunk_list(self):
        assert chunk_list(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_format_compact(self):
        assert format_compact(2_500_000) == "2.5M"
        assert format_compact(999) == "999"

    def test_ttl_cache_expiry(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("utils.helpers.time.monotonic", lambda: now[0])
        cache = TTLCache(ttl=10)
        cache.set("a", 1)
        cache.set("b", 2, ttl=100)

        now[0] += 50
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert len(cache) == 1


def flaky(*outcomes):
    """Coroutine function that raises or returns the given outcomes in order"""
    attempts = []

    async def fetch():
        outcome = outcomes[min(len(attempts), len(outcomes) - 1)]
        attempts.append(outcome)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return fetch, attempts


@pytest.mark.unit
class TestRetry:

    @pytest.mark.asyncio
    async def test_retries_transient_failures_with_backoff(self):
        fetch, attempts = flaky(ProviderTimeoutError("coingecko"),
                                ProviderTimeoutError("coingecko"), "ok")

        with patch("asyncio.sleep", new=AsyncMock()) as sleep:
            assert await retry_async(max_retries=3, delay=1.0)(fetch)() == "ok"

        assert len(attempts) == 3
        assert [call.args for call in sleep.await_args_list] == [(1.0,), (2.0,)]

    @pytest.mark.asyncio
    async def test_last_failure_is_raised(self):
        fetch, attempts = flaky(ProviderTimeoutError("coingecko"))
        retried = retry_async(max_retries=2, delay=0.5, exponential_backoff=False)(fetch)

        with patch("asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ProviderTimeoutError):
                await retried()
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried(self):
        fetch, attempts = flaky(APIRateLimitError("coingecko"))

        with pytest.raises(APIRateLimitError):
            await retry_async(max_retries=3)(fetch)()
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_other_errors_pass_straight_through(self):
        fetch, attempts = flaky(ValidationError("bad"))

        with pytest.raises(ValidationError):
            await retry_async(max_retries=3)(fetch)()
        assert len(attempts) == 1
