"""
Utility Helper Functions for the Crypto Fundamentals Analyzer
Core utilities for retries, rounding, formatting, validation and caching
"""

import asyncio
import logging
import math
import re
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from functools import wraps
from typing import Any, Dict, List, Optional, Union

from utils.errors import APIRateLimitError, ProviderUnavailableError, ValidationError

logger = logging.getLogger(__name__)

TICKER_PATTERN = re.compile(r'^[A-Za-z0-9]{1,10}$')

# ============= Decorators =============

def retry_async(max_retries: int = 3, delay: float = 1.0, exponential_backoff: bool = True,
                exceptions: tuple = (ProviderUnavailableError,),
                give_up_on: tuple = (APIRateLimitError,)):
    """
    Retry a coroutine on transient provider failures

    Exceptions listed in ``give_up_on`` are re-raised at once even when they
    also match ``exceptions``.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except give_up_on:
                    raise
                except exceptions as e:
                    if attempt == max_retries:
                        raise
                    wait_time = delay * (2 ** (attempt - 1)) if exponential_backoff else delay
                    logger.warning(f"{func.__name__} attempt {attempt}/{max_retries} failed: {e}. "
                                   f"Retrying in {wait_time}s")
                    await asyncio.sleep(wait_time)
        return wrapper
    return decorator

def measure_time(func):
    """Log how long a provider call took, in milliseconds"""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"{func.__qualname__} took {elapsed_ms:.0f}ms")
    return wrapper

# ============= Math Utilities =============

# Beyond this magnitude a float has no hundredths digit left to round
ROUNDING_LIMIT = 1e15

def is_missing(value: Any) -> bool:
    """True for None, NaN and infinities, the values a ladder must skip"""
    if value is None:
        return True
    try:
        return not math.isfinite(value)
    except TypeError:
        return False
    except OverflowError:
        return False

def round_score(value: float, places: int = 2) -> float:
    """Round half away from zero at the given decimal place"""
    if not math.isfinite(value) or abs(value) >= ROUNDING_LIMIT:
        return float(value)
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))

def clamp(value: float, lower: float = 0.0, upper: float = 10.0) -> float:
    """Clamp value into [lower, upper]; None and NaN collapse to lower"""
    if value is None or math.isnan(value):
        return lower
    return max(lower, min(upper, value))

def safe_divide(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    """
    Divide, returning None when either side is missing, the denominator is
    not positive, or the quotient overflows
    """
    if is_missing(numerator) or is_missing(denominator) or denominator <= 0:
        return None
    try:
        result = numerator / denominator
    except OverflowError:
        return None
    return result if math.isfinite(result) else None

# ============= Time Utilities =============

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

# ============= Data Formatting =============

def format_compact(value: Union[int, float], prefix: str = "") -> str:
    """Format large numbers as 1.2K / 3.4M / 5.6B"""
    for divisor, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
        if abs(value) >= divisor:
            return f"{prefix}{value / divisor:.1f}{suffix}"
    return f"{prefix}{value:.0f}"

def format_currency(value: Union[int, float], symbol: str = "$") -> str:
    """Format value as compact currency"""
    return format_compact(value, prefix=symbol)

def deep_merge_dicts(dict1: Dict, dict2: Dict) -> Dict:
    """Deep merge two dictionaries"""
    result = dict1.copy()

    for key, value in dict2.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge_dicts(result[key], value)
        else:
            result[key] = value

    return result

# ============= Validation Utilities =============

def validate_ticker(ticker: Any) -> str:
    """Validate a ticker symbol and return it upper-cased"""
    if not isinstance(ticker, str) or not TICKER_PATTERN.match(ticker.strip()):
        raise ValidationError(
            f"Invalid ticker format: {ticker!r}. Use 1-10 alphanumeric characters",
            field="ticker"
        )
    return ticker.strip().upper()

# ============= Chunk Processing =============

def chunk_list(lst: List, chunk_size: int) -> List[List]:
    """Split list into chunks of specified size"""
    return [lst[i:i + chunk_size] for i in range(0, len(lst), chunk_size)]

# ============= Cache Utilities =============

class TTLCache:
    """Simple TTL cache implementation with optional per-key TTL"""

    def __init__(self, ttl: int = 300):
        self.ttl = ttl
        self.cache = {}
        self.expires = {}

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired"""
        if key in self.cache:
            if time.monotonic() < self.expires[key]:
                return self.cache[key]
            del self.cache[key]
            del self.expires[key]
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """Set value in cache"""
        self.cache[key] = value
        self.expires[key] = time.monotonic() + (self.ttl if ttl is None else ttl)

    def delete(self, key: str) -> bool:
        self.expires.pop(key, None)
        return self.cache.pop(key, None) is not None

    def clear(self):
        """Clear all cache"""
        self.cache.clear()
        self.expires.clear()

    def __len__(self) -> int:
        return len(self.cache)


__all__ = [
    'retry_async', 'measure_time',
    'is_missing', 'round_score', 'clamp', 'safe_divide',
    'utc_now',
    'format_compact', 'format_currency', 'deep_merge_dicts',
    'validate_ticker', 'TICKER_PATTERN',
    'chunk_list',
    'TTLCache',
]
