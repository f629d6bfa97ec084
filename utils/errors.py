"""
Typed Exception Classes for the Crypto Fundamentals Analyzer

This module provides specific exception types so that callers can tell a
missing coin apart from a flaky provider, a bad configuration or bad input.
"""


class AnalyzerError(Exception):
    """Base exception for all analyzer errors"""
    pass


# ============================================================================
# Lookup Exceptions
# ============================================================================

class CoinNotFoundError(AnalyzerError):
    """Ticker could not be resolved against the market-data provider"""

    def __init__(self, ticker: str, message: str = None):
        self.ticker = ticker
        super().__init__(message or f"Coin not found: {ticker}")


# ============================================================================
# Provider Exceptions
# ============================================================================

class ProviderUnavailableError(AnalyzerError):
    """External data provider failed or returned an unusable response"""

    def __init__(self, provider: str, message: str = ""):
        self.provider = provider
        super().__init__(f"{provider}: {message}" if message else provider)


class ProviderTimeoutError(ProviderUnavailableError):
    """External data provider did not answer in time"""
    pass


class APIRateLimitError(ProviderUnavailableError):
    """API rate limit exceeded"""
    pass


# ============================================================================
# Configuration & Validation Exceptions
# ============================================================================

class ConfigurationError(AnalyzerError):
    """Configuration validation errors"""
    pass


class ValidationError(AnalyzerError):
    """Input validation errors"""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


# ============================================================================
# Storage Exceptions
# ============================================================================

class StorageError(AnalyzerError):
    """Storage operation errors"""
    pass


class CacheError(StorageError):
    """Cache read/write failures"""
    pass


class HistoryStoreError(StorageError):
    """Analysis history persistence failures"""
    pass
