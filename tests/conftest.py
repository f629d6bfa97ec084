# tests/conftest.py
"""
Global pytest configuration and fixtures
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root and the tests directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from analysis.fundamentals_analyzer import FundamentalsAnalyzer
from analysis.models import ChainMetrics, EnhancedSocialMetrics
from config.config_manager import AnalysisConfig
from data.collectors.mock_data import MockDataGenerator
from data.storage.cache import LocalCache
from fixtures.mock_data import FakeMarketProvider, UNI_ADDRESS, build_market


@pytest.fixture
def strong_market():
    return build_market("UNI", platforms={"ethereum": UNI_ADDRESS})


@pytest.fixture
def mega_chain():
    return ChainMetrics(
        chain="ethereum",
        total_holders=2_000_000,
        top_10_concentration=15.0,
        active_addresses_7d=150_000,
        active_addresses_30d=250_000,
        transfers_7d=600_000,
        reliability="high",
        data_source="etherscan",
        contract_address=UNI_ADDRESS,
    )


@pytest.fixture
def strong_social():
    return EnhancedSocialMetrics(
        community_score=90,
        engagement_score=90,
        developer_score=90,
        sentiment="bullish",
        confidence="high",
        sources=("twitter", "reddit", "github"),
    )


@pytest.fixture
def mock_generator():
    """Deterministic fallback data"""
    return MockDataGenerator(variance=0, rng=random.Random(7))


@pytest.fixture
def analysis_config():
    return AnalysisConfig(provider_timeout=1.0, batch_delay=2.0)


@pytest.fixture
def local_cache():
    return LocalCache(default_ttl=60)


@pytest.fixture
def make_analyzer(local_cache, mock_generator, analysis_config):
    """Factory for analyzers wired to fake providers"""
    def factory(market_provider=None, onchain_providers=None, social_provider=None,
                tvl_provider=None, history_store=None, cache=None):
        return FundamentalsAnalyzer(
            market_provider=market_provider or FakeMarketProvider(),
            onchain_providers=onchain_providers,
            social_provider=social_provider,
            tvl_provider=tvl_provider,
            cache=cache or local_cache,
            history_store=history_store,
            mock_generator=mock_generator,
            config=analysis_config,
        )
    return factory
