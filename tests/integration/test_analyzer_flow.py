# tests/integration/test_analyzer_flow.py
"""
End-to-end analysis through FundamentalsAnalyzer with fake providers
"""
from unittest.mock import AsyncMock, patch

import pytest

from analysis.models import ChainMetrics, TVLData
from fixtures.mock_data import (
    FakeChainProvider, FakeMarketProvider, FakeSocialProvider, FakeTVLProvider, build_market,
)
from utils.errors import (
    CoinNotFoundError, ProviderTimeoutError, ProviderUnavailableError, ValidationError,
)


@pytest.mark.integration
class TestSingleAnalysis:

    @pytest.fixture
    def market_provider(self, strong_market):
        return FakeMarketProvider(markets={"UNI": strong_market})

    @pytest.mark.asyncio
    async def test_strong_mega_token_is_green(self, make_analyzer, market_provider,
                                              mega_chain, strong_social):
        analyzer = make_analyzer(
            market_provider=market_provider,
            onchain_providers={"ethereum": FakeChainProvider(mega_chain)},
            social_provider=FakeSocialProvider(strong_social),
        )
        report = await analyzer.analyze("uni")

        assert report['ticker'] == "UNI"
        assert report['scores'] == {
            "tokenomics": 9.5, "liquidity": 10.0, "social": 9.5, "onchain": 10.0,
        }
        assert report['overall_score'] == 9.75
        assert report['overall_score'] >= 7.5
        assert report['classification'] == "GREEN"
        assert report['metadata']['onchain_tier'] == "mega"
        assert report['metadata']['chains'] == ["ethereum"]
        assert report['details']['onchain']['data_quality'] == "high"
        assert report['details']['onchain']['red_flags'] == []
        assert report['data_sources']['onchain_ethereum'] == "etherscan"
        assert report['data_sources']['market'] == "coingecko"
        assert report['from_cache'] is False
        assert report['investment_analysis']['risk_level'] == "LOW"
        assert report['disclaimer']

    @pytest.mark.asyncio
    async def test_ghost_token_scores_low_on_chain(self, make_analyzer):
        ghost_address = "0x" + "9" * 40
        market = build_market("GHOST", platforms={"ethereum": ghost_address})
        ghost = ChainMetrics(chain="ethereum", total_holders=20, active_addresses_7d=1,
                             active_addresses_30d=2, reliability="high", data_source="etherscan")
        analyzer = make_analyzer(
            market_provider=FakeMarketProvider(markets={"GHOST": market}),
            onchain_providers={"ethereum": FakeChainProvider(ghost)},
        )
        report = await analyzer.analyze("GHOST")

        onchain = report['details']['onchain']
        assert report['scores']['onchain'] <= 2.0
        assert any(flag.startswith("GHOST TOKEN") for flag in onchain['red_flags'])
        assert any("GHOST TOKEN" in risk for risk in report['investment_analysis']['key_risks'])
        assert report['investment_analysis']['risk_level'] == "HIGH"

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, make_analyzer, market_provider):
        analyzer = make_analyzer(market_provider=market_provider)

        first = await analyzer.analyze("UNI")
        second = await analyzer.analyze("UNI")

        assert market_provider.calls == ["UNI"]
        assert second['from_cache'] is True
        assert {**second, 'from_cache': False} == first

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, make_analyzer, market_provider):
        analyzer = make_analyzer(market_provider=market_provider)

        await analyzer.analyze("UNI")
        refreshed = await analyzer.analyze("UNI", refresh=True)

        assert market_provider.calls == ["UNI", "UNI"]
        assert refreshed['from_cache'] is False

    @pytest.mark.asyncio
    async def test_failing_providers_fall_back_to_simulated_data(self, make_analyzer,
                                                                 market_provider):
        analyzer = make_analyzer(
            market_provider=market_provider,
            onchain_providers={"ethereum": FakeChainProvider(
                error=ProviderUnavailableError("ethereum_explorer", "HTTP 503"))},
            social_provider=FakeSocialProvider(error=ProviderTimeoutError("twitter")),
        )
        report = await analyzer.analyze("UNI")

        assert report['details']['onchain']['data_quality'] == "simulated"
        assert report['scores']['onchain'] == 5.0
        assert report['details']['social']['data_quality'] == "simulated"
        assert report['data_sources']['onchain_ethereum'] == "unavailable"
        assert report['data_sources']['onchain'].startswith("simulated")
        assert report['data_sources']['social'].startswith("simulated")

    @pytest.mark.asyncio
    async def test_native_coin_uses_estimate(self, make_analyzer):
        analyzer = make_analyzer(market_provider=FakeMarketProvider())
        report = await analyzer.analyze("BTC")

        assert report['details']['onchain']['data_quality'] == "estimated"
        assert report['scores']['onchain'] == 5.0

    @pytest.mark.asyncio
    async def test_tvl_change_reaches_the_report(self, make_analyzer, market_provider, mega_chain):
        tvl = TVLData(protocol="Uniswap V3", tvl=4_000_000_000, change_7d=12.5)
        analyzer = make_analyzer(market_provider=market_provider,
                                 onchain_providers={"ethereum": FakeChainProvider(mega_chain)},
                                 tvl_provider=FakeTVLProvider(tvl))
        report = await analyzer.analyze("UNI")

        assert report['data_sources']['tvl'] == "Uniswap V3"
        assert report['market_data']['tvl']['tvl'] == 4_000_000_000
        assert report['details']['onchain']['details']['tvl_change_7d'] == 12.5
        assert "TVL growing (+12.5% 7d)" in report['details']['onchain']['flags']

    @pytest.mark.asyncio
    async def test_unknown_coin_propagates(self, make_analyzer):
        provider = FakeMarketProvider(default_factory=None)
        analyzer = make_analyzer(market_provider=provider)

        with pytest.raises(CoinNotFoundError):
            await analyzer.analyze("ZZZ")

    @pytest.mark.asyncio
    async def test_market_outage_propagates(self, make_analyzer):
        provider = FakeMarketProvider(error=ProviderUnavailableError("coingecko", "HTTP 500"))
        analyzer = make_analyzer(market_provider=provider)

        with pytest.raises(ProviderUnavailableError):
            await analyzer.analyze("UNI")

    @pytest.mark.asyncio
    async def test_invalid_ticker_rejected_before_any_io(self, make_analyzer, market_provider):
        analyzer = make_analyzer(market_provider=market_provider)

        with pytest.raises(ValidationError):
            await analyzer.analyze("NOT-A-TICKER")
        assert market_provider.calls == []

    @pytest.mark.asyncio
    async def test_history_is_recorded_in_background(self, make_analyzer, market_provider):
        store = AsyncMock()
        analyzer = make_analyzer(market_provider=market_provider, history_store=store)

        report = await analyzer.analyze("UNI")
        await analyzer.close()

        store.append.assert_awaited_once_with(report)

    @pytest.mark.asyncio
    async def test_history_failure_does_not_fail_analysis(self, make_analyzer, market_provider):
        store = AsyncMock()
        store.append.side_effect = RuntimeError("database gone")
        analyzer = make_analyzer(market_provider=market_provider, history_store=store)

        report = await analyzer.analyze("UNI")
        await analyzer.close()

        assert report['ticker'] == "UNI"


@pytest.mark.integration
class TestBatchAndCompare:

    @pytest.mark.asyncio
    async def test_batch_runs_in_waves_of_three(self, make_analyzer):
        provider = FakeMarketProvider(latency=0.01)
        analyzer = make_analyzer(market_provider=provider)
        tickers = ["AAA", "BBB", "CCC", "DDD", "EEE", "FFF", "GGG"]

        with patch("asyncio.sleep", new=AsyncMock()) as sleep:
            batch = await analyzer.analyze_batch(tickers)

        assert len(batch['results']) == 7
        assert batch['errors'] == []
        assert provider.max_active == 3
        pauses = [call for call in sleep.await_args_list if call.args == (2.0,)]
        assert len(pauses) == 2

    @pytest.mark.asyncio
    async def test_batch_collects_errors_per_ticker(self, make_analyzer):
        provider = FakeMarketProvider(markets={"UNI": build_market("UNI")},
                                      default_factory=None)
        analyzer = make_analyzer(market_provider=provider)

        batch = await analyzer.analyze_batch(["UNI", "ZZZ"], delay=0)

        assert [r['ticker'] for r in batch['results']] == ["UNI"]
        assert batch['errors'][0]['ticker'] == "ZZZ"

    @pytest.mark.asyncio
    async def test_compare_ranks_by_overall_score(self, make_analyzer):
        weak = build_market("WEAK", circulating_supply=10_000_000.0, max_supply=None,
                            volume_24h=500_000.0, exchange_volumes={"Tiny": 500_000.0},
                            exchange_count=1)
        provider = FakeMarketProvider(markets={"WEAK": weak})
        analyzer = make_analyzer(market_provider=provider)

        with patch("asyncio.sleep", new=AsyncMock()):
            result = await analyzer.compare(["weak", "uni"])

        assert [row['ticker'] for row in result['comparison']] == ["UNI", "WEAK"]
        assert result['comparison'][0]['rank'] == 1
        assert result['winner']['ticker'] == "UNI"
        assert result['errors'] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tickers,message", [
        (["BTC"], "At least"),
        (["btc", "BTC"], "At least"),
        ([f"T{i}" for i in range(11)], "Too many tickers"),
    ])
    async def test_compare_bounds(self, make_analyzer, tickers, message):
        analyzer = make_analyzer()
        with pytest.raises(ValidationError, match=message):
            await analyzer.compare(tickers)

    @pytest.mark.asyncio
    async def test_compare_requires_a_list(self, make_analyzer):
        with pytest.raises(ValidationError):
            await make_analyzer().compare("BTC,ETH")
