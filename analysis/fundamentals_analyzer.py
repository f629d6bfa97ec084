# analysis/fundamentals_analyzer.py

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Sequence, Set

from analysis.liquidity_scorer import LiquidityScorer
from analysis.models import (
    AnalysisReport, ChainMetrics, OnChainMetrics, RawCoinMetrics, TVLData,
)
from analysis.onchain_scorer import OnChainScorer
from analysis.scoring_engine import ScoringEngine
from analysis.social_scorer import SocialScorer
from analysis.tokenomics_scorer import TokenomicsScorer
from config.config_manager import AnalysisConfig
from data.collectors.mock_data import MockDataGenerator
from data.processors.chain_detector import detect_chains, is_native_coin
from data.storage.cache import LocalCache, report_key
from utils.constants import DISCLAIMER, DataQuality, SOURCE_UNAVAILABLE
from utils.errors import CacheError, ProviderTimeoutError, ValidationError
from utils.helpers import chunk_list, safe_divide, utc_now, validate_ticker

logger = logging.getLogger(__name__)


class FundamentalsAnalyzer:
    """
    Runs one analysis end to end.

    Market data is mandatory. TVL, social and per-chain on-chain fetches run
    concurrently and each one degrades to fallback data on failure or
    timeout. Reports are cached per ticker and appended to the history store
    in the background.
    """

    def __init__(
        self,
        market_provider,
        onchain_providers: Optional[Mapping[str, Any]] = None,
        social_provider=None,
        tvl_provider=None,
        cache=None,
        history_store=None,
        mock_generator: Optional[MockDataGenerator] = None,
        tokenomics_scorer: Optional[TokenomicsScorer] = None,
        liquidity_scorer: Optional[LiquidityScorer] = None,
        social_scorer: Optional[SocialScorer] = None,
        onchain_scorer: Optional[OnChainScorer] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        config: Optional[AnalysisConfig] = None,
    ):
        self.config = config or AnalysisConfig()
        self.market_provider = market_provider
        self.onchain_providers = dict(onchain_providers or {})
        self.social_provider = social_provider
        self.tvl_provider = tvl_provider
        self.cache = cache or LocalCache(default_ttl=self.config.cache_ttl)
        self.history_store = history_store
        self.mock = mock_generator or MockDataGenerator(variance=self.config.mock_data_variance)

        self.tokenomics_scorer = tokenomics_scorer or TokenomicsScorer()
        self.liquidity_scorer = liquidity_scorer or LiquidityScorer()
        self.social_scorer = social_scorer or SocialScorer()
        self.onchain_scorer = onchain_scorer or OnChainScorer()
        self.scoring_engine = scoring_engine or ScoringEngine()

        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Single analysis
    # ------------------------------------------------------------------

    async def analyze(self, ticker: str, refresh: bool = False) -> Dict[str, Any]:
        """
        Analyze one ticker.

        Args:
            ticker: 1-10 alphanumeric characters
            refresh: Skip the cache read and recompute

        Returns:
            AnalysisReport dictionary
        """
        ticker = validate_ticker(ticker)
        key = report_key(ticker)

        if not refresh:
            cached = await self._cache_get(key)
            if cached is not None:
                logger.info(f"Cache hit for {ticker}")
                cached['from_cache'] = True
                return cached

        started = time.perf_counter()
        market = await self._fetch_market(ticker)
        chains = detect_chains(market.platforms)

        tvl, social, chain_results = await self._gather_sources(ticker, market, chains)

        data_sources: Dict[str, str] = {
            'market': getattr(self.market_provider, 'provider', 'market'),
            'tvl': tvl.protocol if tvl else SOURCE_UNAVAILABLE,
        }

        if social is None:
            social = self.mock.legacy_social(ticker, market)
        data_sources['social'] = social.data_source

        for chain, result in zip(chains, chain_results):
            data_sources[f'onchain_{chain}'] = result.data_source if result else SOURCE_UNAVAILABLE
        onchain = self._build_onchain(ticker, market, [r for r in chain_results if r], tvl)
        data_sources['onchain'] = onchain.data_source

        components = {
            'tokenomics': self.tokenomics_scorer.score(market),
            'liquidity': self.liquidity_scorer.score(market),
            'social': self.social_scorer.score(social),
            'onchain': self.onchain_scorer.score(onchain),
        }
        scores = {name: result.score for name, result in components.items()}

        overall = self.scoring_engine.calculate_overall_score(scores)
        classification, description = self.scoring_engine.classify(overall)
        now = utc_now()

        report = AnalysisReport(
            ticker=ticker,
            name=market.name,
            symbol=market.symbol,
            coin_id=market.coin_id,
            overall_score=overall,
            classification=classification,
            classification_description=description,
            components=components,
            interpretation=self.scoring_engine.interpret_score(overall),
            score_breakdown=self.scoring_engine.get_score_breakdown(scores),
            investment_analysis=self.scoring_engine.build_investment_analysis(
                overall, classification, components
            ),
            market_data=self._market_data(market, tvl),
            data_sources=data_sources,
            metadata={
                'analyzed_at': now.isoformat(),
                'analysis_duration_ms': int((time.perf_counter() - started) * 1000),
                'scoring_weights': self.scoring_engine.weights,
                'onchain_tier': components['onchain'].details.get('tier'),
                'chains': list(chains),
            },
            timestamp=now,
            disclaimer=DISCLAIMER,
        ).to_dict()

        logger.info(f"Analysis complete for {ticker}: {overall} ({classification})")

        await self._cache_set(key, report)
        self._record_history(report)
        return report

    async def _fetch_market(self, ticker: str) -> RawCoinMetrics:
        try:
            return await asyncio.wait_for(
                self.market_provider.fetch(ticker), timeout=self.config.provider_timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError('market', f"no market data for {ticker} "
                                                 f"within {self.config.provider_timeout}s") from e

    async def _guarded(self, name: str, coro: Awaitable) -> Optional[Any]:
        """Bounded fetch; any failure or timeout becomes None"""
        try:
            return await asyncio.wait_for(coro, timeout=self.config.provider_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{name} timed out after {self.config.provider_timeout}s")
        except Exception as e:
            logger.warning(f"{name} failed: {type(e).__name__}: {e}")
        return None

    async def _none(self) -> None:
        return None

    async def _gather_sources(self, ticker: str, market: RawCoinMetrics,
                              chains: Mapping[str, str]):
        """Fan out TVL, social and per-chain fetches; join before scoring"""
        tvl_call = (
            self._guarded('tvl', self.tvl_provider.fetch_tvl(market.coin_id, market.name))
            if self.tvl_provider else self._none()
        )
        social_call = (
            self._guarded('social', self.social_provider.fetch(ticker, market.name))
            if self.social_provider else self._none()
        )
        chain_calls = []
        for chain, address in chains.items():
            provider = self.onchain_providers.get(chain)
            if provider is None:
                logger.debug(f"No on-chain provider configured for {chain}")
                chain_calls.append(self._none())
            else:
                chain_calls.append(self._guarded(f'onchain[{chain}]', provider.fetch(chain, address)))

        outcomes = await asyncio.gather(tvl_call, social_call, *chain_calls, return_exceptions=True)
        outcomes = [None if isinstance(o, BaseException) else o for o in outcomes]
        tvl, social, chain_results = outcomes[0], outcomes[1], outcomes[2:]
        return tvl, social, chain_results

    def _build_onchain(self, ticker: str, market: RawCoinMetrics,
                       chain_metrics: Sequence[ChainMetrics],
                       tvl: Optional[TVLData]) -> OnChainMetrics:
        """Real chain data when any chain answered, otherwise an estimate or simulation"""
        if chain_metrics:
            onchain = OnChainMetrics(
                chains=tuple(chain_metrics),
                reliability=chain_metrics[0].reliability,
                data_source=", ".join(c.data_source for c in chain_metrics),
                data_quality=DataQuality.REAL.value,
            )
        elif is_native_coin(ticker):
            onchain = self.mock.estimated_native_onchain(market)
        else:
            onchain = self.mock.simulated_onchain(market, tvl.tvl if tvl else None)

        if tvl and tvl.change_7d is not None:
            onchain = replace(onchain, tvl_change_7d=tvl.change_7d)
        return onchain

    @staticmethod
    def _market_data(market: RawCoinMetrics, tvl: Optional[TVLData]) -> Dict[str, Any]:
        data = market.to_dict()
        data['volume_to_market_cap'] = safe_divide(market.volume_24h, market.market_cap)
        data['tvl'] = tvl.to_dict() if tvl else None
        return data

    # ------------------------------------------------------------------
    # Cache and history
    # ------------------------------------------------------------------

    async def _cache_get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.cache.get(key)
        except CacheError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    async def _cache_set(self, key: str, report: Dict[str, Any]) -> None:
        try:
            await self.cache.set(key, report, ttl=self.config.cache_ttl)
        except CacheError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def invalidate(self, ticker: str) -> bool:
        return await self.cache.delete(report_key(validate_ticker(ticker)))

    def _record_history(self, report: Dict[str, Any]) -> None:
        if self.history_store is None:
            return
        task = asyncio.create_task(self._append_history(report))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _append_history(self, report: Dict[str, Any]) -> None:
        try:
            await self.history_store.append(report)
        except Exception as e:
            logger.warning(f"History append failed for {report.get('ticker')}: {e}")

    # ------------------------------------------------------------------
    # Batch and comparison
    # ------------------------------------------------------------------

    async def analyze_batch(self, tickers: Sequence[str], max_concurrent: Optional[int] = None,
                            delay: Optional[float] = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Analyze tickers in waves of at most max_concurrent, pausing between waves.

        Returns:
            {"results": [...reports], "errors": [{"ticker", "error"}]}
        """
        max_concurrent = max_concurrent or self.config.batch_max_concurrent
        delay = self.config.batch_delay if delay is None else delay

        results: List[Dict[str, Any]] = []
        errors: List[Dict[str, str]] = []
        waves = chunk_list(list(tickers), max_concurrent)

        for index, wave in enumerate(waves):
            outcomes = await asyncio.gather(*(self.analyze(t) for t in wave), return_exceptions=True)
            for ticker, outcome in zip(wave, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning(f"Batch analysis failed for {ticker}: {outcome}")
                    errors.append({'ticker': ticker, 'error': str(outcome)})
                else:
                    results.append(outcome)

            if index < len(waves) - 1:
                logger.debug(f"Batch wave {index + 1}/{len(waves)} done, pausing {delay}s")
                await asyncio.sleep(delay)

        return {'results': results, 'errors': errors}

    async def compare(self, tickers: Sequence[str]) -> Dict[str, Any]:
        if not isinstance(tickers, (list, tuple)):
            raise ValidationError("tickers must be a list", field="tickers")

        unique = list(dict.fromkeys(validate_ticker(t) for t in tickers))
        if len(unique) < self.config.compare_min:
            raise ValidationError(
                f"At least {self.config.compare_min} tickers are required for comparison",
                field="tickers",
            )
        if len(unique) > self.config.compare_max:
            raise ValidationError(
                f"Too many tickers: maximum is {self.config.compare_max}", field="tickers"
            )

        batch = await self.analyze_batch(unique)
        ranked = sorted(batch['results'], key=lambda r: r['overall_score'], reverse=True)
        comparison = [
            {
                'rank': position,
                'ticker': report['ticker'],
                'name': report['name'],
                'overall_score': report['overall_score'],
                'classification': report['classification'],
                'scores': report['scores'],
            }
            for position, report in enumerate(ranked, start=1)
        ]
        return {
            'comparison': comparison,
            'winner': comparison[0] if comparison else None,
            'errors': batch['errors'],
            'compared_at': utc_now().isoformat(),
        }

    async def close(self) -> None:
        """Wait for background history writes"""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
