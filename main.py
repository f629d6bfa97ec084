#!/usr/bin/env python3
"""
Crypto Fundamentals Analyzer - process entry point

Commands:
- serve: run the HTTP API (default)
- analyze: analyze one or more tickers and print the JSON reports
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Dict, List, Optional

from aiohttp import web
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from analysis.fundamentals_analyzer import FundamentalsAnalyzer  # noqa: E402
from analysis.onchain_scorer import OnChainScorer  # noqa: E402
from analysis.scoring_engine import ScoringEngine  # noqa: E402
from config.config_manager import ConfigManager  # noqa: E402
from config.settings import settings  # noqa: E402
from data.collectors.chain_data import ExplorerCollector, SolscanCollector  # noqa: E402
from data.collectors.coingecko import CoinGeckoCollector  # noqa: E402
from data.collectors.defillama import DefiLlamaCollector  # noqa: E402
from data.collectors.mock_data import MockDataGenerator  # noqa: E402
from data.collectors.social_data import (  # noqa: E402
    GitHubCollector, RedditCollector, SocialDataCollector, TwitterCollector,
)
from data.processors.aggregator import ChainAggregator  # noqa: E402
from data.storage.cache import build_cache  # noqa: E402
from data.storage.database import AnalysisHistoryStore  # noqa: E402
from monitoring.api_routes import create_app  # noqa: E402
from monitoring.logger import StructuredLogger  # noqa: E402
from utils.constants import EXPLORER_URLS  # noqa: E402
from utils.errors import AnalyzerError, StorageError  # noqa: E402

logger = logging.getLogger("FundamentalsAnalyzer")


def _secret(value) -> Optional[str]:
    return value.get_secret_value() if value else None


class AnalyzerApplication:
    """Wires configuration, providers, storage and the analyzer together"""

    def __init__(self, config_path: Optional[str] = None, debug: bool = False):
        self.config_path = config_path or settings.CONFIG_FILE
        self.debug = debug
        self.config_manager: Optional[ConfigManager] = None
        self.structured_logger: Optional[StructuredLogger] = None
        self.analyzer: Optional[FundamentalsAnalyzer] = None
        self.cache = None
        self.history_store: Optional[AnalysisHistoryStore] = None
        self._closeables: List = []

    async def initialize(self) -> None:
        self.config_manager = ConfigManager(self.config_path)
        await self.config_manager.initialize()

        self.structured_logger = StructuredLogger(
            "fundamentals", self.config_manager.get_logging_config(), debug=self.debug
        )
        logger.info(f"Starting analyzer ({settings.ENVIRONMENT.value})")
        missing = settings.missing_credentials()
        if missing:
            logger.info(f"No credentials for: {', '.join(missing)}")

        analysis_config = self.config_manager.get_analysis_config()

        self.cache = build_cache(self.config_manager.get_cache_config(), analysis_config.cache_ttl)
        await self.cache.connect()

        db_config = self.config_manager.get_database_config()
        if db_config.enabled:
            store = AnalysisHistoryStore(db_config)
            try:
                await store.connect()
                self.history_store = store
            except StorageError as e:
                logger.warning(f"History store disabled: {e}")

        providers = self.config_manager.get_providers_config()
        timeout = analysis_config.provider_timeout

        market = CoinGeckoCollector(providers.coingecko_base_url,
                                    api_key=_secret(providers.coingecko_api_key), timeout=timeout)
        tvl = DefiLlamaCollector(providers.defillama_base_url, timeout=timeout)
        onchain = self._onchain_providers(providers, timeout)
        social = self._social_provider(providers, timeout)
        self._closeables = [market, tvl, social, *onchain.values()]

        aggregator = ChainAggregator()
        self.analyzer = FundamentalsAnalyzer(
            market_provider=market,
            onchain_providers=onchain,
            social_provider=social,
            tvl_provider=tvl,
            cache=self.cache,
            history_store=self.history_store,
            mock_generator=MockDataGenerator(variance=analysis_config.mock_data_variance),
            onchain_scorer=OnChainScorer(aggregator),
            scoring_engine=ScoringEngine(self.config_manager.get_scoring_config()),
            config=analysis_config,
        )

    @staticmethod
    def _onchain_providers(providers, timeout: float) -> Dict:
        if providers.use_mock_data:
            return {}
        keys = {
            'ethereum': _secret(providers.etherscan_api_key),
            'bsc': _secret(providers.bscscan_api_key),
            'polygon': _secret(providers.polygonscan_api_key),
        }
        onchain = {
            chain: ExplorerCollector(chain, EXPLORER_URLS[chain], api_key=key, timeout=timeout)
            for chain, key in keys.items() if key
        }
        onchain['solana'] = SolscanCollector(providers.solscan_base_url,
                                             api_key=_secret(providers.solscan_api_key),
                                             timeout=timeout)
        return onchain

    @staticmethod
    def _social_provider(providers, timeout: float) -> SocialDataCollector:
        if providers.use_mock_data:
            return SocialDataCollector()
        twitter_token = _secret(providers.twitter_bearer_token)
        return SocialDataCollector(
            twitter=TwitterCollector(twitter_token, timeout=timeout) if twitter_token else None,
            reddit=RedditCollector(providers.reddit_user_agent, timeout=timeout),
            github=GitHubCollector(_secret(providers.github_token), timeout=timeout),
        )

    async def serve(self) -> None:
        api_config = self.config_manager.get_api_config()
        app = create_app(self.analyzer, self.history_store, api_config.cors_origins,
                         structured_logger=self.structured_logger)

        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, api_config.host, api_config.port)
        await site.start()
        logger.info(f"API listening on http://{api_config.host}:{api_config.port}")

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                pass

        try:
            await stop.wait()
        finally:
            await runner.cleanup()

    async def analyze_tickers(self, tickers: List[str], refresh: bool = False) -> int:
        """Print reports as JSON; exit code 1 if any ticker failed"""
        if len(tickers) == 1:
            try:
                reports = [await self.analyzer.analyze(tickers[0], refresh=refresh)]
                errors = []
            except AnalyzerError as e:
                self.structured_logger.log_error(e, {'function': 'analyze', 'ticker': tickers[0]})
                reports, errors = [], [{'ticker': tickers[0], 'error': str(e)}]
        else:
            batch = await self.analyzer.analyze_batch(tickers)
            reports, errors = batch['results'], batch['errors']

        for report in reports:
            self.structured_logger.log_analysis(report)
        print(json.dumps({'results': reports, 'errors': errors}, indent=2, default=str))
        return 1 if errors else 0

    async def shutdown(self) -> None:
        logger.info("Shutting down...")
        if self.analyzer:
            await self.analyzer.close()
        for closeable in self._closeables:
            await closeable.close()
        if self.history_store:
            await self.history_store.disconnect()
        if self.cache:
            await self.cache.disconnect()
        logger.info("Shutdown complete")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Crypto Fundamentals Analyzer - automated fundamentals scoring"
    )
    parser.add_argument(
        '--config',
        default=None,
        help='Path to configuration file (YAML or JSON)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command')
    subparsers.add_parser('serve', help='Run the HTTP API')

    analyze = subparsers.add_parser('analyze', help='Analyze tickers and print JSON')
    analyze.add_argument('tickers', nargs='+', help='Ticker symbols, e.g. BTC ETH')
    analyze.add_argument('--refresh', action='store_true', help='Ignore cached reports')

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = 'serve'
    return args


async def run(args) -> int:
    app = AnalyzerApplication(config_path=args.config, debug=args.debug)
    try:
        await app.initialize()
        if args.command == 'analyze':
            return await app.analyze_tickers(args.tickers, refresh=args.refresh)
        await app.serve()
        return 0
    finally:
        await app.shutdown()


def main(argv: Optional[List[str]] = None) -> None:
    """Console entry point"""
    args = parse_arguments(argv)
    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        exit_code = 0
    except AnalyzerError as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
