"""
Analyzer API Routes

HTTP endpoints over the fundamentals analyzer:
- Single-ticker analysis and multi-ticker comparison
- Analysis history, top coins and statistics
- Health check
"""

import json
import logging
from typing import Iterable, Optional

import aiohttp_cors
from aiohttp import web

from utils.constants import VERSION
from utils.errors import (
    APIRateLimitError, CoinNotFoundError, ConfigurationError, ProviderUnavailableError,
    StorageError, ValidationError,
)
from utils.helpers import utc_now, validate_ticker

logger = logging.getLogger(__name__)

# (exception type, status, title); first match wins
ERROR_STATUS = (
    (ValidationError, 400, "Invalid request"),
    (CoinNotFoundError, 404, "Coin not found"),
    (APIRateLimitError, 429, "Rate limit exceeded"),
    (ProviderUnavailableError, 503, "Data provider unavailable"),
    (StorageError, 503, "Storage unavailable"),
    (ConfigurationError, 500, "Configuration error"),
)

MAX_LIMIT = 100


def error_response(status: int, title: str, message: str) -> web.Response:
    return web.json_response(
        {'success': False, 'error': title, 'message': message}, status=status
    )


def error_middleware(structured_logger=None):
    """Middleware mapping analyzer errors onto HTTP status codes"""

    def report(error: Exception, request: web.Request, status: int) -> None:
        if structured_logger:
            structured_logger.log_error(error, {
                'function': request.match_info.route.name or request.path,
                'method': request.method,
                'path': request.path,
                'status': status,
            })
        elif status >= 500:
            logger.error(f"{request.method} {request.path} -> {status}: {error}", exc_info=error)
        else:
            logger.warning(f"{request.method} {request.path} -> {status}: {error}")

    @web.middleware
    async def middleware(request: web.Request, handler):
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as e:
            for error_type, status, title in ERROR_STATUS:
                if isinstance(e, error_type):
                    report(e, request, status)
                    return error_response(status, title, str(e))
            report(e, request, 500)
            return error_response(500, "Internal server error", "An unexpected error occurred")

    return middleware


def _limit(request: web.Request, default: int = 10) -> int:
    raw = request.query.get('limit', str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"limit must be an integer, got {raw!r}", field="limit") from e
    if not 1 <= value <= MAX_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}", field="limit")
    return value


class AnalyzerRoutes:
    """
    REST routes for the analyzer

    The history endpoints answer 503 when no history store is configured.
    """

    def __init__(self, analyzer, history_store=None, structured_logger=None):
        self.analyzer = analyzer
        self.history_store = history_store
        self.structured_logger = structured_logger

    def setup_routes(self, app: web.Application):
        app.router.add_get('/api/analyze/{ticker}', self.analyze, name='analyze')
        app.router.add_post('/api/compare', self.compare, name='compare')
        app.router.add_get('/api/history/{ticker}', self.history, name='history')
        app.router.add_get('/api/analysis/{analysis_id}', self.analysis_by_id, name='analysis_by_id')
        app.router.add_get('/api/top', self.top_coins, name='top_coins')
        app.router.add_get('/api/stats', self.statistics, name='statistics')
        app.router.add_get('/api/health', self.health, name='health')
        logger.info("Analyzer routes configured")

    def _require_history(self):
        if self.history_store is None:
            raise web.HTTPServiceUnavailable(
                text=json.dumps({
                    'success': False,
                    'error': "History unavailable",
                    'message': "Analysis history is not enabled",
                }),
                content_type='application/json',
            )
        return self.history_store

    async def analyze(self, request: web.Request) -> web.Response:
        ticker = request.match_info['ticker']
        refresh = request.query.get('refresh', 'false').lower() in ('1', 'true', 'yes')

        report = await self.analyzer.analyze(ticker, refresh=refresh)
        if self.structured_logger:
            self.structured_logger.log_analysis(report)
        return web.json_response({'success': True, 'data': report})

    async def compare(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except json.JSONDecodeError as e:
            raise ValidationError(f"Request body is not valid JSON: {e}") from e

        tickers = body.get('tickers') if isinstance(body, dict) else None
        if not isinstance(tickers, list):
            raise ValidationError("Body must be {\"tickers\": [...]}", field="tickers")

        result = await self.analyzer.compare(tickers)
        return web.json_response({'success': True, 'data': result})

    async def history(self, request: web.Request) -> web.Response:
        store = self._require_history()
        ticker = validate_ticker(request.match_info['ticker'])
        rows = await store.get_history(ticker, limit=_limit(request))
        return web.json_response({'success': True, 'data': {'ticker': ticker, 'history': rows}})

    async def analysis_by_id(self, request: web.Request) -> web.Response:
        store = self._require_history()
        raw_id = request.match_info['analysis_id']
        if not raw_id.isdigit():
            raise ValidationError(f"Invalid analysis id: {raw_id!r}", field="analysis_id")

        report = await store.get_by_id(int(raw_id))
        if report is None:
            return error_response(404, "Analysis not found", f"No analysis with id {raw_id}")
        return web.json_response({'success': True, 'data': report})

    async def top_coins(self, request: web.Request) -> web.Response:
        store = self._require_history()
        rows = await store.get_top_coins(limit=_limit(request))
        return web.json_response({'success': True, 'data': rows})

    async def statistics(self, request: web.Request) -> web.Response:
        store = self._require_history()
        stats = await store.get_statistics()
        return web.json_response({'success': True, 'data': stats})

    async def health(self, request: web.Request) -> web.Response:
        cache_ok = await self.analyzer.cache.health_check()
        return web.json_response({
            'status': 'healthy',
            'timestamp': utc_now().isoformat(),
            'version': VERSION,
            'cache': getattr(self.analyzer.cache, 'backend', 'unknown'),
            'cache_ok': cache_ok,
            'history': self.history_store is not None,
        })


def create_app(analyzer, history_store=None, cors_origins: Optional[Iterable[str]] = None,
               structured_logger=None) -> web.Application:
    """Application with error mapping, routes and CORS"""
    app = web.Application(middlewares=[error_middleware(structured_logger)])
    AnalyzerRoutes(analyzer, history_store, structured_logger).setup_routes(app)

    cors = aiohttp_cors.setup(app, defaults={
        origin: aiohttp_cors.ResourceOptions(
            allow_credentials=False,
            expose_headers="*",
            allow_headers="*",
            allow_methods=["GET", "POST"],
        )
        for origin in (cors_origins or ["*"])
    })
    for route in list(app.router.routes()):
        try:
            cors.add(route)
        except ValueError as e:
            logger.debug(f"Skipping CORS for {route}: {e}")

    return app
