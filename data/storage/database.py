# data/storage/database.py

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import asyncpg
import orjson
from asyncpg.pool import Pool

from utils.errors import HistoryStoreError

logger = logging.getLogger(__name__)


class AnalysisHistoryStore:
    """
    PostgreSQL store for completed analysis reports.
    One row per analysis; the full report is kept in a JSONB column.
    """

    def __init__(self, config):
        self.config = config
        self.pool: Optional[Pool] = None
        self.is_connected = False

    async def connect(self) -> None:
        """Establish connection pool to PostgreSQL database."""
        logger.info(f"Connecting to history database at {self.config.host}:{self.config.port}/"
                    f"{self.config.database}")
        try:
            self.pool = await asyncpg.create_pool(
                host=self.config.host,
                port=self.config.port,
                user=self.config.username,
                password=self.config.password.get_secret_value(),
                database=self.config.database,
                min_size=self.config.pool_min_size,
                max_size=self.config.pool_max_size,
                command_timeout=self.config.command_timeout,
            )
            await self._create_tables()
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Failed to connect to database: {e}")
            raise HistoryStoreError(f"History database connection failed: {e}") from e

        self.is_connected = True
        logger.info("Successfully connected to history database")

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self.pool:
            await self.pool.close()
            self.is_connected = False
            logger.info("Disconnected from history database")

    @asynccontextmanager
    async def acquire(self):
        """Acquire a connection from the pool."""
        if not self.pool:
            raise HistoryStoreError("History store is not connected")
        async with self.pool.acquire() as connection:
            yield connection

    async def _create_tables(self) -> None:
        async with self.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS analyses (
                    id SERIAL PRIMARY KEY,
                    ticker TEXT NOT NULL,
                    coin_id TEXT,
                    coin_name TEXT,
                    overall_score DECIMAL(4, 2) NOT NULL,
                    classification TEXT NOT NULL CHECK (classification IN ('GREEN', 'YELLOW', 'RED')),
                    tokenomics_score DECIMAL(4, 2),
                    liquidity_score DECIMAL(4, 2),
                    social_score DECIMAL(4, 2),
                    onchain_score DECIMAL(4, 2),
                    analysis_data JSONB NOT NULL,
                    created_at TIMESTAMPTZ DEFAULT NOW()
                );

                CREATE INDEX IF NOT EXISTS idx_analyses_ticker ON analyses(ticker);
                CREATE INDEX IF NOT EXISTS idx_analyses_created_at ON analyses(created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_analyses_score ON analyses(overall_score DESC);
            """)

    async def append(self, report: Dict[str, Any]) -> int:
        """
        Persist one analysis report.

        Args:
            report: AnalysisReport dictionary

        Returns:
            Row id of the stored analysis
        """
        scores = report.get('scores', {})
        try:
            async with self.acquire() as conn:
                row_id = await conn.fetchval("""
                    INSERT INTO analyses (
                        ticker, coin_id, coin_name, overall_score, classification,
                        tokenomics_score, liquidity_score, social_score, onchain_score,
                        analysis_data
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb)
                    RETURNING id
                """,
                    report['ticker'],
                    report.get('coin_id'),
                    report.get('name'),
                    report['overall_score'],
                    report['classification'],
                    scores.get('tokenomics'),
                    scores.get('liquidity'),
                    scores.get('social'),
                    scores.get('onchain'),
                    orjson.dumps(report).decode(),
                )
        except asyncpg.PostgresError as e:
            raise HistoryStoreError(f"Failed to store analysis for {report.get('ticker')}: {e}") from e

        logger.debug(f"Stored analysis {row_id} for {report['ticker']}")
        return row_id

    async def get_history(self, ticker: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent analyses for a ticker, newest first"""
        async with self.acquire() as conn:
            rows = await conn.fetch("""
                SELECT id, ticker, coin_name, overall_score, classification,
                       tokenomics_score, liquidity_score, social_score, onchain_score,
                       created_at
                FROM analyses
                WHERE ticker = $1
                ORDER BY created_at DESC
                LIMIT $2
            """, ticker.upper(), limit)
        return [self._summary_row(row) for row in rows]

    async def get_by_id(self, analysis_id: int) -> Optional[Dict[str, Any]]:
        """Full stored report, or None"""
        async with self.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT id, analysis_data, created_at FROM analyses WHERE id = $1
            """, analysis_id)
        if row is None:
            return None

        data = row['analysis_data']
        report = orjson.loads(data) if isinstance(data, (str, bytes)) else dict(data)
        report['id'] = row['id']
        report['stored_at'] = row['created_at'].isoformat()
        return report

    async def get_top_coins(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest analysis per ticker, best score first"""
        async with self.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM (
                    SELECT DISTINCT ON (ticker)
                           id, ticker, coin_name, overall_score, classification,
                           tokenomics_score, liquidity_score, social_score, onchain_score,
                           created_at
                    FROM analyses
                    ORDER BY ticker, created_at DESC
                ) latest
                ORDER BY overall_score DESC
                LIMIT $1
            """, limit)
        return [self._summary_row(row) for row in rows]

    async def get_statistics(self) -> Dict[str, Any]:
        async with self.acquire() as conn:
            totals = await conn.fetchrow("""
                SELECT COUNT(*) AS total_analyses,
                       COUNT(DISTINCT ticker) AS unique_tickers,
                       AVG(overall_score) AS average_score
                FROM analyses
            """)
            counts = await conn.fetch("""
                SELECT classification, COUNT(*) AS count
                FROM analyses
                GROUP BY classification
            """)

        average = totals['average_score']
        return {
            'total_analyses': totals['total_analyses'],
            'unique_tickers': totals['unique_tickers'],
            'average_score': round(float(average), 2) if average is not None else None,
            'classifications': {
                'GREEN': 0, 'YELLOW': 0, 'RED': 0,
                **{row['classification']: row['count'] for row in counts},
            },
        }

    @staticmethod
    def _summary_row(row) -> Dict[str, Any]:
        result = dict(row)
        for key, value in result.items():
            if key.endswith('_score') and value is not None:
                result[key] = float(value)
        result['created_at'] = result['created_at'].isoformat()
        return result
