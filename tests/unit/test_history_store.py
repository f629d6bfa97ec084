# tests/unit/test_history_store.py
"""
Unit tests for AnalysisHistoryStore against a fake asyncpg pool
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import orjson
import pytest

from config.config_manager import DatabaseConfig
from data.storage.database import AnalysisHistoryStore
from utils.errors import HistoryStoreError


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    @asynccontextmanager
    async def acquire(self):
        yield self.conn

    async def close(self):
        pass


@pytest.mark.unit
class TestAnalysisHistoryStore:

    @pytest.fixture
    def conn(self):
        return AsyncMock()

    @pytest.fixture
    def store(self, conn):
        store = AnalysisHistoryStore(DatabaseConfig(enabled=True))
        store.pool = FakePool(conn)
        return store

    @pytest.fixture
    def report(self):
        return {
            'ticker': 'UNI', 'coin_id': 'uniswap', 'name': 'Uniswap',
            'overall_score': 7.45, 'classification': 'GREEN',
            'scores': {'tokenomics': 8.0, 'liquidity': 7.5, 'social': 6.0, 'onchain': 8.0},
        }

    @pytest.mark.asyncio
    async def test_append_stores_full_report(self, store, conn, report):
        conn.fetchval.return_value = 42

        assert await store.append(report) == 42
        args = conn.fetchval.await_args.args
        assert args[1:6] == ('UNI', 'uniswap', 'Uniswap', 7.45, 'GREEN')
        assert args[6:10] == (8.0, 7.5, 6.0, 8.0)
        assert orjson.loads(args[10]) == report

    @pytest.mark.asyncio
    async def test_get_by_id_decodes_report(self, store, conn, report):
        created = datetime(2026, 1, 2, tzinfo=timezone.utc)
        conn.fetchrow.return_value = {
            'id': 7, 'analysis_data': orjson.dumps(report).decode(), 'created_at': created,
        }

        stored = await store.get_by_id(7)
        assert stored['ticker'] == 'UNI'
        assert stored['id'] == 7
        assert stored['stored_at'] == created.isoformat()

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, store, conn):
        conn.fetchrow.return_value = None
        assert await store.get_by_id(99) is None

    @pytest.mark.asyncio
    async def test_history_rows_are_json_friendly(self, store, conn):
        conn.fetch.return_value = [{
            'id': 1, 'ticker': 'UNI', 'coin_name': 'Uniswap',
            'overall_score': Decimal('7.45'), 'classification': 'GREEN',
            'created_at': datetime(2026, 1, 2, tzinfo=timezone.utc),
        }]

        rows = await store.get_history('UNI', limit=5)
        assert rows[0]['overall_score'] == 7.45
        assert rows[0]['created_at'].startswith('2026-01-02')

    @pytest.mark.asyncio
    async def test_statistics_fill_missing_classifications(self, store, conn):
        conn.fetchrow.return_value = {
            'total_analyses': 3, 'unique_tickers': 2, 'average_score': Decimal('6.333'),
        }
        conn.fetch.return_value = [{'classification': 'GREEN', 'count': 3}]

        stats = await store.get_statistics()
        assert stats['average_score'] == 6.33
        assert stats['classifications'] == {'GREEN': 3, 'YELLOW': 0, 'RED': 0}

    @pytest.mark.asyncio
    async def test_not_connected(self):
        store = AnalysisHistoryStore(DatabaseConfig())
        with pytest.raises(HistoryStoreError):
            await store.get_history('UNI')
