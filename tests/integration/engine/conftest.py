"""엔진 통합 테스트 fixture"""

import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import (
    EngineSettings,
    NegativeStockOverride,
    NegativeStockPolicy,
    PostingSettings,
)
from engine.bootstrap import StockLedgerEngine


@pytest_asyncio.fixture
async def engine(ledger_db: SQLiteAdapter) -> StockLedgerEngine:
    """음수 재고는 WIP 창고에서만 허용되는 엔진"""
    settings = EngineSettings(
        posting=PostingSettings(
            lock_timeout_sec=10.0,
            conflict_max_retries=3,
            conflict_backoff_sec=0.001,
        ),
        negative_stock=NegativeStockPolicy(
            allow=False,
            overrides=(NegativeStockOverride(item=None, warehouse="WIP", allow=True),),
        ),
    )
    return StockLedgerEngine(settings, ledger_db)
