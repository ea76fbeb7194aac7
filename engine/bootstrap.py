"""
Engine Bootstrap

설정 로드, 의존성 주입, 생명주기 관리.

사용 예시:
```python
async with open_engine(load_settings()) as engine:
    await engine.coordinator.post(...)
    value = await engine.reports.closing_stock_value("default", "2024-01-31")
```
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from adapters.db.sqlite_adapter import SQLiteAdapter, get_db_path, init_schema
from core.config.loader import EngineSettings
from core.ledger.store import LedgerEntryStore
from core.ledger.types import PartitionKey
from core.ledger.valuation import ValuationCalculator
from core.ledger.voucher_index import VoucherReferenceIndex
from engine.posting.coordinator import PostingCoordinator
from engine.posting.locks import PartitionLockManager
from engine.reconciler.drift import DriftDetector, DriftInfo
from engine.reconciler.timeline import TimelineReconciler
from engine.reports.stock_balance import StockBalanceReport

logger = logging.getLogger(__name__)


class StockLedgerEngine:
    """재고 원장 엔진

    모든 컴포넌트를 하나의 writer 연결 위에 조립.

    Args:
        settings: 엔진 설정
        db: 연결된 SQLite 어댑터
    """

    def __init__(self, settings: EngineSettings, db: SQLiteAdapter):
        self.settings = settings
        self.db = db

        self.calculator = ValuationCalculator(
            rate_places=settings.valuation.rate_precision,
            value_places=settings.valuation.value_precision,
        )
        self.store = LedgerEntryStore(db)
        self.index = VoucherReferenceIndex(db)
        self.reconciler = TimelineReconciler(
            self.store,
            self.calculator,
            settings.negative_stock,
        )
        self.locks = PartitionLockManager()
        self.coordinator = PostingCoordinator(
            db,
            self.store,
            self.index,
            self.reconciler,
            posting=settings.posting,
            locks=self.locks,
        )
        self.reports = StockBalanceReport(db, self.store)
        self.drift_detector = DriftDetector(self.calculator)

    async def verify(self, fix: bool = False) -> list[DriftInfo]:
        """전체 파티션 drift 점검

        Args:
            fix: True면 drift가 있는 파티션을 처음부터 재계산

        Returns:
            발견된 DriftInfo 목록 (fix 이전 기준)
        """
        async with self.db.snapshot():
            keys = await self.store.partitions()

        found: list[DriftInfo] = []
        for key in keys:
            drifts = await self.verify_partition(key, fix=fix)
            found.extend(drifts)

        logger.info(
            "Ledger verification finished",
            extra={"partitions": len(keys), "drifts": len(found), "fix": fix},
        )
        return found

    async def verify_partition(self, key: PartitionKey, fix: bool = False) -> list[DriftInfo]:
        """단일 파티션 drift 점검 (fix 시 파티션 락 + 트랜잭션 안에서 재계산)"""
        async with self.locks.acquire([key], self.settings.posting.lock_timeout_sec):
            async with self.db.snapshot():
                entries = await self.store.list_partition(key)
            drifts = self.drift_detector.detect(key, entries)

            if drifts and fix:
                async with self.db.transaction():
                    rewritten = await self.reconciler.replay_partition(key)
                    version = await self.store.get_version(key)
                    await self.store.bump_version(key, version)
                logger.warning(
                    f"Partition replayed: {key.as_str()}",
                    extra={"partition": key.as_str(), "rewritten": rewritten},
                )

        return drifts


@asynccontextmanager
async def open_engine(
    settings: EngineSettings,
    db_path: Path | str | None = None,
) -> AsyncIterator[StockLedgerEngine]:
    """엔진 열기 (연결 + 스키마 초기화 + 조립, 종료 시 연결 닫기)

    Args:
        settings: 엔진 설정
        db_path: DB 경로 (None이면 settings.db_path)
    """
    path = get_db_path(db_path or settings.db_path)

    async with SQLiteAdapter(path) as db:
        await init_schema(db)
        logger.info(f"Stock ledger engine opened: {path}")
        yield StockLedgerEngine(settings, db)

    logger.info(f"Stock ledger engine closed: {path}")
