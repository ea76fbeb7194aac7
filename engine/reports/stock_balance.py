"""
재고 잔액 / 기말 재고 금액 조회

파티션 마지막 항목의 파생 필드가 곧 그 시점의 잔액이므로
집계 없이 기준일 이전 마지막 항목만 읽음.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Precision
from core.ledger.store import LedgerEntryStore
from core.ledger.types import PartitionKey, ValuationState
from core.utils.posting_time import parse_posting_date

logger = logging.getLogger(__name__)


class StockBalanceReport:
    """재고 잔액 리포트

    모든 조회는 db.snapshot() 안에서 실행되어
    진행 중인 전기/재계산 트랜잭션의 중간 상태를 보지 않음.

    Args:
        db: DB 어댑터
        store: 원장 저장소
    """

    def __init__(self, db: SQLiteAdapter, store: LedgerEntryStore):
        self.db = db
        self.store = store

    async def balance_as_of(
        self,
        key: PartitionKey,
        as_of_date: date | str,
    ) -> ValuationState:
        """기준일(포함) 마지막 항목 직후의 파티션 상태

        항목이 없으면 빈 상태 (수량 0, 단가 0).
        """
        async with self.db.snapshot():
            entry = await self.store.last_entry_on_or_before(key, parse_posting_date(as_of_date))
        return entry.computed_state() if entry else ValuationState.empty()

    async def closing_stock_value(
        self,
        company: str | None,
        as_of_date: date | str,
        warehouse: str | None = None,
    ) -> Decimal:
        """기준일(포함) 기말 재고 금액

        파티션별 마지막 stock_value 합계.
        음수 재고 파티션은 음수 금액 그대로 합산.
        """
        async with self.db.snapshot():
            entries = await self.store.latest_per_partition(
                parse_posting_date(as_of_date),
                company=company,
                warehouse=warehouse,
            )
        total = sum((entry.stock_value for entry in entries), Precision.ZERO)
        return total.quantize(Decimal(1).scaleb(-Precision.VALUE_PLACES))

    async def opening_stock_value(
        self,
        company: str | None,
        period_start: date | str,
        warehouse: str | None = None,
    ) -> Decimal:
        """기초 재고 금액 = 기간 시작 전날의 기말 재고 금액"""
        day_before = parse_posting_date(period_start) - timedelta(days=1)
        return await self.closing_stock_value(company, day_before, warehouse=warehouse)

    async def closing_stock_value_per_warehouse(
        self,
        company: str | None,
        as_of_date: date | str,
    ) -> tuple[list[tuple[str, Decimal]], Decimal]:
        """창고별 기말 재고 금액

        Returns:
            ([(창고, 금액), ...] 창고명 순, 합계). 금액이 0인 창고는 제외.
        """
        async with self.db.snapshot():
            entries = await self.store.latest_per_partition(
                parse_posting_date(as_of_date),
                company=company,
            )

        per_warehouse: dict[str, Decimal] = {}
        for entry in entries:
            per_warehouse[entry.warehouse] = (
                per_warehouse.get(entry.warehouse, Precision.ZERO) + entry.stock_value
            )

        result = [
            (warehouse, value)
            for warehouse, value in sorted(per_warehouse.items())
            if value != 0
        ]
        total = sum((value for _, value in result), Precision.ZERO)

        logger.debug(
            "Closing stock per warehouse computed",
            extra={"as_of_date": str(as_of_date), "warehouses": len(result)},
        )
        return result, total
