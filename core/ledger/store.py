"""
Ledger 저장소

재고 원장 항목 저장 및 조회.
파티션 내 순서는 항상 (posting_date, posting_time, entry_id) 전순서.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from core.ledger.errors import ConcurrentReconciliationConflict, NotFound
from core.ledger.types import LedgerEntry, PartitionKey
from core.utils.posting_time import format_posting_date, format_posting_time, now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


# SELECT 컬럼 순서 (_row_to_entry와 일치해야 함)
_ENTRY_COLUMNS = """
    entry_id, item, warehouse, batch_no, serial_no,
    posting_date, posting_time,
    actual_qty, qty_after_transaction, incoming_rate, valuation_rate, stock_value,
    voucher_type, voucher_no, company, owner, created_at
"""

_TIMELINE_ORDER = "posting_date ASC, posting_time ASC, entry_id ASC"


class LedgerEntryStore:
    """Ledger 저장소

    재고 원장 항목을 저장하고 조회하는 클래스.
    파생 필드(qty_after_transaction, valuation_rate, stock_value)는
    TimelineReconciler만 update_computed_fields()로 갱신.

    트랜잭션은 호출자(PostingCoordinator)가 관리하며,
    이 클래스는 커밋하지 않음.

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # -------------------------------------------------------------------------
    # 쓰기
    # -------------------------------------------------------------------------

    async def append(self, entry: LedgerEntry) -> int:
        """원장 항목 저장

        Args:
            entry: 저장할 항목 (entry_id는 무시됨)

        Returns:
            부여된 entry_id (단조 증가 삽입 순번)

        Raises:
            InvalidKey: 파티션 키가 잘못된 경우
        """
        key = entry.partition.validate()
        created_at = entry.created_at or now_utc()

        cursor = await self.db.execute(
            """
            INSERT INTO stock_ledger_entry (
                partition_key, item, warehouse, batch_no, serial_no,
                posting_date, posting_time,
                actual_qty, qty_after_transaction, incoming_rate, valuation_rate, stock_value,
                voucher_type, voucher_no, company, owner, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                key.as_str(),
                key.item,
                key.warehouse,
                key.batch_no,
                key.serial_no,
                format_posting_date(entry.posting_date),
                format_posting_time(entry.posting_time),
                str(entry.actual_qty),
                str(entry.qty_after_transaction),
                str(entry.incoming_rate) if entry.incoming_rate is not None else None,
                str(entry.valuation_rate),
                str(entry.stock_value),
                entry.voucher_type,
                entry.voucher_no,
                entry.company,
                entry.owner,
                created_at.isoformat(),
            ),
        )
        entry_id = cursor.lastrowid

        await self._ensure_partition(key)

        logger.debug(
            f"Appended stock ledger entry: {entry_id}",
            extra={"partition": key.as_str(), "voucher_no": entry.voucher_no},
        )
        return entry_id

    async def update_computed_fields(
        self,
        entry_id: int,
        qty_after: Decimal,
        valuation_rate: Decimal,
        stock_value: Decimal,
    ) -> None:
        """파생 필드 제자리 갱신 (항목 식별자는 유지)

        Raises:
            NotFound: entry_id가 없는 경우
        """
        cursor = await self.db.execute(
            """
            UPDATE stock_ledger_entry
            SET qty_after_transaction = ?,
                valuation_rate = ?,
                stock_value = ?,
                updated_at = ?
            WHERE entry_id = ?
            """,
            (
                str(qty_after),
                str(valuation_rate),
                str(stock_value),
                now_utc().isoformat(),
                entry_id,
            ),
        )
        if cursor.rowcount == 0:
            raise NotFound("LedgerEntry", entry_id)

    async def remove(self, entry_id: int) -> None:
        """원장 항목 삭제 (취소 전용)

        Raises:
            NotFound: entry_id가 없는 경우
        """
        cursor = await self.db.execute(
            "DELETE FROM stock_ledger_entry WHERE entry_id = ?",
            (entry_id,),
        )
        if cursor.rowcount == 0:
            raise NotFound("LedgerEntry", entry_id)

        logger.debug(f"Removed stock ledger entry: {entry_id}")

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get(self, entry_id: int) -> LedgerEntry:
        """ID로 원장 항목 조회

        Raises:
            NotFound: entry_id가 없는 경우
        """
        row = await self.db.fetchone(
            f"SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry WHERE entry_id = ?",
            (entry_id,),
        )
        if row is None:
            raise NotFound("LedgerEntry", entry_id)
        return self._row_to_entry(row)

    async def get_many(self, entry_ids: Iterable[int]) -> list[LedgerEntry]:
        """여러 원장 항목 조회 (시간순)

        Raises:
            NotFound: 하나라도 없는 경우
        """
        ids = sorted(set(entry_ids))
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
            WHERE entry_id IN ({placeholders})
            ORDER BY {_TIMELINE_ORDER}
            """,
            tuple(ids),
        )
        if len(rows) != len(ids):
            found = {row[0] for row in rows}
            missing = [i for i in ids if i not in found]
            raise NotFound("LedgerEntry", missing)
        return [self._row_to_entry(row) for row in rows]

    async def list_partition(self, key: PartitionKey) -> list[LedgerEntry]:
        """파티션 전체 조회 (전순서)

        Args:
            key: 파티션 키

        Returns:
            (posting_date, posting_time, entry_id) 순으로 정렬된 항목 목록

        Raises:
            InvalidKey: 파티션 키가 잘못된 경우
        """
        key.validate()
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
            WHERE partition_key = ?
            ORDER BY {_TIMELINE_ORDER}
            """,
            (key.as_str(),),
        )
        return [self._row_to_entry(row) for row in rows]

    async def last_entry(self, key: PartitionKey) -> LedgerEntry | None:
        """파티션의 마지막 항목 (append 경로 판단용)"""
        key.validate()
        row = await self.db.fetchone(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
            WHERE partition_key = ?
            ORDER BY posting_date DESC, posting_time DESC, entry_id DESC
            LIMIT 1
            """,
            (key.as_str(),),
        )
        return self._row_to_entry(row) if row else None

    async def last_entry_on_or_before(
        self,
        key: PartitionKey,
        as_of_date: date,
        as_of_time: time | None = None,
    ) -> LedgerEntry | None:
        """특정 시점 이전(포함)의 마지막 항목

        as_of_time이 None이면 해당 일자의 모든 항목 포함.
        """
        key.validate()
        if as_of_time is None:
            row = await self.db.fetchone(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
                WHERE partition_key = ? AND posting_date <= ?
                ORDER BY posting_date DESC, posting_time DESC, entry_id DESC
                LIMIT 1
                """,
                (key.as_str(), format_posting_date(as_of_date)),
            )
        else:
            row = await self.db.fetchone(
                f"""
                SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
                WHERE partition_key = ?
                  AND (posting_date, posting_time) <= (?, ?)
                ORDER BY posting_date DESC, posting_time DESC, entry_id DESC
                LIMIT 1
                """,
                (
                    key.as_str(),
                    format_posting_date(as_of_date),
                    format_posting_time(as_of_time),
                ),
            )
        return self._row_to_entry(row) if row else None

    async def list_partition_between(
        self,
        key: PartitionKey,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[LedgerEntry]:
        """파티션 기간 조회 (양 끝 포함)"""
        key.validate()
        conditions = ["partition_key = ?"]
        params: list[Any] = [key.as_str()]
        self._append_date_range(conditions, params, from_date, to_date)

        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
            WHERE {" AND ".join(conditions)}
            ORDER BY {_TIMELINE_ORDER}
            """,
            tuple(params),
        )
        return [self._row_to_entry(row) for row in rows]

    async def entries_between(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
        item: str | None = None,
        warehouse: str | None = None,
        company: str | None = None,
    ) -> list[LedgerEntry]:
        """기간별 원장 조회 (리포팅/결산용)

        Returns:
            파티션 키, 시간순으로 정렬된 항목 목록
        """
        conditions = ["1 = 1"]
        params: list[Any] = []
        self._append_date_range(conditions, params, from_date, to_date)

        if item is not None:
            conditions.append("item = ?")
            params.append(item)
        if warehouse is not None:
            conditions.append("warehouse = ?")
            params.append(warehouse)
        if company is not None:
            conditions.append("company = ?")
            params.append(company)

        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM stock_ledger_entry
            WHERE {" AND ".join(conditions)}
            ORDER BY partition_key ASC, {_TIMELINE_ORDER}
            """,
            tuple(params),
        )
        return [self._row_to_entry(row) for row in rows]

    async def latest_per_partition(
        self,
        as_of_date: date,
        company: str | None = None,
        warehouse: str | None = None,
    ) -> list[LedgerEntry]:
        """파티션별 기준일 이전(포함) 마지막 항목

        기말 재고 금액 계산용. 마지막 항목의 파생 필드가 곧 파티션 잔액.
        """
        conditions = ["posting_date <= ?"]
        params: list[Any] = [format_posting_date(as_of_date)]
        if warehouse is not None:
            conditions.append("warehouse = ?")
            params.append(warehouse)

        outer = ""
        if company is not None:
            outer = "WHERE company = ?"
            params.append(company)

        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS} FROM (
                SELECT *, ROW_NUMBER() OVER (
                    PARTITION BY partition_key
                    ORDER BY posting_date DESC, posting_time DESC, entry_id DESC
                ) AS rn
                FROM stock_ledger_entry
                WHERE {" AND ".join(conditions)}
            )
            {outer + " AND rn = 1" if outer else "WHERE rn = 1"}
            ORDER BY warehouse ASC, item ASC, batch_no ASC, serial_no ASC
            """,
            tuple(params),
        )
        return [self._row_to_entry(row) for row in rows]

    async def partitions(self) -> list[PartitionKey]:
        """원장 항목이 있는 모든 파티션 키"""
        rows = await self.db.fetchall(
            """
            SELECT DISTINCT item, warehouse, batch_no, serial_no
            FROM stock_ledger_entry
            ORDER BY item, warehouse, batch_no, serial_no
            """
        )
        return [
            PartitionKey(item=row[0], warehouse=row[1], batch_no=row[2], serial_no=row[3])
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # 파티션 버전 (낙관적 동시성)
    # -------------------------------------------------------------------------

    async def get_version(self, key: PartitionKey) -> int:
        """파티션 버전 조회 (행이 없으면 0)"""
        row = await self.db.fetchone(
            "SELECT version FROM stock_partition WHERE partition_key = ?",
            (key.as_str(),),
        )
        return int(row[0]) if row else 0

    async def bump_version(self, key: PartitionKey, expected: int) -> int:
        """파티션 버전 증가 (compare-and-set)

        Args:
            key: 파티션 키
            expected: 읽어 둔 버전

        Returns:
            새 버전

        Raises:
            ConcurrentReconciliationConflict: 다른 writer가 먼저 버전을 올린 경우
        """
        await self._ensure_partition(key)
        cursor = await self.db.execute(
            """
            UPDATE stock_partition
            SET version = version + 1,
                updated_at = datetime('now')
            WHERE partition_key = ? AND version = ?
            """,
            (key.as_str(), expected),
        )
        if cursor.rowcount == 0:
            actual = await self.get_version(key)
            raise ConcurrentReconciliationConflict(
                key.as_str(),
                f"expected version {expected}, found {actual}",
            )
        return expected + 1

    async def _ensure_partition(self, key: PartitionKey) -> None:
        await self.db.execute(
            """
            INSERT OR IGNORE INTO stock_partition (
                partition_key, item, warehouse, batch_no, serial_no
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (key.as_str(), key.item, key.warehouse, key.batch_no, key.serial_no),
        )

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    @staticmethod
    def _append_date_range(
        conditions: list[str],
        params: list[Any],
        from_date: date | None,
        to_date: date | None,
    ) -> None:
        if from_date is not None:
            conditions.append("posting_date >= ?")
            params.append(format_posting_date(from_date))
        if to_date is not None:
            conditions.append("posting_date <= ?")
            params.append(format_posting_date(to_date))

    @staticmethod
    def _row_to_entry(row: tuple[Any, ...]) -> LedgerEntry:
        """DB 행 → LedgerEntry 변환"""
        return LedgerEntry(
            entry_id=row[0],
            partition=PartitionKey(
                item=row[1],
                warehouse=row[2],
                batch_no=row[3],
                serial_no=row[4],
            ),
            posting_date=date.fromisoformat(row[5]),
            posting_time=time.fromisoformat(row[6]),
            actual_qty=Decimal(row[7]),
            qty_after_transaction=Decimal(row[8]),
            incoming_rate=Decimal(row[9]) if row[9] is not None else None,
            valuation_rate=Decimal(row[10]),
            stock_value=Decimal(row[11]),
            voucher_type=row[12],
            voucher_no=row[13],
            company=row[14],
            owner=row[15],
            created_at=datetime.fromisoformat(row[16]) if row[16] else None,
        )
