"""
재고 원장 스키마 초기화

엔진 시작 시 자동으로 Ledger 테이블과 인덱스 생성.
CREATE IF NOT EXISTS 패턴으로 안전하게 동작.

테이블:
- stock_ledger_entry: 원장 항목 (append + 파생 필드 제자리 재계산)
- voucher_entry: 전표 → 원장 항목 역참조 인덱스 (취소용)
- stock_partition: 파티션별 버전 (낙관적 동시성 검사)
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스)

    엔진 시작 시 호출되어 필요한 모든 테이블과 인덱스를 생성.
    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # stock_ledger_entry 테이블
    # entry_id: AUTOINCREMENT로 단조 증가 보장 (삭제된 id 재사용 없음)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS stock_ledger_entry (
            entry_id              INTEGER PRIMARY KEY AUTOINCREMENT,
            partition_key         TEXT NOT NULL,
            item                  TEXT NOT NULL,
            warehouse             TEXT NOT NULL,
            batch_no              TEXT NOT NULL DEFAULT '',
            serial_no             TEXT NOT NULL DEFAULT '',

            posting_date          TEXT NOT NULL,
            posting_time          TEXT NOT NULL,

            actual_qty            TEXT NOT NULL,
            qty_after_transaction TEXT NOT NULL DEFAULT '0',
            incoming_rate         TEXT,
            valuation_rate        TEXT NOT NULL DEFAULT '0',
            stock_value           TEXT NOT NULL DEFAULT '0',

            voucher_type          TEXT NOT NULL,
            voucher_no            TEXT NOT NULL,

            company               TEXT NOT NULL,
            owner                 TEXT NOT NULL,
            created_at            TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at            TEXT
        )
    """)

    # voucher_entry 테이블 (파생 인덱스)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS voucher_entry (
            voucher_type     TEXT NOT NULL,
            voucher_no       TEXT NOT NULL,
            entry_id         INTEGER NOT NULL,
            PRIMARY KEY (voucher_type, voucher_no, entry_id),
            FOREIGN KEY (entry_id) REFERENCES stock_ledger_entry(entry_id) ON DELETE CASCADE
        )
    """)

    # stock_partition 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS stock_partition (
            partition_key    TEXT PRIMARY KEY,
            item             TEXT NOT NULL,
            warehouse        TEXT NOT NULL,
            batch_no         TEXT NOT NULL DEFAULT '',
            serial_no        TEXT NOT NULL DEFAULT '',
            version          INTEGER NOT NULL DEFAULT 0,
            updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """Ledger 인덱스 생성"""

    # 파티션 스캔 (item, warehouse, posting_date)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_sle_item_warehouse_date
        ON stock_ledger_entry(item, warehouse, posting_date)
    """)

    # 파티션 내 전순서 (posting_date, posting_time, entry_id)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_sle_partition_order
        ON stock_ledger_entry(partition_key, posting_date, posting_time, entry_id)
    """)

    # 전표 역조회
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_sle_voucher
        ON stock_ledger_entry(voucher_no, voucher_type)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_voucher_entry_entry
        ON voucher_entry(entry_id)
    """)
