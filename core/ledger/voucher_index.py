"""
전표 참조 인덱스

전표 (voucher_type, voucher_no) → 원장 항목 entry_id 집합.
취소/역분개 지원 전용 파생 인덱스이며 평가 계산의 근거로 쓰지 않음.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class VoucherReferenceIndex:
    """전표 참조 인덱스

    트랜잭션은 호출자(PostingCoordinator)가 관리.

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def record_entries(
        self,
        voucher_type: str,
        voucher_no: str,
        entry_ids: Iterable[int],
    ) -> None:
        """전표가 만든 원장 항목 기록

        이미 기록된 (전표, entry_id) 쌍은 무시 (INSERT OR IGNORE).
        """
        rows = [(voucher_type, voucher_no, entry_id) for entry_id in entry_ids]
        if not rows:
            return

        await self.db.executemany(
            """
            INSERT OR IGNORE INTO voucher_entry (voucher_type, voucher_no, entry_id)
            VALUES (?, ?, ?)
            """,
            rows,
        )

        logger.debug(
            f"Recorded voucher entries: {voucher_type} {voucher_no}",
            extra={"count": len(rows)},
        )

    async def entries_for(self, voucher_type: str, voucher_no: str) -> set[int]:
        """전표가 만든 원장 항목 ID 집합 (없으면 빈 집합)"""
        rows = await self.db.fetchall(
            """
            SELECT entry_id FROM voucher_entry
            WHERE voucher_type = ? AND voucher_no = ?
            """,
            (voucher_type, voucher_no),
        )
        return {int(row[0]) for row in rows}

    async def has_voucher(self, voucher_type: str, voucher_no: str) -> bool:
        """전표에 연결된 항목이 있는지 확인"""
        row = await self.db.fetchone(
            """
            SELECT 1 FROM voucher_entry
            WHERE voucher_type = ? AND voucher_no = ?
            LIMIT 1
            """,
            (voucher_type, voucher_no),
        )
        return row is not None

    async def remove_voucher(self, voucher_type: str, voucher_no: str) -> int:
        """전표 인덱스 삭제

        Returns:
            삭제된 행 수
        """
        cursor = await self.db.execute(
            """
            DELETE FROM voucher_entry
            WHERE voucher_type = ? AND voucher_no = ?
            """,
            (voucher_type, voucher_no),
        )
        return cursor.rowcount
