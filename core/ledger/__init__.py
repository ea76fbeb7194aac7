"""
재고 원장 (Stock Ledger) 시스템

(item, warehouse[, batch, serial]) 파티션별 재고 이동을 기록하고
수량 잔액과 이동평균 단가를 항상 정확하게 유지.

사용 예시:
```python
from core.ledger import LedgerEntryStore, VoucherReferenceIndex, PartitionKey

store = LedgerEntryStore(db)
index = VoucherReferenceIndex(db)

key = PartitionKey.create("ITEM-001", "Stores")
entries = await store.list_partition(key)
entry_ids = await index.entries_for("Purchase Receipt", "PR-0001")
```
"""

from core.ledger.errors import (
    ConcurrentReconciliationConflict,
    DuplicateVoucher,
    InvalidKey,
    InvalidMovement,
    LockTimeout,
    NegativeStockViolation,
    NotFound,
    StockLedgerError,
)
from core.ledger.store import LedgerEntryStore
from core.ledger.types import (
    LedgerEntry,
    Movement,
    PartitionKey,
    ValuationState,
    VoucherRef,
)
from core.ledger.valuation import ValuationCalculator, movement_for_voucher
from core.ledger.voucher_index import VoucherReferenceIndex

__all__ = [
    # 핵심 클래스
    "LedgerEntryStore",
    "VoucherReferenceIndex",
    "ValuationCalculator",
    "movement_for_voucher",
    # 데이터 구조
    "LedgerEntry",
    "Movement",
    "PartitionKey",
    "ValuationState",
    "VoucherRef",
    # 예외
    "StockLedgerError",
    "InvalidMovement",
    "InvalidKey",
    "NotFound",
    "NegativeStockViolation",
    "LockTimeout",
    "ConcurrentReconciliationConflict",
    "DuplicateVoucher",
]
