"""
Posting 모듈

전표 전기/취소/정정 조정과 파티션 락
"""

from engine.posting.coordinator import PostingCoordinator, PostingLine, to_decimal
from engine.posting.locks import PartitionLockManager
from engine.posting.requests import (
    MovementLineRequest,
    StockMovementRequest,
    VoucherPostingRequest,
)

__all__ = [
    "PostingCoordinator",
    "PostingLine",
    "PartitionLockManager",
    "MovementLineRequest",
    "StockMovementRequest",
    "VoucherPostingRequest",
    "to_decimal",
]
