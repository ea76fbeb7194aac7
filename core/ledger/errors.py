"""
재고 원장 예외

엔진의 모든 실패는 StockLedgerError 하위 타입으로 호출자에게 전달됨.
ConcurrentReconciliationConflict만 PostingCoordinator 내부에서 재시도.
"""

from decimal import Decimal
from typing import Any


class StockLedgerError(Exception):
    """재고 원장 에러 기본 클래스"""

    pass


class InvalidMovement(StockLedgerError):
    """유효하지 않은 재고 이동

    수량 부호가 전표 방향과 맞지 않거나,
    incoming_rate가 필요한 입고에 누락된 경우 발생.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)


class InvalidKey(StockLedgerError):
    """잘못된 파티션 키"""

    def __init__(self, key: Any, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid partition key {key!r}: {reason}")


class NotFound(StockLedgerError):
    """존재하지 않는 항목/전표/파티션"""

    def __init__(self, kind: str, ref: Any):
        self.kind = kind
        self.ref = ref
        super().__init__(f"{kind} not found: {ref}")


class NegativeStockViolation(StockLedgerError):
    """음수 재고 정책 위반

    재계산 결과 qty_after_transaction이 음수가 되고
    해당 파티션 정책이 음수 재고를 금지하는 경우 발생.
    """

    def __init__(self, partition_key: str, entry_id: int | None, qty_after: Decimal):
        self.partition_key = partition_key
        self.entry_id = entry_id
        self.qty_after = qty_after
        super().__init__(
            f"Negative stock not allowed for {partition_key}: "
            f"qty would be {qty_after} at entry {entry_id}"
        )


class LockTimeout(StockLedgerError):
    """파티션 락 대기 시간 초과"""

    def __init__(self, partition_keys: list[str], timeout: float):
        self.partition_keys = partition_keys
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for partition lock: {partition_keys}"
        )


class ConcurrentReconciliationConflict(StockLedgerError):
    """동시 재계산 충돌

    파티션 버전이 읽은 이후 다른 writer에 의해 변경되었거나,
    락 획득 전에 계산한 대상 파티션 목록이 더 이상 맞지 않는 경우 발생.
    PostingCoordinator가 backoff 후 제한 횟수만큼 재시도.
    """

    def __init__(self, partition_key: str, reason: str):
        self.partition_key = partition_key
        self.reason = reason
        super().__init__(f"Partition {partition_key} changed concurrently: {reason}")


class DuplicateVoucher(StockLedgerError):
    """이미 전기된 전표

    동일 전표 재전기는 amend()를 사용해야 함.
    """

    def __init__(self, voucher_type: str, voucher_no: str):
        self.voucher_type = voucher_type
        self.voucher_no = voucher_no
        super().__init__(f"Voucher already posted: {voucher_type} {voucher_no}")
