"""
재고 원장 타입 정의

파티션 키, 원장 항목, 평가 상태 등 Ledger 시스템에서 사용하는 데이터 구조.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from core.constants import PARTITION_KEY_SEPARATOR, Defaults, Precision
from core.ledger.errors import InvalidKey, InvalidMovement
from core.types import MovementDirection, VoucherType, get_voucher_rule


@dataclass(frozen=True, order=True)
class PartitionKey:
    """파티션 키 (불변)

    (item, warehouse[, batch_no, serial_no]) 단위로 독립된 시간순 원장과
    이동평균 단가를 유지. batch/serial이 없으면 빈 문자열.
    order=True: 여러 파티션을 잠글 때 항상 같은 순서로 획득하기 위함.
    """

    item: str
    warehouse: str
    batch_no: str = ""
    serial_no: str = ""

    @classmethod
    def create(
        cls,
        item: str,
        warehouse: str,
        batch_no: str | None = None,
        serial_no: str | None = None,
    ) -> PartitionKey:
        """PartitionKey 생성 헬퍼

        None은 빈 문자열로, 앞뒤 공백은 제거 후 검증.

        Raises:
            InvalidKey: item/warehouse가 비었거나 구분자를 포함한 경우
        """
        key = cls(
            item=_normalize_part(item),
            warehouse=_normalize_part(warehouse),
            batch_no=_normalize_part(batch_no),
            serial_no=_normalize_part(serial_no),
        )
        return key.validate()

    @classmethod
    def parse(cls, key: str) -> PartitionKey:
        """저장된 키 문자열 파싱 ("item|warehouse|batch|serial")"""
        if not isinstance(key, str):
            raise InvalidKey(key, "partition key must be a string")
        parts = key.split(PARTITION_KEY_SEPARATOR)
        if len(parts) != 4:
            raise InvalidKey(key, "expected item|warehouse|batch|serial")
        return cls.create(*parts)

    def validate(self) -> PartitionKey:
        """키 유효성 검사

        Returns:
            self (체이닝용)

        Raises:
            InvalidKey: 형식이 잘못된 경우
        """
        for name in ("item", "warehouse", "batch_no", "serial_no"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise InvalidKey(self, f"{name} must be a string")
            if PARTITION_KEY_SEPARATOR in value:
                raise InvalidKey(self, f"{name} must not contain {PARTITION_KEY_SEPARATOR!r}")
        if not self.item:
            raise InvalidKey(self, "item is required")
        if not self.warehouse:
            raise InvalidKey(self, "warehouse is required")
        return self

    def as_str(self) -> str:
        """저장용 문자열"""
        return PARTITION_KEY_SEPARATOR.join(
            (self.item, self.warehouse, self.batch_no, self.serial_no)
        )

    def __str__(self) -> str:
        return self.as_str()


def _normalize_part(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


@dataclass(frozen=True)
class VoucherRef:
    """전표 참조 (불변)

    하나의 전표는 여러 원장 항목을 만들 수 있음 (다중 라인 입고 등).
    """

    voucher_type: str
    voucher_no: str

    @classmethod
    def create(cls, voucher_type: str | VoucherType, voucher_no: str) -> VoucherRef:
        """VoucherRef 생성 헬퍼

        Enum 또는 문자열 모두 허용

        Raises:
            InvalidMovement: 전표 유형/번호가 비어 있는 경우
        """
        vtype = voucher_type.value if isinstance(voucher_type, Enum) else voucher_type
        vtype = (vtype or "").strip()
        vno = (voucher_no or "").strip()
        if not vtype or not vno:
            raise InvalidMovement(
                "voucher_type and voucher_no are required",
                voucher_type=voucher_type,
                voucher_no=voucher_no,
            )
        return cls(voucher_type=vtype, voucher_no=vno)

    def __str__(self) -> str:
        return f"{self.voucher_type}:{self.voucher_no}"


@dataclass(frozen=True)
class ValuationState:
    """평가 상태 (불변)

    원장 항목 직후의 수량/이동평균 단가/재고 금액.
    """

    qty: Decimal
    rate: Decimal
    value: Decimal

    @classmethod
    def empty(cls) -> ValuationState:
        """파티션 시작 상태 (수량 0, 단가 0)"""
        return cls(qty=Precision.ZERO, rate=Precision.ZERO, value=Precision.ZERO)


@dataclass(frozen=True)
class Movement:
    """재고 이동 (평가 계산 입력)

    actual_qty: 부호 있는 수량 (+ 입고, - 출고)
    incoming_rate: 입고 단가 (출고에서는 음수 재고 fallback에만 사용)
    direction: 전표가 요구하는 방향
    """

    actual_qty: Decimal
    incoming_rate: Decimal | None = None
    direction: MovementDirection = MovementDirection.EITHER

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> Movement:
        """원장 항목에서 이동 생성 (재계산용)"""
        return cls(
            actual_qty=entry.actual_qty,
            incoming_rate=entry.incoming_rate,
            direction=get_voucher_rule(entry.voucher_type).direction,
        )


@dataclass
class LedgerEntry:
    """재고 원장 항목

    entry_id는 저장 시 부여되는 단조 증가 삽입 순번이며,
    같은 (posting_date, posting_time) 항목 간 tie-break로 사용.
    qty_after_transaction / valuation_rate / stock_value는 파생 필드로,
    앞선 항목이 삽입/취소되면 TimelineReconciler가 제자리에서 재계산.
    """

    partition: PartitionKey
    posting_date: date
    posting_time: time
    actual_qty: Decimal
    voucher_type: str
    voucher_no: str

    incoming_rate: Decimal | None = None

    # 파생 필드
    qty_after_transaction: Decimal = Precision.ZERO
    valuation_rate: Decimal = Precision.ZERO
    stock_value: Decimal = Precision.ZERO

    # 감사 정보 (평가 불변식과 무관)
    company: str = Defaults.COMPANY
    owner: str = Defaults.OWNER
    created_at: datetime | None = None

    entry_id: int | None = None

    @property
    def item(self) -> str:
        return self.partition.item

    @property
    def warehouse(self) -> str:
        return self.partition.warehouse

    @property
    def batch_no(self) -> str:
        return self.partition.batch_no

    @property
    def serial_no(self) -> str:
        return self.partition.serial_no

    @property
    def voucher(self) -> VoucherRef:
        return VoucherRef(self.voucher_type, self.voucher_no)

    def timestamp_key(self) -> tuple[date, time]:
        """논리적 시각 (tie-break 제외)"""
        return (self.posting_date, self.posting_time)

    def sort_key(self) -> tuple[date, time, int]:
        """파티션 내 전순서 키

        저장 전 항목(entry_id=None)은 같은 시각의 기존 항목보다 뒤로 정렬.
        """
        seq = self.entry_id if self.entry_id is not None else 2**63 - 1
        return (self.posting_date, self.posting_time, seq)

    def computed_state(self) -> ValuationState:
        """이 항목 직후의 평가 상태"""
        return ValuationState(
            qty=self.qty_after_transaction,
            rate=self.valuation_rate,
            value=self.stock_value,
        )

    def with_computed(self, state: ValuationState) -> LedgerEntry:
        """파생 필드가 갱신된 새 LedgerEntry 반환"""
        return replace(
            self,
            qty_after_transaction=state.qty,
            valuation_rate=state.rate,
            stock_value=state.value,
        )
