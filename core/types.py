"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from dataclasses import dataclass
from enum import Enum


class MovementDirection(str, Enum):
    """재고 이동 방향"""

    INBOUND = "INBOUND"  # 입고 (actual_qty > 0)
    OUTBOUND = "OUTBOUND"  # 출고 (actual_qty < 0)
    EITHER = "EITHER"  # 부호 제한 없음 (조정, 이동)


class VoucherType(str, Enum):
    """전표 유형

    재고 원장 항목을 발생시키는 업무 문서.
    """

    PURCHASE_RECEIPT = "Purchase Receipt"  # 입고
    PURCHASE_RETURN = "Purchase Return"  # 매입 반품 (출고)
    DELIVERY_NOTE = "Delivery Note"  # 출하
    SALES_RETURN = "Sales Return"  # 매출 반품 (입고)
    STOCK_TRANSFER = "Stock Transfer"  # 창고 간 이동
    STOCK_ADJUSTMENT = "Stock Adjustment"  # 수동 조정
    OPENING_STOCK = "Opening Stock"  # 기초 재고


@dataclass(frozen=True)
class VoucherRule:
    """전표 유형별 이동 규칙 (불변)

    direction: 허용되는 수량 부호
    requires_rate: 입고 라인에 incoming_rate 필수 여부
    """

    direction: MovementDirection
    requires_rate: bool


VOUCHER_RULES: dict[str, VoucherRule] = {
    VoucherType.PURCHASE_RECEIPT.value: VoucherRule(MovementDirection.INBOUND, True),
    VoucherType.PURCHASE_RETURN.value: VoucherRule(MovementDirection.OUTBOUND, False),
    VoucherType.DELIVERY_NOTE.value: VoucherRule(MovementDirection.OUTBOUND, False),
    VoucherType.SALES_RETURN.value: VoucherRule(MovementDirection.INBOUND, False),
    VoucherType.STOCK_TRANSFER.value: VoucherRule(MovementDirection.EITHER, False),
    VoucherType.STOCK_ADJUSTMENT.value: VoucherRule(MovementDirection.EITHER, False),
    VoucherType.OPENING_STOCK.value: VoucherRule(MovementDirection.INBOUND, True),
}

# 카탈로그에 없는 전표 유형 (호스트 애플리케이션 정의)
DEFAULT_VOUCHER_RULE = VoucherRule(MovementDirection.EITHER, False)


def get_voucher_rule(voucher_type: str | VoucherType) -> VoucherRule:
    """전표 유형의 이동 규칙 조회

    Args:
        voucher_type: 전표 유형 (Enum 또는 문자열)

    Returns:
        VoucherRule (알 수 없는 유형이면 DEFAULT_VOUCHER_RULE)
    """
    key = voucher_type.value if isinstance(voucher_type, Enum) else voucher_type
    return VOUCHER_RULES.get(key, DEFAULT_VOUCHER_RULE)
