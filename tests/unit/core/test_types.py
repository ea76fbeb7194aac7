"""
core/types.py 테스트
"""

from core.types import (
    DEFAULT_VOUCHER_RULE,
    VOUCHER_RULES,
    MovementDirection,
    VoucherType,
    get_voucher_rule,
)


class TestVoucherType:
    """VoucherType Enum 테스트"""

    def test_str_enum(self) -> None:
        """문자열 직렬화"""
        assert VoucherType.PURCHASE_RECEIPT == "Purchase Receipt"
        assert VoucherType("Delivery Note") is VoucherType.DELIVERY_NOTE

    def test_every_type_has_rule(self) -> None:
        for voucher_type in VoucherType:
            assert voucher_type.value in VOUCHER_RULES


class TestVoucherRules:
    """전표 규칙 테스트"""

    def test_receipt_rule(self) -> None:
        rule = get_voucher_rule(VoucherType.PURCHASE_RECEIPT)

        assert rule.direction == MovementDirection.INBOUND
        assert rule.requires_rate is True

    def test_outbound_rules(self) -> None:
        assert get_voucher_rule("Delivery Note").direction == MovementDirection.OUTBOUND
        assert get_voucher_rule("Purchase Return").direction == MovementDirection.OUTBOUND

    def test_sales_return_rate_optional(self) -> None:
        rule = get_voucher_rule(VoucherType.SALES_RETURN)

        assert rule.direction == MovementDirection.INBOUND
        assert rule.requires_rate is False

    def test_unknown_type(self) -> None:
        assert get_voucher_rule("Work Order") == DEFAULT_VOUCHER_RULE
