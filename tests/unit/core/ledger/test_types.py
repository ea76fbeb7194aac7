"""
재고 원장 타입 테스트
"""

from datetime import date, time
from decimal import Decimal

import pytest

from core.ledger.errors import InvalidKey, InvalidMovement
from core.ledger.types import LedgerEntry, Movement, PartitionKey, ValuationState, VoucherRef
from core.types import MovementDirection, VoucherType


def make_entry(**overrides) -> LedgerEntry:
    fields = dict(
        partition=PartitionKey.create("ITEM-001", "Stores"),
        posting_date=date(2024, 1, 10),
        posting_time=time(9, 0),
        actual_qty=Decimal("10"),
        voucher_type=VoucherType.PURCHASE_RECEIPT.value,
        voucher_no="PR-0001",
        incoming_rate=Decimal("5"),
    )
    fields.update(overrides)
    return LedgerEntry(**fields)


class TestPartitionKey:
    """PartitionKey 테스트"""

    def test_create_normalizes(self) -> None:
        """None은 빈 문자열, 공백 제거"""
        key = PartitionKey.create(" ITEM-001 ", "Stores", None, " ")

        assert key.item == "ITEM-001"
        assert key.batch_no == ""
        assert key.serial_no == ""

    def test_as_str_and_parse(self) -> None:
        key = PartitionKey.create("ITEM-001", "Stores", "B1", "S1")

        assert key.as_str() == "ITEM-001|Stores|B1|S1"
        assert str(key) == key.as_str()
        assert PartitionKey.parse(key.as_str()) == key

    def test_batch_makes_distinct_partition(self) -> None:
        assert PartitionKey.create("I", "W") != PartitionKey.create("I", "W", "B1")

    def test_missing_item(self) -> None:
        with pytest.raises(InvalidKey, match="item is required"):
            PartitionKey.create("", "Stores")

    def test_missing_warehouse(self) -> None:
        with pytest.raises(InvalidKey, match="warehouse is required"):
            PartitionKey.create("ITEM-001", None)  # type: ignore[arg-type]

    def test_separator_rejected(self) -> None:
        with pytest.raises(InvalidKey):
            PartitionKey.create("ITEM|001", "Stores")

    def test_non_string_rejected(self) -> None:
        with pytest.raises(InvalidKey):
            PartitionKey.create(123, "Stores")  # type: ignore[arg-type]

    def test_parse_wrong_arity(self) -> None:
        with pytest.raises(InvalidKey):
            PartitionKey.parse("ITEM|Stores")

    def test_sortable(self) -> None:
        """여러 파티션 락 획득 순서 결정용 정렬"""
        keys = [PartitionKey.create("B", "W"), PartitionKey.create("A", "W")]

        assert sorted(keys)[0].item == "A"


class TestVoucherRef:
    """VoucherRef 테스트"""

    def test_create_from_enum(self) -> None:
        ref = VoucherRef.create(VoucherType.DELIVERY_NOTE, " DN-1 ")

        assert ref.voucher_type == "Delivery Note"
        assert ref.voucher_no == "DN-1"
        assert str(ref) == "Delivery Note:DN-1"

    def test_blank_rejected(self) -> None:
        with pytest.raises(InvalidMovement):
            VoucherRef.create("Delivery Note", "  ")


class TestLedgerEntry:
    """LedgerEntry 테스트"""

    def test_sort_key_tie_break(self) -> None:
        """같은 시각이면 entry_id 순, 미저장 항목은 맨 뒤"""
        first = make_entry(entry_id=1)
        second = make_entry(entry_id=2)
        draft = make_entry()

        assert sorted([draft, second, first], key=LedgerEntry.sort_key) == [first, second, draft]

    def test_timestamp_order(self) -> None:
        earlier = make_entry(posting_date=date(2024, 1, 9), entry_id=9)
        later = make_entry(entry_id=1)

        assert earlier.sort_key() < later.sort_key()

    def test_with_computed(self) -> None:
        entry = make_entry()
        state = ValuationState(qty=Decimal("10"), rate=Decimal("5"), value=Decimal("50"))

        updated = entry.with_computed(state)

        assert updated.computed_state() == state
        assert entry.qty_after_transaction == Decimal("0")

    def test_movement_from_entry(self) -> None:
        movement = Movement.from_entry(make_entry())

        assert movement.direction == MovementDirection.INBOUND
        assert movement.incoming_rate == Decimal("5")
