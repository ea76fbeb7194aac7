"""
Drift 감지 및 fold_states 테스트 (DB 없음)
"""

from datetime import date, time
from decimal import Decimal

from core.ledger.types import LedgerEntry, PartitionKey, ValuationState
from core.ledger.valuation import ValuationCalculator
from engine.reconciler.drift import DriftDetector
from engine.reconciler.timeline import fold_states

KEY = PartitionKey.create("ITEM-001", "Stores")


def entry(entry_id: int, day: int, qty: str, rate: str | None, voucher_type: str) -> LedgerEntry:
    return LedgerEntry(
        partition=KEY,
        posting_date=date(2024, 1, day),
        posting_time=time(9, 0),
        actual_qty=Decimal(qty),
        voucher_type=voucher_type,
        voucher_no=f"V-{entry_id}",
        incoming_rate=Decimal(rate) if rate is not None else None,
        entry_id=entry_id,
    )


def timeline() -> list[LedgerEntry]:
    return [
        entry(1, 1, "10", "5", "Purchase Receipt"),
        entry(2, 2, "10", "7", "Purchase Receipt"),
        entry(3, 3, "-4", None, "Delivery Note"),
    ]


class TestFoldStates:
    """fold_states 테스트"""

    def test_fold(self) -> None:
        states = fold_states(ValuationCalculator(), timeline(), ValuationState.empty())

        assert [s.qty for s in states] == [Decimal("10"), Decimal("20"), Decimal("16")]
        assert states[1].rate == Decimal("6")
        assert states[2].rate == Decimal("6")
        assert states[2].value == Decimal("96.00")

    def test_fold_empty(self) -> None:
        assert fold_states(ValuationCalculator(), [], ValuationState.empty()) == []


class TestDriftDetector:
    """DriftDetector 테스트"""

    def test_consistent_timeline(self) -> None:
        calculator = ValuationCalculator()
        entries = timeline()
        states = fold_states(calculator, entries, ValuationState.empty())
        entries = [e.with_computed(s) for e, s in zip(entries, states)]

        assert DriftDetector(calculator).detect(KEY, entries) == []

    def test_detects_stale_cache(self) -> None:
        calculator = ValuationCalculator()
        entries = timeline()
        states = fold_states(calculator, entries, ValuationState.empty())
        entries = [e.with_computed(s) for e, s in zip(entries, states)]
        entries[2] = entries[2].with_computed(
            ValuationState(qty=Decimal("6"), rate=Decimal("5"), value=Decimal("30"))
        )

        drifts = DriftDetector(calculator).detect(KEY, entries)

        assert len(drifts) == 1
        assert drifts[0].entry_id == 3
        assert drifts[0].expected["qty_after_transaction"] == "16"
        assert drifts[0].actual["valuation_rate"] == "5"
