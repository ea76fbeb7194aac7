"""
Timeline Reconciler

파티션 타임라인의 position 이후 모든 항목을 평가 계산기로 다시 접어서
qty_after_transaction / valuation_rate / stock_value를 재계산.

과거 일자 삽입(backdated), 취소, 정정이 시간순 일관성을 깨뜨릴 때 사용.
비용은 position 이후 항목 수에 비례 (최근 시점 삽입은 저렴, 오래된 시점은 비쌈).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from core.ledger.errors import NegativeStockViolation
from core.ledger.types import LedgerEntry, Movement, PartitionKey, ValuationState
from core.ledger.valuation import ValuationCalculator

if TYPE_CHECKING:
    from core.config.loader import NegativeStockPolicy
    from core.ledger.store import LedgerEntryStore

logger = logging.getLogger(__name__)


def fold_states(
    calculator: ValuationCalculator,
    entries: Sequence[LedgerEntry],
    start: ValuationState,
) -> list[ValuationState]:
    """항목 순서대로 평가 계산기를 접어 각 항목 직후 상태 계산 (순수 함수)

    Args:
        calculator: 평가 계산기
        entries: 타임라인 순서의 항목
        start: 첫 항목 직전 상태

    Returns:
        entries와 같은 길이의 상태 목록
    """
    states: list[ValuationState] = []
    state = start
    for entry in entries:
        state = calculator.apply(state, Movement.from_entry(entry))
        states.append(state)
    return states


class TimelineReconciler:
    """Timeline Reconciler

    파티션 단위로만 동작하며 파생 필드의 유일한 writer.

    동작 방식:
    1. position 직전 항목의 상태(없으면 빈 상태)에서 시작
    2. 꼬리(tail) 전체를 메모리에서 재계산
    3. 음수 재고 정책 검사 (위반 시 아무것도 쓰지 않고 예외)
    4. 값이 바뀐 항목만 update_computed_fields()로 갱신

    커밋하지 않음. 호출자의 트랜잭션 안에서 실행되므로
    예외 시 트리거한 변경까지 함께 롤백되고 (all-or-nothing),
    WAL reader는 완전한 이전 상태 또는 완전한 새 상태만 봄.

    Args:
        store: 원장 저장소
        calculator: 평가 계산기
        policy: 음수 재고 정책
    """

    def __init__(
        self,
        store: LedgerEntryStore,
        calculator: ValuationCalculator,
        policy: NegativeStockPolicy,
    ):
        self.store = store
        self.calculator = calculator
        self.policy = policy

        # 통계
        self._reconcile_count = 0
        self._rewritten_count = 0

    @property
    def stats(self) -> dict[str, int]:
        """재계산 통계"""
        return {
            "reconcile_count": self._reconcile_count,
            "rewritten_count": self._rewritten_count,
        }

    async def reconcile_from(
        self,
        key: PartitionKey,
        position: int,
        entries: Sequence[LedgerEntry] | None = None,
    ) -> int:
        """position 이후 항목 재계산

        Args:
            key: 파티션 키
            position: 변경이 시작된 타임라인 위치 (0-based)
            entries: 이미 조회한 파티션 항목 (None이면 조회)

        Returns:
            실제로 다시 쓴 항목 수

        Raises:
            NegativeStockViolation: 정책상 금지된 음수 재고 발생
            ValueError: position 범위 초과
        """
        if entries is None:
            entries = await self.store.list_partition(key)

        if position < 0 or position > len(entries):
            raise ValueError(
                f"position {position} out of range for partition of {len(entries)} entries"
            )

        start = entries[position - 1].computed_state() if position > 0 else ValuationState.empty()
        tail = entries[position:]
        states = self.fold(tail, start)

        self.check_negative_stock(key, tail, states)

        rewritten = 0
        for entry, state in zip(tail, states):
            if entry.computed_state() == state:
                continue
            await self.store.update_computed_fields(
                entry.entry_id,
                state.qty,
                state.rate,
                state.value,
            )
            rewritten += 1

        self._reconcile_count += 1
        self._rewritten_count += rewritten

        logger.debug(
            f"Reconciled {key.as_str()} from position {position}",
            extra={
                "partition": key.as_str(),
                "position": position,
                "tail": len(tail),
                "rewritten": rewritten,
            },
        )
        return rewritten

    async def replay_partition(self, key: PartitionKey) -> int:
        """파티션 전체 재계산 (복구용)

        Returns:
            실제로 다시 쓴 항목 수
        """
        return await self.reconcile_from(key, 0)

    def fold(
        self,
        entries: Sequence[LedgerEntry],
        start: ValuationState | None = None,
    ) -> list[ValuationState]:
        """쓰기 없이 항목 상태만 계산 (start가 None이면 빈 상태에서 시작)"""
        return fold_states(self.calculator, entries, start or ValuationState.empty())

    def check_negative_stock(
        self,
        key: PartitionKey,
        entries: Sequence[LedgerEntry],
        states: Sequence[ValuationState],
    ) -> None:
        """음수 재고 정책 검사

        Raises:
            NegativeStockViolation: 금지된 파티션에서 잔량이 음수가 되는 첫 항목
        """
        if self.policy.allows(key):
            return

        for entry, state in zip(entries, states):
            if state.qty < 0:
                logger.warning(
                    "음수 재고 거부",
                    extra={
                        "partition": key.as_str(),
                        "entry_id": entry.entry_id,
                        "qty_after": str(state.qty),
                    },
                )
                raise NegativeStockViolation(key.as_str(), entry.entry_id, state.qty)
