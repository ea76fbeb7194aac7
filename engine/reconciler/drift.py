"""
Drift Detector

저장된 파생 필드와 처음부터 다시 계산한 값을 비교하여 불일치 감지
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from core.ledger.types import LedgerEntry, PartitionKey, ValuationState
from core.ledger.valuation import ValuationCalculator
from engine.reconciler.timeline import fold_states

logger = logging.getLogger(__name__)


@dataclass
class DriftInfo:
    """Drift 정보"""
    partition_key: str
    entry_id: int | None
    expected: dict[str, Any]
    actual: dict[str, Any]
    description: str


class DriftDetector:
    """Drift 감지기

    running 필드는 actual_qty 순서열에서 언제나 재계산 가능한 캐시이므로,
    처음부터 다시 접은 결과와 다르면 drift.
    외부 writer나 중단된 마이그레이션으로 캐시가 어긋났는지 점검할 때 사용.

    Args:
        calculator: 평가 계산기
    """

    def __init__(self, calculator: ValuationCalculator):
        self.calculator = calculator

    def detect(self, key: PartitionKey, entries: Sequence[LedgerEntry]) -> list[DriftInfo]:
        """파티션 drift 감지

        Args:
            key: 파티션 키
            entries: 타임라인 순서의 파티션 전체 항목

        Returns:
            DriftInfo 리스트 (일치하면 빈 리스트)
        """
        drifts: list[DriftInfo] = []
        states = fold_states(self.calculator, entries, ValuationState.empty())

        for entry, expected in zip(entries, states):
            actual = entry.computed_state()
            if actual == expected:
                continue

            drifts.append(DriftInfo(
                partition_key=key.as_str(),
                entry_id=entry.entry_id,
                expected=_state_to_dict(expected),
                actual=_state_to_dict(actual),
                description=(
                    f"Entry {entry.entry_id} drifted: "
                    f"qty {actual.qty} vs {expected.qty}, "
                    f"rate {actual.rate} vs {expected.rate}"
                ),
            ))

        if drifts:
            logger.warning(
                f"Drift detected in {key.as_str()}",
                extra={"partition": key.as_str(), "count": len(drifts)},
            )

        return drifts


def _state_to_dict(state: ValuationState) -> dict[str, str]:
    return {
        "qty_after_transaction": str(state.qty),
        "valuation_rate": str(state.rate),
        "stock_value": str(state.value),
    }
