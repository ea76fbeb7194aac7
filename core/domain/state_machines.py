"""
State Machines

파티션 전기(posting) 상태 전이 관리.

파티션별로 한 번에 하나의 전기/재계산만 진행되며,
전이 규칙 위반은 락 규율이 깨졌다는 뜻이므로 StateMachineError로 드러냄.
"""

import logging
from collections import deque
from enum import Enum

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """상태 전이 오류"""
    pass


class PartitionState(str, Enum):
    """파티션 전기 상태

    전이 규칙:
    - IDLE → POSTING: 파티션 락 획득 후 변경 시작
    - POSTING → IDLE: 마지막 항목 뒤 append (재계산 불필요)
    - POSTING → RECONCILING: 과거 일자 삽입/취소로 뒤쪽 항목 재계산
    - RECONCILING → IDLE: 재계산 커밋 또는 롤백 완료
    """
    IDLE = "IDLE"
    POSTING = "POSTING"
    RECONCILING = "RECONCILING"


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
        history_size: 보관할 최근 전이 수
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
        history_size: int = 100,
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: deque[tuple[str, str]] = deque(maxlen=history_size)

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인

        Args:
            to_state: 목표 상태

        Returns:
            전이 가능 여부
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        allowed = self._transitions.get(self._state, [])
        return target in allowed

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(
            f"{self._name}: {old_state} → {target}",
        )

        return target

    def force_state(self, state: str | Enum) -> None:
        """강제 상태 설정 (복구용)

        Args:
            state: 새 상태
        """
        target = state.value if isinstance(state, Enum) else state
        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.warning(
            f"{self._name}: Force state {old_state} → {target}",
        )

    @property
    def history(self) -> list[tuple[str, str]]:
        """상태 전이 이력"""
        return list(self._history)


class PartitionStateMachine(StateMachine):
    """파티션 전기 상태 머신"""

    TRANSITIONS: dict[str, list[str]] = {
        "IDLE": ["POSTING"],
        "POSTING": ["IDLE", "RECONCILING"],
        "RECONCILING": ["IDLE"],
    }

    def __init__(
        self,
        partition_key: str,
        initial_state: str | PartitionState = PartitionState.IDLE,
    ):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name=f"PartitionStateMachine[{partition_key}]",
        )
        self.partition_key = partition_key

    @property
    def is_idle(self) -> bool:
        """유휴 상태 여부"""
        return self._state == "IDLE"

    @property
    def is_reconciling(self) -> bool:
        """재계산 중 여부"""
        return self._state == "RECONCILING"

    def finish(self) -> None:
        """IDLE 복귀 (성공/거부/에러 모든 종료 경로)

        POSTING/RECONCILING에서는 정상 전이, 이미 IDLE이면 무시.
        """
        if self._state != "IDLE":
            self.transition(PartitionState.IDLE)
