"""
파티션 상태 머신 테스트
"""

import pytest

from core.domain.state_machines import (
    PartitionState,
    PartitionStateMachine,
    StateMachineError,
)


class TestPartitionStateMachine:
    """PartitionStateMachine 테스트"""

    def test_initial_idle(self) -> None:
        machine = PartitionStateMachine("ITEM|W||")

        assert machine.state == "IDLE"
        assert machine.is_idle

    def test_append_path(self) -> None:
        """IDLE → POSTING → IDLE"""
        machine = PartitionStateMachine("ITEM|W||")

        machine.transition(PartitionState.POSTING)
        machine.finish()

        assert machine.is_idle
        assert machine.history == [("IDLE", "POSTING"), ("POSTING", "IDLE")]

    def test_reconcile_path(self) -> None:
        """IDLE → POSTING → RECONCILING → IDLE"""
        machine = PartitionStateMachine("ITEM|W||")

        machine.transition(PartitionState.POSTING)
        machine.transition(PartitionState.RECONCILING)
        assert machine.is_reconciling

        machine.finish()
        assert machine.history[-1] == ("RECONCILING", "IDLE")

    def test_idle_cannot_reconcile(self) -> None:
        machine = PartitionStateMachine("ITEM|W||")

        assert not machine.can_transition(PartitionState.RECONCILING)
        with pytest.raises(StateMachineError):
            machine.transition(PartitionState.RECONCILING)

    def test_double_posting_rejected(self) -> None:
        """락 없이 두 번째 전기 진입 불가"""
        machine = PartitionStateMachine("ITEM|W||")
        machine.transition(PartitionState.POSTING)

        with pytest.raises(StateMachineError):
            machine.transition(PartitionState.POSTING)

    def test_finish_when_idle_is_noop(self) -> None:
        machine = PartitionStateMachine("ITEM|W||")

        machine.finish()

        assert machine.history == []

    def test_force_state(self) -> None:
        machine = PartitionStateMachine("ITEM|W||")

        machine.force_state(PartitionState.RECONCILING)

        assert machine.is_reconciling

    def test_history_bounded(self) -> None:
        machine = PartitionStateMachine("ITEM|W||")
        for _ in range(100):
            machine.transition(PartitionState.POSTING)
            machine.finish()

        assert len(machine.history) == 100
