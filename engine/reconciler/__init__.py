"""
Reconciler 모듈

과거 일자 삽입/취소 후 파티션 타임라인 재계산 및 drift 점검
"""

from engine.reconciler.timeline import TimelineReconciler, fold_states
from engine.reconciler.drift import DriftDetector, DriftInfo

__all__ = [
    "TimelineReconciler",
    "fold_states",
    "DriftDetector",
    "DriftInfo",
]
