from enum import Enum
from typing import Dict, FrozenSet


class SegmentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanningStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class QuestionPlanStatus(Enum):
    PLANNED = "planned"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class TickStatus(Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    PROCESSING = "processing"


# completed is terminal: only the external generator writes it, and nothing leaves it.
SEGMENT_TRANSITIONS: Dict[SegmentStatus, FrozenSet[SegmentStatus]] = {
    SegmentStatus.PENDING: frozenset({SegmentStatus.PROCESSING}),
    SegmentStatus.FAILED: frozenset({SegmentStatus.PROCESSING}),
    SegmentStatus.PROCESSING: frozenset({SegmentStatus.COMPLETED, SegmentStatus.FAILED}),
    SegmentStatus.COMPLETED: frozenset(),
}

CLAIMABLE_STATUSES: FrozenSet[SegmentStatus] = frozenset(
    status for status, targets in SEGMENT_TRANSITIONS.items() if SegmentStatus.PROCESSING in targets
)


def can_transition(current: SegmentStatus, target: SegmentStatus) -> bool:
    return target in SEGMENT_TRANSITIONS.get(current, frozenset())
