"""
Next-segment selection.

Segments are walked in index order and at most one is returned. A segment after the
first only becomes eligible once its predecessor is completed or has finished planning.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Optional

from models.enums import PlanningStatus, SegmentStatus
from models.models import Segment
from services.segment_processing.constants import STUCK_SEGMENT_TIMEOUT_SECONDS
from utils.logger import get_logger
from utils.time_utils import utc_now

logger = get_logger(__name__)


def unblocks_successor(segment: Optional[Segment]) -> bool:
    if segment is None:
        return False
    return segment.status is SegmentStatus.COMPLETED or segment.planning_status is PlanningStatus.COMPLETED


class NextSegmentSelector:
    def __init__(
        self,
        timeout_seconds: int = STUCK_SEGMENT_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def select(self, segments: List[Segment]) -> Optional[Segment]:
        ordered = sorted(segments, key=lambda seg: seg.segment_index)
        by_index: Dict[int, Segment] = {seg.segment_index: seg for seg in ordered}
        now = self.clock()

        for segment in ordered:
            if segment.status is SegmentStatus.COMPLETED:
                continue

            if segment.segment_index > 0 and not unblocks_successor(by_index.get(segment.segment_index - 1)):
                logger.info(
                    "Segment %s waiting for previous segment to complete planning",
                    segment.segment_index,
                )
                continue

            if segment.status in (SegmentStatus.PENDING, SegmentStatus.FAILED):
                return segment

            if segment.status is SegmentStatus.PROCESSING:
                elapsed = 0.0
                if segment.processing_started_at is not None:
                    elapsed = (now - segment.processing_started_at).total_seconds()
                if elapsed < self.timeout_seconds:
                    logger.info(
                        "Segment %s is currently processing (%ss)",
                        segment.segment_index,
                        int(elapsed),
                    )
                else:
                    # Should have been reaped this tick; leave it for the next one.
                    logger.warning(
                        "Segment %s still processing after %ss, not re-dispatching",
                        segment.segment_index,
                        int(elapsed),
                    )
        return None
