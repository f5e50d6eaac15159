"""
Stuck-segment reaper: demotes abandoned in-flight segments to failed.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from models.enums import SegmentStatus
from models.models import Segment
from repositories.segments_repo import SegmentsRepository
from services.segment_processing.constants import STUCK_SEGMENT_ERROR_MESSAGE, STUCK_SEGMENT_TIMEOUT_SECONDS
from utils.logger import get_logger
from utils.time_utils import utc_now

logger = get_logger(__name__)


class StuckSegmentReaper:
    def __init__(
        self,
        segments_repo: SegmentsRepository,
        timeout_seconds: int = STUCK_SEGMENT_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.segments_repo = segments_repo
        self.timeout_seconds = timeout_seconds
        self.clock = clock

    def find_stuck(self, segments: List[Segment], now: Optional[datetime] = None) -> List[Segment]:
        cutoff = (now or self.clock()) - timedelta(seconds=self.timeout_seconds)
        return [
            seg
            for seg in segments
            if seg.status is SegmentStatus.PROCESSING
            and seg.processing_started_at is not None
            and seg.processing_started_at < cutoff
        ]

    def reap(self, segments: List[Segment]) -> List[Segment]:
        """
        Mark stuck segments failed in one batched write and return the segment list to use next.

        On a failed write the input list is returned untouched; the next tick retries.
        """
        stuck = self.find_stuck(segments)
        if not stuck:
            return segments

        logger.warning(
            "Found %s stuck segments for course %s, resetting them: %s",
            len(stuck),
            stuck[0].course_id,
            [seg.segment_index for seg in stuck],
        )
        try:
            self.segments_repo.mark_failed([seg.id for seg in stuck], STUCK_SEGMENT_ERROR_MESSAGE)
        except Exception as exc:
            logger.error("Failed to reset stuck segments: %s", exc, exc_info=True)
            return segments

        stuck_ids = {seg.id for seg in stuck}
        return [
            dataclasses.replace(
                seg,
                status=SegmentStatus.FAILED,
                error_message=STUCK_SEGMENT_ERROR_MESSAGE,
                worker_id=None,
                processing_started_at=None,
            )
            if seg.id in stuck_ids
            else seg
            for seg in segments
        ]
