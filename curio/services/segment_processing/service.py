"""
Facade service for API handlers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.enums import TickStatus
from services.segment_processing.constants import DEFAULT_SEGMENT_DURATION_SECONDS, MAX_QUESTIONS_PER_SEGMENT
from services.segment_processing.errors import CourseNotFoundError
from services.segment_processing.orchestrator import SegmentOrchestrator
from services.segment_processing.planner import SegmentPlanner
from services.segment_processing.publisher import CoursePublisher
from utils.logger import get_logger

logger = get_logger(__name__)


class SegmentProcessingService:
    def __init__(
        self,
        orchestrator: Optional[SegmentOrchestrator] = None,
        planner: Optional[SegmentPlanner] = None,
        publisher: Optional[CoursePublisher] = None,
    ) -> None:
        self.orchestrator = orchestrator or SegmentOrchestrator()
        self.planner = planner or SegmentPlanner(self.orchestrator)
        self.publisher = publisher or CoursePublisher(
            courses_repo=self.orchestrator.courses_repo,
            segments_repo=self.orchestrator.segments_repo,
        )

    def orchestrate(self, course_id: str, check_only: bool = False) -> Dict[str, Any]:
        return self.orchestrator.tick(course_id, check_only=check_only)

    def initialize(
        self,
        course_id: str,
        youtube_url: str,
        max_questions_per_segment: int = MAX_QUESTIONS_PER_SEGMENT,
        segment_duration: int = DEFAULT_SEGMENT_DURATION_SECONDS,
    ) -> Dict[str, Any]:
        return self.planner.initialize(
            course_id,
            youtube_url,
            max_questions_per_segment=max_questions_per_segment,
            segment_duration=segment_duration,
        )

    def recover(self, course_id: str) -> Dict[str, Any]:
        """Check status first; run a full tick only when the course is not complete."""
        logger.info("Manual recovery triggered for course %s", course_id)
        status_before = self.orchestrator.tick(course_id, check_only=True)
        if status_before.get("status") == TickStatus.COMPLETED.value:
            return {"success": True, "message": "Course already completed", "status": status_before}
        action_taken = self.orchestrator.tick(course_id, check_only=False)
        return {
            "success": True,
            "message": "Recovery initiated",
            "status_before": status_before,
            "action_taken": action_taken,
        }

    def check_and_publish(self, course_id: str) -> Dict[str, Any]:
        return self.publisher.check_and_publish(course_id)

    def list_segments(self, course_id: str) -> List[Dict[str, Any]]:
        if self.orchestrator.courses_repo.get_course(course_id) is None:
            raise CourseNotFoundError(course_id)
        return [seg.to_dict() for seg in self.orchestrator.segments_repo.list_segments(course_id)]
