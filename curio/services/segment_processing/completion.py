"""
Completion evaluation for a course whose segments have all finished.

Publishing is left to the last segment's completion handler (or the publish gate) so a
course never appears published before its final questions are committed. This module only
backfills a generic placeholder description, which is safe to race.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.enums import SegmentStatus, TickStatus
from models.models import Course, Segment
from repositories.courses_repo import CoursesRepository
from repositories.questions_repo import QuestionsRepository
from repositories.transcripts_repo import TranscriptsRepository
from services.segment_processing.constants import GENERIC_DESCRIPTION_MARKERS
from utils.logger import get_logger

logger = get_logger(__name__)


def all_segments_completed(segments: List[Segment]) -> bool:
    return bool(segments) and all(seg.status is SegmentStatus.COMPLETED for seg in segments)


def is_generic_description(description: Optional[str]) -> bool:
    if not description:
        return False
    return any(marker in description for marker in GENERIC_DESCRIPTION_MARKERS)


class CompletionEvaluator:
    def __init__(
        self,
        courses_repo: CoursesRepository,
        questions_repo: QuestionsRepository,
        transcripts_repo: TranscriptsRepository,
    ) -> None:
        self.courses_repo = courses_repo
        self.questions_repo = questions_repo
        self.transcripts_repo = transcripts_repo

    def evaluate(self, course: Course, segments: List[Segment]) -> Optional[Dict[str, Any]]:
        """Return the completed report when every segment is done, else None."""
        if not all_segments_completed(segments):
            return None

        logger.info("All %s segments completed for course %s", len(segments), course.id)
        questions_total = self._count_questions(course.id)
        if not course.published:
            self.backfill_description(course)

        return {
            "success": True,
            "status": TickStatus.COMPLETED.value,
            "segments_total": len(segments),
            "segments_completed": len(segments),
            "questions_total": questions_total,
            "course_published": course.published,
        }

    def backfill_description(self, course: Course) -> bool:
        """Replace a placeholder description with the transcript summary. Never raises."""
        try:
            if not is_generic_description(course.description):
                logger.info("Course %s already has a custom description, skipping update", course.id)
                return False
            summary = self.transcripts_repo.get_latest_video_summary(course.id)
            if not summary:
                logger.info("No transcript or video summary available for description update (course %s)", course.id)
                return False
            if summary == course.description:
                return False
            self.courses_repo.update_description(course.id, summary)
            course.description = summary
            logger.info("Course %s description updated with generated summary", course.id)
            return True
        except Exception as exc:
            logger.error("Error updating course description for %s: %s", course.id, exc, exc_info=True)
            return False

    def _count_questions(self, course_id: str) -> int:
        try:
            count = self.questions_repo.count_questions(course_id)
        except Exception as exc:
            logger.error("Failed to count questions for course %s: %s", course_id, exc)
            return 0
        logger.info("Total questions for course %s: %s", course_id, count)
        return count
