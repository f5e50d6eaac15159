"""
Publish gate: flips `published` only once every segment and question plan is done and
at least one question exists.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from repositories.courses_repo import CoursesRepository
from repositories.questions_repo import QuestionsRepository
from repositories.segments_repo import SegmentsRepository
from services.segment_processing.constants import PENDING_PLAN_STATUSES
from services.segment_processing.errors import CourseNotFoundError
from services.segment_processing.orchestrator import completed_count
from utils.logger import get_logger

logger = get_logger(__name__)


class CoursePublisher:
    def __init__(
        self,
        courses_repo: Optional[CoursesRepository] = None,
        segments_repo: Optional[SegmentsRepository] = None,
        questions_repo: Optional[QuestionsRepository] = None,
    ) -> None:
        self.courses_repo = courses_repo or CoursesRepository()
        self.segments_repo = segments_repo or SegmentsRepository()
        self.questions_repo = questions_repo or QuestionsRepository()

    def check_and_publish(self, course_id: str) -> Dict[str, Any]:
        course_id = str(course_id)
        course = self.courses_repo.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        if course.published:
            return {"success": True, "published": True, "message": "Course is already published"}

        segments = self.segments_repo.list_segments(course_id)
        done = completed_count(segments)
        if not segments or done < len(segments):
            incomplete = len(segments) - done
            logger.info("Course %s not publishable: %s segments still processing", course_id, incomplete)
            return {
                "success": True,
                "published": False,
                "message": f"{incomplete} segments still processing",
                "segments_total": len(segments),
                "segments_completed": done,
            }

        plan_counts = self.questions_repo.plan_status_counts(course_id)
        pending_plans = sum(plan_counts.get(status, 0) for status in PENDING_PLAN_STATUSES)
        if pending_plans:
            logger.info("Course %s not publishable: %s questions still being generated", course_id, pending_plans)
            return {
                "success": True,
                "published": False,
                "message": f"{pending_plans} questions still being generated",
                "question_status": plan_counts,
            }

        question_count = self.questions_repo.count_questions(course_id)
        if question_count == 0:
            logger.warning("No questions found for course %s, not marking as published", course_id)
            return {
                "success": True,
                "published": False,
                "message": "No questions found in database",
                "question_count": 0,
            }

        self.courses_repo.mark_published(course_id)
        logger.info("Course %s published with %s questions", course_id, question_count)
        return {
            "success": True,
            "published": True,
            "message": f"Course published with {question_count} questions",
            "question_count": question_count,
        }
