"""
Segment processing orchestrator.

One tick: load course and segments, reap stuck segments, short-circuit on completion,
optionally report only, else select and dispatch at most one segment. Every tick re-reads
the store, so it is safe to call repeatedly from a polling client or the background poller.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from models.enums import SegmentStatus, TickStatus
from models.models import Segment
from repositories.courses_repo import CoursesRepository
from repositories.questions_repo import QuestionsRepository
from repositories.segments_repo import SegmentsRepository
from repositories.transcripts_repo import TranscriptsRepository
from services.segment_processing.completion import CompletionEvaluator
from services.segment_processing.constants import STUCK_SEGMENT_TIMEOUT_SECONDS, WAITING_MESSAGE
from services.segment_processing.dispatcher import SegmentDispatcher, default_worker_id
from services.segment_processing.errors import CourseNotFoundError, SegmentsNotFoundError
from services.segment_processing.generator_client import SegmentGeneratorClient
from services.segment_processing.reaper import StuckSegmentReaper
from services.segment_processing.selector import NextSegmentSelector
from utils.logger import get_logger
from utils.time_utils import utc_now

logger = get_logger(__name__)


def status_breakdown(segments: List[Segment]) -> Dict[str, int]:
    return dict(Counter(seg.status.value for seg in segments))


def completed_count(segments: List[Segment]) -> int:
    return sum(1 for seg in segments if seg.status is SegmentStatus.COMPLETED)


class SegmentOrchestrator:
    def __init__(
        self,
        courses_repo: Optional[CoursesRepository] = None,
        segments_repo: Optional[SegmentsRepository] = None,
        questions_repo: Optional[QuestionsRepository] = None,
        transcripts_repo: Optional[TranscriptsRepository] = None,
        generator_client: Optional[SegmentGeneratorClient] = None,
        clock: Callable[[], datetime] = utc_now,
        worker_id_factory: Callable[[], str] = default_worker_id,
        timeout_seconds: int = STUCK_SEGMENT_TIMEOUT_SECONDS,
    ) -> None:
        self.courses_repo = courses_repo or CoursesRepository()
        self.segments_repo = segments_repo or SegmentsRepository()
        self.reaper = StuckSegmentReaper(self.segments_repo, timeout_seconds=timeout_seconds, clock=clock)
        self.evaluator = CompletionEvaluator(
            self.courses_repo,
            questions_repo or QuestionsRepository(),
            transcripts_repo or TranscriptsRepository(),
        )
        self.selector = NextSegmentSelector(timeout_seconds=timeout_seconds, clock=clock)
        self.dispatcher = SegmentDispatcher(
            self.segments_repo,
            generator_client or SegmentGeneratorClient(),
            worker_id_factory=worker_id_factory,
        )

    def tick(self, course_id: str, check_only: bool = False) -> Dict[str, Any]:
        course_id = str(course_id)
        logger.info("Orchestrating segment processing for course %s (check_only=%s)", course_id, check_only)

        course = self.courses_repo.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)

        segments = self.segments_repo.list_segments(course_id)
        if not segments:
            raise SegmentsNotFoundError(course_id)

        segments = self.reaper.reap(segments)
        logger.info("Course %s segments=%s breakdown=%s", course_id, len(segments), status_breakdown(segments))

        completed_report = self.evaluator.evaluate(course, segments)
        if completed_report is not None:
            return completed_report

        if check_only:
            return {
                "success": True,
                "status": TickStatus.IN_PROGRESS.value,
                "segments_total": len(segments),
                "segments_completed": completed_count(segments),
                "status_breakdown": status_breakdown(segments),
            }

        next_segment = self.selector.select(segments)
        if next_segment is None:
            logger.info("No segments ready for processing for course %s", course_id)
            return self._waiting(segments, WAITING_MESSAGE)

        outcome = self.dispatcher.dispatch(course, next_segment, segments)
        if not outcome.claimed:
            return self._waiting(
                segments,
                f"Segment {next_segment.segment_index} already claimed by another worker",
            )

        return {
            "success": True,
            "status": TickStatus.PROCESSING.value,
            "triggered_segment": next_segment.segment_index,
            "segments_total": len(segments),
            "segments_completed": completed_count(segments),
            "response": outcome.response,
        }

    @staticmethod
    def _waiting(segments: List[Segment], message: str) -> Dict[str, Any]:
        return {
            "success": True,
            "status": TickStatus.WAITING.value,
            "message": message,
            "segments_total": len(segments),
            "segments_completed": completed_count(segments),
        }
