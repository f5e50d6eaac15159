"""
Dispatcher: claim a selected segment and hand it to the segment generator.
"""

from __future__ import annotations

import socket
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from models.models import Course, HandoffContext, Segment
from repositories.segments_repo import SegmentsRepository
from services.segment_processing.constants import MAX_QUESTIONS_PER_SEGMENT
from services.segment_processing.errors import SegmentDispatchError
from services.segment_processing.generator_client import SegmentGeneratorClient
from utils.logger import get_logger

logger = get_logger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{uuid.uuid4()}"


def build_handoff_context(segment: Segment, segments: List[Segment]) -> Optional[HandoffContext]:
    """Context from the immediately preceding segment, once it has recorded key concepts (possibly none)."""
    if segment.segment_index <= 0:
        return None
    previous = next((s for s in segments if s.segment_index == segment.segment_index - 1), None)
    if previous is None or previous.cumulative_key_concepts is None:
        return None
    return HandoffContext(
        key_concepts=previous.cumulative_key_concepts,
        segment_index=previous.segment_index,
        total_processed_duration=previous.end_time,
    )


def build_generator_payload(
    course: Course,
    segment: Segment,
    segments: List[Segment],
    max_questions: int = MAX_QUESTIONS_PER_SEGMENT,
    session_id: Optional[str] = None,
) -> Dict[str, Any]:
    context = build_handoff_context(segment, segments)
    return {
        "course_id": course.id,
        "segment_id": segment.id,
        "segment_index": segment.segment_index,
        "youtube_url": course.youtube_url,
        "start_time": segment.start_time,
        "end_time": segment.end_time,
        "session_id": session_id,
        "previous_segment_context": context.to_payload() if context else None,
        "total_segments": len(segments),
        "max_questions": max_questions,
    }


@dataclass
class DispatchOutcome:
    claimed: bool
    worker_id: str
    response: Any = None


class SegmentDispatcher:
    def __init__(
        self,
        segments_repo: SegmentsRepository,
        generator_client: SegmentGeneratorClient,
        worker_id_factory: Callable[[], str] = default_worker_id,
        max_questions: int = MAX_QUESTIONS_PER_SEGMENT,
    ) -> None:
        self.segments_repo = segments_repo
        self.generator_client = generator_client
        self.worker_id_factory = worker_id_factory
        self.max_questions = max_questions

    def dispatch(self, course: Course, segment: Segment, segments: List[Segment]) -> DispatchOutcome:
        """
        Claim the segment, then post it to the generator.

        An unclaimed outcome means a concurrent tick won the claim and nothing was posted.
        A post failure releases the claim back to failed and re-raises SegmentDispatchError.
        A timed-out post keeps the claim, since the generator may already be running the job;
        the reaper fails the segment if it never completes.
        """
        worker_id = self.worker_id_factory()
        if not self.segments_repo.claim_segment(segment.id, worker_id):
            logger.info("Segment %s of course %s already claimed, skipping dispatch", segment.segment_index, course.id)
            return DispatchOutcome(claimed=False, worker_id=worker_id)

        payload = build_generator_payload(course, segment, segments, max_questions=self.max_questions)
        logger.info(
            "Triggering processing for segment %s of course %s (%s segments, worker_id=%s, has_context=%s)",
            segment.segment_index,
            course.id,
            len(segments),
            worker_id,
            payload["previous_segment_context"] is not None,
        )
        try:
            response = self.generator_client.trigger(payload)
        except SegmentDispatchError as exc:
            if exc.timed_out:
                logger.warning(
                    "Timed out triggering segment %s of course %s; keeping claim %s for the stuck-segment reaper",
                    segment.segment_index,
                    course.id,
                    worker_id,
                )
                raise
            released = self.segments_repo.release_claim(segment.id, worker_id, str(exc))
            logger.error(
                "Failed to trigger segment %s of course %s (claim released=%s): %s",
                segment.segment_index,
                course.id,
                released,
                exc,
            )
            raise

        logger.info("Successfully triggered segment %s of course %s", segment.segment_index, course.id)
        return DispatchOutcome(claimed=True, worker_id=worker_id, response=response)
