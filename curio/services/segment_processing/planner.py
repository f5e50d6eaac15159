"""
Segmented processing initialization: size the video, persist its segments, start segment 0.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional

from models.models import SegmentRange
from repositories.courses_repo import CoursesRepository
from repositories.segments_repo import SegmentsRepository
from services.segment_processing.constants import (
    DEFAULT_SEGMENT_DURATION_SECONDS,
    MAX_QUESTIONS_PER_SEGMENT,
    MIN_TAIL_SEGMENT_SECONDS,
    UNKNOWN_VIDEO_DURATION_SECONDS,
)
from services.segment_processing.errors import CourseNotFoundError, SegmentsAlreadyInitializedError
from services.segment_processing.orchestrator import SegmentOrchestrator
from utils.config import get_youtube_api_key
from utils.logger import get_logger
from utils.time_utils import format_seconds_for_display
from utils.youtube_utils import extract_video_id, get_video_duration_seconds

logger = get_logger(__name__)


def expected_questions(start_time: int, end_time: int, max_questions: int) -> int:
    """One question per started minute, capped per segment."""
    minutes = math.ceil(max(0, end_time - start_time) / 60)
    return min(minutes, max_questions)


def plan_segment_ranges(
    total_duration: int,
    segment_duration: int = DEFAULT_SEGMENT_DURATION_SECONDS,
    max_questions: int = MAX_QUESTIONS_PER_SEGMENT,
    min_tail_seconds: int = MIN_TAIL_SEGMENT_SECONDS,
) -> List[SegmentRange]:
    """
    Split [0, total_duration) into fixed-length slices.

    A trailing slice shorter than min_tail_seconds is folded into its predecessor.
    """
    if segment_duration <= 0:
        raise ValueError("segment_duration must be positive")
    if total_duration <= 0:
        raise ValueError("total_duration must be positive")

    count = math.ceil(total_duration / segment_duration)
    bounds = [
        [i * segment_duration, min((i + 1) * segment_duration, total_duration)]
        for i in range(count)
    ]
    if len(bounds) > 1 and bounds[-1][1] - bounds[-1][0] < min_tail_seconds:
        logger.info("Last segment is only %ss, merging with previous segment", bounds[-1][1] - bounds[-1][0])
        bounds.pop()
        bounds[-1][1] = total_duration

    ranges = []
    for index, (start, end) in enumerate(bounds):
        ranges.append(
            SegmentRange(
                segment_index=index,
                start_time=start,
                end_time=end,
                title=f"Part {index + 1}: {format_seconds_for_display(start)} - {format_seconds_for_display(end)}",
                expected_questions=expected_questions(start, end, max_questions),
            )
        )
    return ranges


class SegmentPlanner:
    def __init__(
        self,
        orchestrator: SegmentOrchestrator,
        courses_repo: Optional[CoursesRepository] = None,
        segments_repo: Optional[SegmentsRepository] = None,
        duration_lookup: Optional[Callable[[str], Optional[int]]] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.courses_repo = courses_repo or orchestrator.courses_repo
        self.segments_repo = segments_repo or orchestrator.segments_repo
        self.duration_lookup = duration_lookup or (
            lambda video_id: get_video_duration_seconds(video_id, get_youtube_api_key())
        )

    def initialize(
        self,
        course_id: str,
        youtube_url: str,
        max_questions_per_segment: int = MAX_QUESTIONS_PER_SEGMENT,
        segment_duration: int = DEFAULT_SEGMENT_DURATION_SECONDS,
    ) -> Dict[str, Any]:
        course_id = str(course_id)
        video_id = extract_video_id(youtube_url)
        if not video_id:
            raise ValueError("Invalid YouTube URL")
        if self.courses_repo.get_course(course_id) is None:
            raise CourseNotFoundError(course_id)
        existing = self.segments_repo.count_segments(course_id)
        if existing:
            raise SegmentsAlreadyInitializedError(course_id, existing)

        video_duration = self.duration_lookup(video_id)
        if video_duration:
            total_duration = int(video_duration)
            should_segment = total_duration > segment_duration
        else:
            logger.warning("Cannot determine duration of %s, assuming it needs segmentation", video_id)
            total_duration = UNKNOWN_VIDEO_DURATION_SECONDS
            should_segment = True

        if not should_segment:
            self.courses_repo.set_segmentation(course_id, False, 1, segment_duration)
            logger.info("Video %s (%ss) is short enough to process in one go", video_id, total_duration)
            return {
                "success": True,
                "segmented": False,
                "video_duration": total_duration,
                "message": "Video is short enough to process without segmentation",
            }

        ranges = plan_segment_ranges(total_duration, segment_duration, max_questions_per_segment)
        created = self.segments_repo.create_segments(course_id, ranges)
        self.courses_repo.set_segmentation(course_id, True, len(created), segment_duration)
        total_expected = sum(r.expected_questions for r in ranges)
        logger.info(
            "Created %s segments for course %s (%ss each, %s expected questions)",
            len(created),
            course_id,
            segment_duration,
            total_expected,
        )

        first_tick = self.orchestrator.tick(course_id)
        return {
            "success": True,
            "segmented": True,
            "total_segments": len(created),
            "segment_duration": segment_duration,
            "video_duration": total_duration,
            "expected_questions": total_expected,
            "message": f"Video segmented into {len(created)} parts. Processing started.",
            "segments": [
                {
                    "index": seg.segment_index,
                    "start_time": seg.start_time,
                    "end_time": seg.end_time,
                    "title": seg.title,
                    "status": seg.status.value,
                }
                for seg in created
            ],
            "first_tick": first_tick,
        }
