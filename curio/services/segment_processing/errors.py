"""
Exceptions raised by segment processing.
"""

from __future__ import annotations

from typing import Any, Optional


class SegmentProcessingError(Exception):
    """Base class for segment processing failures."""


class CourseNotFoundError(SegmentProcessingError, ValueError):
    def __init__(self, course_id: str, detail: Optional[str] = None) -> None:
        self.course_id = course_id
        message = f"Course not found: {detail or course_id}"
        super().__init__(message)


class SegmentsNotFoundError(SegmentProcessingError, ValueError):
    def __init__(self, course_id: str) -> None:
        self.course_id = course_id
        super().__init__(f"Failed to fetch segments: no segments for course {course_id}")


class SegmentsAlreadyInitializedError(SegmentProcessingError):
    def __init__(self, course_id: str, existing: int) -> None:
        self.course_id = course_id
        self.existing = existing
        super().__init__(f"Course {course_id} already has {existing} segments")


class InvalidSegmentTransition(SegmentProcessingError, ValueError):
    def __init__(self, target: str, current: Optional[str] = None) -> None:
        self.target = target
        self.current = current
        if current:
            super().__init__(f"Segment cannot move from {current} to {target}")
        else:
            super().__init__(f"No segment status can move to {target}")


class SegmentDispatchError(SegmentProcessingError, RuntimeError):
    """
    The segment generator rejected the job or could not be reached.

    `timed_out` marks a post that was sent but got no answer in time; the
    generator may still be running the job.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Any = None,
        timed_out: bool = False,
    ) -> None:
        self.status_code = status_code
        self.response_body = response_body
        self.timed_out = timed_out
        super().__init__(message)
