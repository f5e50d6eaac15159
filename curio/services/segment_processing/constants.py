"""
Constants for segment processing.
"""

from typing import Tuple

from models.enums import QuestionPlanStatus

STUCK_SEGMENT_TIMEOUT_SECONDS = 5 * 60
STUCK_SEGMENT_ERROR_MESSAGE = "Processing timeout - exceeded 5 minutes"

MAX_QUESTIONS_PER_SEGMENT = 5

DEFAULT_SEGMENT_DURATION_SECONDS = 300
UNKNOWN_VIDEO_DURATION_SECONDS = 1800
MIN_TAIL_SEGMENT_SECONDS = 20

# Placeholder descriptions written at course creation; replaced once a transcript summary exists.
GENERIC_DESCRIPTION_MARKERS: Tuple[str, ...] = (
    "Interactive course from",
    "AI-powered interactive course",
    "AI Generated Course",
)

PENDING_PLAN_STATUSES: Tuple[str, ...] = (QuestionPlanStatus.PLANNED.value, QuestionPlanStatus.GENERATING.value)

WAITING_MESSAGE = "No segments ready for processing"
