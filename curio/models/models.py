from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.enums import PlanningStatus, SegmentStatus


@dataclass
class Course:
    id: str
    youtube_url: str
    published: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    is_segmented: bool = False
    total_segments: int = 1
    segment_duration: int = 300


@dataclass
class Segment:
    id: str
    course_id: str
    segment_index: int
    start_time: int                  # seconds into the source video
    end_time: int
    status: SegmentStatus = SegmentStatus.PENDING
    planning_status: Optional[PlanningStatus] = None
    title: Optional[str] = None
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None
    worker_id: Optional[str] = None
    error_message: Optional[str] = None
    cumulative_key_concepts: Optional[List[Any]] = None
    questions_count: int = 0
    retry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "segment_index": self.segment_index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "title": self.title,
            "status": self.status.value,
            "planning_status": self.planning_status.value if self.planning_status else None,
            "processing_started_at": self.processing_started_at.isoformat() if self.processing_started_at else None,
            "worker_id": self.worker_id,
            "error_message": self.error_message,
            "questions_count": self.questions_count,
            "retry_count": self.retry_count,
        }


@dataclass
class SegmentRange:
    """Planned time slice before it is persisted as a Segment."""
    segment_index: int
    start_time: int
    end_time: int
    title: str
    expected_questions: int = 0


@dataclass
class HandoffContext:
    """Context carried from a segment to its successor; the last three fields are filled by the generator."""
    key_concepts: List[Any]
    segment_index: int
    total_processed_duration: int
    last_transcript_segments: List[Any] = field(default_factory=list)
    last_questions: List[Any] = field(default_factory=list)
    segment_summary: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "keyConcepts": self.key_concepts,
            "lastTranscriptSegments": self.last_transcript_segments,
            "lastQuestions": self.last_questions,
            "segmentSummary": self.segment_summary,
            "segmentIndex": self.segment_index,
            "totalProcessedDuration": self.total_processed_duration,
        }
