"""
Pydantic models for API request/response schemas.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OrchestrateRequest(BaseModel):
    """One orchestrator tick for a course."""
    course_id: UUID
    check_only: bool = False


class CourseRequest(BaseModel):
    """Request carrying only a course id (recovery, publish check)."""
    course_id: UUID


class InitSegmentedProcessingRequest(BaseModel):
    """Split a course's video into segments and start processing."""
    course_id: UUID
    youtube_url: str = Field(..., min_length=1)
    max_questions_per_segment: int = Field(default=5, ge=1, le=20)
    segment_duration: int = Field(default=300, ge=60, le=3600, description="Seconds per segment")


class SegmentInfo(BaseModel):
    id: str
    course_id: str
    segment_index: int
    start_time: int
    end_time: int
    title: Optional[str] = None
    status: str
    planning_status: Optional[str] = None
    processing_started_at: Optional[str] = None
    worker_id: Optional[str] = None
    error_message: Optional[str] = None
    questions_count: int = 0
    retry_count: int = 0


class SegmentListResponse(BaseModel):
    course_id: str
    segments: List[SegmentInfo]
    status_breakdown: Dict[str, int]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: Optional[Any] = None
