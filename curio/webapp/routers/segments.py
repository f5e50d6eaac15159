"""
Segment processing API: orchestrator tick, initialization, recovery, publish gate.

Tick-style endpoints report fatal errors as HTTP 500 with `{success: false, error}` so
polling clients can treat every non-200 the same way.
"""
from collections import Counter
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..dependencies import require_service_key
from ..schemas import (
    CourseRequest,
    ErrorResponse,
    InitSegmentedProcessingRequest,
    OrchestrateRequest,
    SegmentListResponse,
)
from services.segment_processing.errors import (
    CourseNotFoundError,
    SegmentDispatchError,
    SegmentsAlreadyInitializedError,
)
from services.segment_processing.service import SegmentProcessingService
from utils.logger import get_logger

router = APIRouter(prefix="/api", tags=["segments"])
logger = get_logger(__name__)

_ERROR_RESPONSES = {500: {"model": ErrorResponse}}


def get_segment_service() -> SegmentProcessingService:
    return SegmentProcessingService()


def _fatal(exc: Exception, status_code: int = 500) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": str(exc)}
    if isinstance(exc, SegmentDispatchError) and exc.response_body is not None:
        body["detail"] = exc.response_body
    return JSONResponse(status_code=status_code, content=body)


@router.post("/segments/orchestrate", dependencies=[Depends(require_service_key)], responses=_ERROR_RESPONSES)
def orchestrate_segments(body: OrchestrateRequest):
    """Run one orchestrator tick: reap, evaluate completion, dispatch at most one segment."""
    try:
        return get_segment_service().orchestrate(str(body.course_id), check_only=body.check_only)
    except Exception as e:
        logger.exception("Orchestration error for course %s: %s", body.course_id, e)
        return _fatal(e)


@router.post(
    "/segments/init",
    dependencies=[Depends(require_service_key)],
    responses={**_ERROR_RESPONSES, 400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def init_segmented_processing(body: InitSegmentedProcessingRequest):
    """Create the course's segments from the video duration and trigger segment 0."""
    try:
        return get_segment_service().initialize(
            str(body.course_id),
            body.youtube_url,
            max_questions_per_segment=body.max_questions_per_segment,
            segment_duration=body.segment_duration,
        )
    except SegmentsAlreadyInitializedError as e:
        return _fatal(e, status_code=409)
    except CourseNotFoundError as e:
        return _fatal(e, status_code=404)
    except ValueError as e:
        return _fatal(e, status_code=400)
    except Exception as e:
        logger.exception("Segmented processing initialization error for course %s: %s", body.course_id, e)
        return _fatal(e)


@router.post("/course/recover-processing", dependencies=[Depends(require_service_key)], responses=_ERROR_RESPONSES)
def recover_processing(body: CourseRequest):
    """Check a course and, unless already complete, push it forward by one tick."""
    try:
        return get_segment_service().recover(str(body.course_id))
    except Exception as e:
        logger.exception("Recovery error for course %s: %s", body.course_id, e)
        return _fatal(e)


@router.post("/course/check-and-publish", dependencies=[Depends(require_service_key)], responses=_ERROR_RESPONSES)
def check_and_publish(body: CourseRequest):
    """Publish the course once all segments and questions are in place."""
    try:
        return get_segment_service().check_and_publish(str(body.course_id))
    except Exception as e:
        logger.exception("Check and publish error for course %s: %s", body.course_id, e)
        return _fatal(e)


@router.get("/course/{course_id}/segments", response_model=SegmentListResponse)
def list_course_segments(course_id: str) -> Dict[str, Any]:
    """Segment rows with status for progress display."""
    try:
        segments = get_segment_service().list_segments(course_id)
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="Course not found")
    return {
        "course_id": course_id,
        "segments": segments,
        "status_breakdown": dict(Counter(seg["status"] for seg in segments)),
    }
