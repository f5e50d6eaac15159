"""
Health check endpoints.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from db.postgres_db import check_table_exists, get_db_session
from utils.logger import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/api/health")
async def health_check():
    """Liveness: the process is serving requests."""
    return {"status": "healthy", "service": "curio-segments"}


@router.get("/api/health/ready")
def readiness_check():
    """Readiness: the database is reachable and the segment table exists."""
    try:
        with get_db_session() as session:
            has_segments = check_table_exists(session, "course_segments")
    except Exception as e:
        logger.warning("Readiness check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(e)})
    if not has_segments:
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": "course_segments table missing"})
    return {"status": "ready"}
