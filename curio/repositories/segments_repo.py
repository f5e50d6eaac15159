"""
Repository for course_segments rows.

Status writes go through the transition table in models.enums: every status patch is
guarded by a `status IN (...)` predicate built from the statuses allowed to reach the target.
"""
import json
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import bindparam, text

from db.postgres_db import get_db_session
from models.enums import (
    CLAIMABLE_STATUSES,
    PlanningStatus,
    SegmentStatus,
    can_transition,
)
from models.models import Segment, SegmentRange
from services.segment_processing.errors import InvalidSegmentTransition, SegmentsAlreadyInitializedError
from utils.time_utils import to_utc, utc_now

_SEGMENT_COLUMNS = """
    id, course_id, segment_index, start_time, end_time, title, status, planning_status,
    processing_started_at, processing_completed_at, worker_id, error_message,
    cumulative_key_concepts, questions_count, retry_count
"""

# Columns the orchestrator is allowed to patch; everything else belongs to the generator.
PATCHABLE_COLUMNS = frozenset(
    {"status", "error_message", "worker_id", "processing_started_at", "processing_completed_at"}
)


def _source_statuses(target: SegmentStatus) -> List[str]:
    return sorted(current.value for current in SegmentStatus if can_transition(current, target))


class SegmentsRepository:
    """PostgreSQL-backed course_segments repository."""

    def list_segments(self, course_id: str) -> List[Segment]:
        with get_db_session() as session:
            rows = session.execute(
                text(f"""
                    SELECT {_SEGMENT_COLUMNS}
                    FROM course_segments
                    WHERE course_id = :course_id
                    ORDER BY segment_index ASC
                """),
                {"course_id": str(course_id)},
            ).mappings().fetchall()
        return [_segment_from_row(row) for row in rows]

    def count_segments(self, course_id: str) -> int:
        with get_db_session() as session:
            count = session.execute(
                text("SELECT COUNT(*) FROM course_segments WHERE course_id = :course_id"),
                {"course_id": str(course_id)},
            ).scalar()
        return int(count or 0)

    def update_segments(self, segment_ids: Iterable[str], patch: Dict[str, Any]) -> int:
        """
        Apply a column patch to a batch of segments. Returns affected row count.

        A `status` in the patch only applies to rows whose current status may move to it.
        """
        ids = [str(segment_id) for segment_id in segment_ids]
        if not ids or not patch:
            return 0
        unknown = set(patch) - PATCHABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported segment columns: {', '.join(sorted(unknown))}")

        params: Dict[str, Any] = {"segment_ids": ids}
        assignments = []
        for column in sorted(patch):
            value = patch[column]
            if isinstance(value, SegmentStatus):
                value = value.value
            params[column] = value
            assignments.append(f"{column} = :{column}")
        assignments.append("updated_at = :updated_at")
        params["updated_at"] = utc_now()

        where = "id IN :segment_ids"
        binds = [bindparam("segment_ids", expanding=True)]
        if "status" in patch:
            target = SegmentStatus(params["status"])
            sources = _source_statuses(target)
            if not sources:
                raise InvalidSegmentTransition(target.value)
            params["source_statuses"] = sources
            where += " AND status IN :source_statuses"
            binds.append(bindparam("source_statuses", expanding=True))

        with get_db_session() as session:
            result = session.execute(
                text(f"""
                    UPDATE course_segments
                    SET {", ".join(assignments)}
                    WHERE {where}
                """).bindparams(*binds),
                params,
            )
            return int(result.rowcount or 0)

    def mark_failed(self, segment_ids: Iterable[str], error_message: str) -> int:
        """processing -> failed for every id; clears the owning worker and start time."""
        return self.update_segments(
            segment_ids,
            {
                "status": SegmentStatus.FAILED,
                "error_message": error_message,
                "worker_id": None,
                "processing_started_at": None,
            },
        )

    def claim_segment(self, segment_id: str, worker_id: str, now: Optional[datetime] = None) -> bool:
        """
        Atomically move a pending/failed segment to processing.

        Returns False when another caller already claimed it (zero rows affected).
        """
        started_at = now or utc_now()
        with get_db_session() as session:
            result = session.execute(
                text("""
                    UPDATE course_segments
                    SET status = 'processing',
                        worker_id = :worker_id,
                        processing_started_at = :started_at,
                        error_message = NULL,
                        retry_count = retry_count + CASE WHEN status = 'failed' THEN 1 ELSE 0 END,
                        updated_at = :started_at
                    WHERE id = :segment_id
                      AND status IN :claimable
                """).bindparams(bindparam("claimable", expanding=True)),
                {
                    "segment_id": str(segment_id),
                    "worker_id": worker_id,
                    "started_at": started_at,
                    "claimable": sorted(status.value for status in CLAIMABLE_STATUSES),
                },
            )
            return int(result.rowcount or 0) == 1

    def release_claim(self, segment_id: str, worker_id: str, error_message: str) -> bool:
        """processing -> failed, only while the given worker still owns the claim."""
        with get_db_session() as session:
            result = session.execute(
                text("""
                    UPDATE course_segments
                    SET status = 'failed',
                        error_message = :error_message,
                        worker_id = NULL,
                        processing_started_at = NULL,
                        updated_at = :now
                    WHERE id = :segment_id
                      AND status = 'processing'
                      AND worker_id = :worker_id
                """),
                {
                    "segment_id": str(segment_id),
                    "worker_id": worker_id,
                    "error_message": (error_message or "")[:2000],
                    "now": utc_now(),
                },
            )
            return int(result.rowcount or 0) == 1

    def create_segments(self, course_id: str, ranges: List[SegmentRange]) -> List[Segment]:
        """Insert every planned range as a pending segment in one transaction."""
        course_id = str(course_id)
        now = utc_now()
        with get_db_session() as session:
            existing = session.execute(
                text("SELECT COUNT(*) FROM course_segments WHERE course_id = :course_id"),
                {"course_id": course_id},
            ).scalar()
            if existing:
                raise SegmentsAlreadyInitializedError(course_id, int(existing))
            created: List[Segment] = []
            for planned in ranges:
                segment_id = str(uuid.uuid4())
                session.execute(
                    text("""
                        INSERT INTO course_segments (
                            id, course_id, segment_index, start_time, end_time, title,
                            status, questions_count, retry_count, created_at, updated_at
                        ) VALUES (
                            :id, :course_id, :segment_index, :start_time, :end_time, :title,
                            'pending', 0, 0, :now, :now
                        )
                    """),
                    {
                        "id": segment_id,
                        "course_id": course_id,
                        "segment_index": planned.segment_index,
                        "start_time": planned.start_time,
                        "end_time": planned.end_time,
                        "title": planned.title,
                        "now": now,
                    },
                )
                created.append(
                    Segment(
                        id=segment_id,
                        course_id=course_id,
                        segment_index=planned.segment_index,
                        start_time=planned.start_time,
                        end_time=planned.end_time,
                        title=planned.title,
                    )
                )
        return created


def _parse_planning_status(value: str) -> Optional[PlanningStatus]:
    # Owned by the generator; unknown sub-phase labels count as not completed.
    try:
        return PlanningStatus(value) if value else None
    except ValueError:
        return None


def _segment_from_row(row: Any) -> Segment:
    data = dict(row)
    concepts = data.get("cumulative_key_concepts")
    if isinstance(concepts, str):
        try:
            concepts = json.loads(concepts)
        except ValueError:
            concepts = None
    planning = str(data.get("planning_status") or "")
    return Segment(
        id=str(data["id"]),
        course_id=str(data["course_id"]),
        segment_index=int(data["segment_index"]),
        start_time=int(data.get("start_time") or 0),
        end_time=int(data.get("end_time") or 0),
        title=data.get("title"),
        status=SegmentStatus(str(data.get("status") or "pending")),
        planning_status=_parse_planning_status(planning),
        processing_started_at=to_utc(data.get("processing_started_at")),
        processing_completed_at=to_utc(data.get("processing_completed_at")),
        worker_id=data.get("worker_id"),
        error_message=data.get("error_message"),
        cumulative_key_concepts=concepts,
        questions_count=int(data.get("questions_count") or 0),
        retry_count=int(data.get("retry_count") or 0),
    )
