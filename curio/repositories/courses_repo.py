"""
Repository for the courses table (only the columns segment processing touches).
"""
from typing import Any, List, Optional

from sqlalchemy import text

from db.postgres_db import get_db_session
from models.models import Course
from utils.time_utils import utc_now


class CoursesRepository:
    """PostgreSQL-backed courses repository."""

    def get_course(self, course_id: str) -> Optional[Course]:
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT id, youtube_url, published, title, description,
                           is_segmented, total_segments, segment_duration
                    FROM courses
                    WHERE id = :course_id
                    LIMIT 1
                """),
                {"course_id": str(course_id)},
            ).mappings().fetchone()
        return _course_from_row(row) if row else None

    def update_description(self, course_id: str, description: str) -> bool:
        with get_db_session() as session:
            result = session.execute(
                text("""
                    UPDATE courses
                    SET description = :description,
                        updated_at = :now
                    WHERE id = :course_id
                """),
                {"course_id": str(course_id), "description": description, "now": utc_now()},
            )
            return int(result.rowcount or 0) > 0

    def set_segmentation(
        self,
        course_id: str,
        is_segmented: bool,
        total_segments: int,
        segment_duration: int,
    ) -> None:
        with get_db_session() as session:
            session.execute(
                text("""
                    UPDATE courses
                    SET is_segmented = :is_segmented,
                        total_segments = :total_segments,
                        segment_duration = :segment_duration,
                        updated_at = :now
                    WHERE id = :course_id
                """),
                {
                    "course_id": str(course_id),
                    "is_segmented": bool(is_segmented),
                    "total_segments": int(total_segments),
                    "segment_duration": int(segment_duration),
                    "now": utc_now(),
                },
            )

    def mark_published(self, course_id: str) -> bool:
        with get_db_session() as session:
            result = session.execute(
                text("""
                    UPDATE courses
                    SET published = TRUE,
                        updated_at = :now
                    WHERE id = :course_id
                """),
                {"course_id": str(course_id), "now": utc_now()},
            )
            return int(result.rowcount or 0) > 0

    def list_courses_with_open_segments(self, limit: int = 50) -> List[str]:
        """Unpublished segmented courses that still have at least one non-completed segment."""
        with get_db_session() as session:
            rows = session.execute(
                text("""
                    SELECT c.id
                    FROM courses c
                    WHERE c.is_segmented = TRUE
                      AND c.published = FALSE
                      AND EXISTS (
                          SELECT 1 FROM course_segments s
                          WHERE s.course_id = c.id AND s.status <> 'completed'
                      )
                    ORDER BY c.created_at ASC
                    LIMIT :limit
                """),
                {"limit": int(limit)},
            ).fetchall()
        return [str(row[0]) for row in rows]


def _course_from_row(row: Any) -> Course:
    data = dict(row)
    return Course(
        id=str(data["id"]),
        youtube_url=str(data.get("youtube_url") or ""),
        published=bool(data.get("published")),
        title=data.get("title"),
        description=data.get("description"),
        is_segmented=bool(data.get("is_segmented")),
        total_segments=int(data.get("total_segments") or 1),
        segment_duration=int(data.get("segment_duration") or 300),
    )
