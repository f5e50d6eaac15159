from typing import Optional

from sqlalchemy import text

from db.postgres_db import get_db_session


class TranscriptsRepository:
    def get_latest_video_summary(self, course_id: str) -> Optional[str]:
        """video_summary of the most recent transcript row for the course, if any."""
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT video_summary
                    FROM video_transcripts
                    WHERE course_id = :course_id
                    ORDER BY created_at DESC
                    LIMIT 1
                """),
                {"course_id": str(course_id)},
            ).mappings().fetchone()
        if not row:
            return None
        summary = str(row.get("video_summary") or "").strip()
        return summary or None
