"""
Read-only access to generated questions and question plans (written by the segment generator).
"""
from typing import Dict

from sqlalchemy import text

from db.postgres_db import get_db_session


class QuestionsRepository:
    def count_questions(self, course_id: str) -> int:
        with get_db_session() as session:
            count = session.execute(
                text("SELECT COUNT(*) FROM questions WHERE course_id = :course_id"),
                {"course_id": str(course_id)},
            ).scalar()
        return int(count or 0)

    def plan_status_counts(self, course_id: str) -> Dict[str, int]:
        with get_db_session() as session:
            rows = session.execute(
                text("""
                    SELECT status, COUNT(*) AS n
                    FROM question_plans
                    WHERE course_id = :course_id
                    GROUP BY status
                """),
                {"course_id": str(course_id)},
            ).mappings().fetchall()
        return {str(row["status"]): int(row["n"]) for row in rows}
