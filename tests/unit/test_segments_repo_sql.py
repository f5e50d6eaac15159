import json
from datetime import datetime, timezone

import pytest

import repositories.courses_repo as courses_repo_module
import repositories.segments_repo as segments_repo_module
from models.enums import PlanningStatus, SegmentStatus
from models.models import SegmentRange
from repositories.courses_repo import CoursesRepository
from repositories.segments_repo import SegmentsRepository
from services.segment_processing.errors import InvalidSegmentTransition, SegmentsAlreadyInitializedError


class _FakeResult:
    def __init__(self, rows=None, rowcount=0, scalar=None):
        self._rows = rows or []
        self.rowcount = rowcount
        self._scalar = scalar

    def mappings(self):
        return self

    def fetchall(self):
        return self._rows

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def scalar(self):
        return self._scalar


class _FakeSession:
    def __init__(self, results=None):
        self.calls = []
        self._results = list(results or [])

    def execute(self, statement, params=None):
        sql = statement.text if hasattr(statement, "text") else str(statement)
        self.calls.append((sql, params or {}))
        if self._results:
            return self._results.pop(0)
        return _FakeResult()


class _FakeSessionContext:
    def __init__(self, session):
        self._session = session

    def __enter__(self):
        return self._session

    def __exit__(self, exc_type, exc, tb):
        return False


def _patch_session(monkeypatch, module, session):
    monkeypatch.setattr(module, "get_db_session", lambda: _FakeSessionContext(session))


@pytest.mark.unit
def test_update_segments_guards_status_with_allowed_sources(monkeypatch):
    session = _FakeSession([_FakeResult(rowcount=2)])
    _patch_session(monkeypatch, segments_repo_module, session)

    affected = SegmentsRepository().update_segments(
        ["a", "b"],
        {"status": SegmentStatus.FAILED, "error_message": "timeout"},
    )

    assert affected == 2
    sql, params = session.calls[0]
    assert "UPDATE course_segments" in sql
    assert "status IN :source_statuses" in sql
    assert params["source_statuses"] == ["processing"]
    assert params["status"] == "failed"
    assert params["segment_ids"] == ["a", "b"]


@pytest.mark.unit
def test_update_segments_status_sources(monkeypatch):
    session = _FakeSession()
    _patch_session(monkeypatch, segments_repo_module, session)

    SegmentsRepository().update_segments(["a"], {"status": "completed"})
    assert session.calls[0][1]["source_statuses"] == ["processing"]

    SegmentsRepository().update_segments(["a"], {"status": SegmentStatus.PROCESSING})
    assert session.calls[1][1]["source_statuses"] == ["failed", "pending"]

    with pytest.raises(InvalidSegmentTransition):
        SegmentsRepository().update_segments(["a"], {"status": "pending"})


@pytest.mark.unit
def test_update_segments_rejects_unknown_columns(monkeypatch):
    session = _FakeSession()
    _patch_session(monkeypatch, segments_repo_module, session)

    with pytest.raises(ValueError, match="retry_count"):
        SegmentsRepository().update_segments(["a"], {"retry_count": 3})
    assert session.calls == []


@pytest.mark.unit
def test_update_segments_empty_batch_is_noop(monkeypatch):
    session = _FakeSession()
    _patch_session(monkeypatch, segments_repo_module, session)

    assert SegmentsRepository().update_segments([], {"status": "failed"}) == 0
    assert session.calls == []


@pytest.mark.unit
def test_claim_segment_is_conditional(monkeypatch):
    session = _FakeSession([_FakeResult(rowcount=1), _FakeResult(rowcount=0)])
    _patch_session(monkeypatch, segments_repo_module, session)
    repo = SegmentsRepository()

    assert repo.claim_segment("seg-1", "worker-a") is True
    assert repo.claim_segment("seg-1", "worker-b") is False

    sql, params = session.calls[0]
    assert "status IN :claimable" in sql
    assert "retry_count = retry_count + CASE WHEN status = 'failed'" in sql
    assert params["claimable"] == ["failed", "pending"]
    assert params["worker_id"] == "worker-a"


@pytest.mark.unit
def test_release_claim_matches_owner(monkeypatch):
    session = _FakeSession([_FakeResult(rowcount=1)])
    _patch_session(monkeypatch, segments_repo_module, session)

    assert SegmentsRepository().release_claim("seg-1", "worker-a", "boom") is True
    sql, params = session.calls[0]
    assert "AND worker_id = :worker_id" in sql
    assert "AND status = 'processing'" in sql
    assert params["error_message"] == "boom"


@pytest.mark.unit
def test_list_segments_maps_rows(monkeypatch):
    started = datetime(2026, 3, 1, 11, 50, tzinfo=timezone.utc)
    row = {
        "id": "seg-0",
        "course_id": "course-1",
        "segment_index": 0,
        "start_time": 0,
        "end_time": 300,
        "title": "Part 1: 0:00 - 5:00",
        "status": "processing",
        "planning_status": "completed",
        "processing_started_at": started,
        "processing_completed_at": None,
        "worker_id": "w",
        "error_message": None,
        "cumulative_key_concepts": json.dumps(["limits"]),
        "questions_count": 2,
        "retry_count": 1,
    }
    other = dict(row, id="seg-1", segment_index=1, status="pending", planning_status="transcribing",
                 processing_started_at="2026-03-01T11:55:00Z", cumulative_key_concepts=None)
    session = _FakeSession([_FakeResult(rows=[row, other])])
    _patch_session(monkeypatch, segments_repo_module, session)

    segments = SegmentsRepository().list_segments("course-1")

    assert "ORDER BY segment_index ASC" in session.calls[0][0]
    first, second = segments
    assert first.status is SegmentStatus.PROCESSING
    assert first.planning_status is PlanningStatus.COMPLETED
    assert first.processing_started_at == started
    assert first.cumulative_key_concepts == ["limits"]
    assert second.planning_status is None
    assert second.processing_started_at == datetime(2026, 3, 1, 11, 55, tzinfo=timezone.utc)


@pytest.mark.unit
def test_create_segments_refuses_existing(monkeypatch):
    session = _FakeSession([_FakeResult(scalar=3)])
    _patch_session(monkeypatch, segments_repo_module, session)

    with pytest.raises(SegmentsAlreadyInitializedError):
        SegmentsRepository().create_segments("course-1", [SegmentRange(0, 0, 300, "Part 1")])
    assert len(session.calls) == 1


@pytest.mark.unit
def test_create_segments_inserts_pending_rows(monkeypatch):
    session = _FakeSession([_FakeResult(scalar=0)])
    _patch_session(monkeypatch, segments_repo_module, session)
    ranges = [SegmentRange(0, 0, 300, "Part 1"), SegmentRange(1, 300, 420, "Part 2")]

    created = SegmentsRepository().create_segments("course-1", ranges)

    inserts = [call for call in session.calls if "INSERT INTO course_segments" in call[0]]
    assert len(inserts) == 2
    assert "'pending'" in inserts[0][0]
    assert [seg.segment_index for seg in created] == [0, 1]
    assert all(seg.status is SegmentStatus.PENDING for seg in created)
    assert created[0].id == inserts[0][1]["id"]


@pytest.mark.unit
def test_list_courses_with_open_segments(monkeypatch):
    session = _FakeSession([_FakeResult(rows=[("c-1",), ("c-2",)])])
    _patch_session(monkeypatch, courses_repo_module, session)

    assert CoursesRepository().list_courses_with_open_segments(limit=10) == ["c-1", "c-2"]
    sql, params = session.calls[0]
    assert "s.status <> 'completed'" in sql
    assert params == {"limit": 10}


@pytest.mark.unit
def test_get_course_missing(monkeypatch):
    session = _FakeSession([_FakeResult(rows=[])])
    _patch_session(monkeypatch, courses_repo_module, session)

    assert CoursesRepository().get_course("nope") is None
