import pytest
import requests

from models.enums import PlanningStatus, SegmentStatus
from services.segment_processing.constants import STUCK_SEGMENT_ERROR_MESSAGE
from services.segment_processing.errors import (
    CourseNotFoundError,
    SegmentDispatchError,
    SegmentsNotFoundError,
)
from services.segment_processing.generator_client import SegmentGeneratorClient
from services.segment_processing.orchestrator import SegmentOrchestrator

from segment_fakes import (
    COURSE_ID,
    FakeCoursesRepository,
    FakeGeneratorClient,
    FakeQuestionsRepository,
    FakeSegmentsRepository,
    FakeTranscriptsRepository,
    dispatch_error,
    fixed_clock,
    make_course,
    make_segments,
    minutes_ago,
)


def _build(segments, course=None, generator=None, questions=None, transcripts=None):
    courses = FakeCoursesRepository(course or make_course())
    repo = FakeSegmentsRepository(segments)
    generator = generator or FakeGeneratorClient()
    orchestrator = SegmentOrchestrator(
        courses_repo=courses,
        segments_repo=repo,
        questions_repo=questions or FakeQuestionsRepository(count=12),
        transcripts_repo=transcripts or FakeTranscriptsRepository(),
        generator_client=generator,
        clock=fixed_clock,
        worker_id_factory=lambda: "worker-a",
    )
    return orchestrator, courses, repo, generator


@pytest.mark.unit
def test_scenario_a_dispatches_first_pending_segment():
    orchestrator, _, repo, generator = _build(make_segments(["pending", "pending", "pending"]))

    report = orchestrator.tick(COURSE_ID)

    assert report["status"] == "processing"
    assert report["triggered_segment"] == 0
    assert report["segments_total"] == 3
    assert report["segments_completed"] == 0
    assert len(generator.payloads) == 1
    payload = generator.payloads[0]
    assert payload["segment_id"] == "seg-0"
    assert payload["previous_segment_context"] is None
    assert payload["total_segments"] == 3
    assert repo.get("seg-0").status is SegmentStatus.PROCESSING
    assert repo.get("seg-0").worker_id == "worker-a"


@pytest.mark.unit
def test_scenario_b_reaps_stuck_segment_and_redispatches_it():
    segments = make_segments(["completed", "processing", "pending"])
    segments[1].processing_started_at = minutes_ago(10)
    orchestrator, _, repo, generator = _build(segments)

    report = orchestrator.tick(COURSE_ID)

    assert repo.mark_failed_calls == [(["seg-1"], STUCK_SEGMENT_ERROR_MESSAGE)]
    assert report["status"] == "processing"
    assert report["triggered_segment"] == 1
    assert [p["segment_index"] for p in generator.payloads] == [1]
    seg = repo.get("seg-1")
    assert seg.status is SegmentStatus.PROCESSING
    assert seg.retry_count == 1


@pytest.mark.unit
def test_scenario_c_completed_course_backfills_generic_description():
    course = make_course(description="Interactive course from https://youtu.be/dQw4w9WgXcQ")
    transcripts = FakeTranscriptsRepository(summary="A tour of linear algebra basics.")
    orchestrator, courses, _, generator = _build(
        make_segments(["completed", "completed", "completed"]),
        course=course,
        transcripts=transcripts,
    )

    report = orchestrator.tick(COURSE_ID)

    assert report == {
        "success": True,
        "status": "completed",
        "segments_total": 3,
        "segments_completed": 3,
        "questions_total": 12,
        "course_published": False,
    }
    assert courses.courses[COURSE_ID].description == "A tour of linear algebra basics."
    assert courses.published_ids == []
    assert generator.payloads == []


@pytest.mark.unit
def test_scenario_d_check_only_reports_breakdown_without_dispatch():
    orchestrator, _, repo, generator = _build(make_segments(["pending", "pending"]))

    report = orchestrator.tick(COURSE_ID, check_only=True)

    assert report["status"] == "in_progress"
    assert report["status_breakdown"] == {"pending": 2}
    assert report["segments_completed"] == 0
    assert generator.payloads == []
    assert repo.claims == []


@pytest.mark.unit
def test_scenario_e_fresh_processing_segment_means_waiting():
    segments = make_segments(["completed", "processing", "pending"])
    segments[1].processing_started_at = minutes_ago(2)
    orchestrator, _, repo, generator = _build(segments)

    report = orchestrator.tick(COURSE_ID)

    assert report["status"] == "waiting"
    assert report["message"] == "No segments ready for processing"
    assert report["segments_completed"] == 1
    assert generator.payloads == []
    assert repo.mark_failed_calls == []


@pytest.mark.unit
def test_segment_after_planned_predecessor_is_eligible():
    segments = make_segments(["processing", "pending"])
    segments[0].processing_started_at = minutes_ago(1)
    segments[0].planning_status = PlanningStatus.COMPLETED
    segments[0].cumulative_key_concepts = ["vectors", "span"]
    orchestrator, _, _, generator = _build(segments)

    report = orchestrator.tick(COURSE_ID)

    assert report["triggered_segment"] == 1
    context = generator.payloads[0]["previous_segment_context"]
    assert context["keyConcepts"] == ["vectors", "span"]
    assert context["segmentIndex"] == 0
    assert context["totalProcessedDuration"] == 300


@pytest.mark.unit
def test_one_dispatch_per_tick_even_with_many_eligible():
    # Only index 0 has no predecessor; failed index 2 stays blocked behind pending index 1.
    orchestrator, _, _, generator = _build(make_segments(["pending", "pending", "failed"]))

    orchestrator.tick(COURSE_ID)

    assert len(generator.payloads) == 1


@pytest.mark.unit
def test_completed_course_never_dispatches_again():
    orchestrator, _, repo, generator = _build(make_segments(["completed", "completed"]))

    for _ in range(3):
        assert orchestrator.tick(COURSE_ID)["status"] == "completed"

    assert generator.payloads == []
    assert repo.claims == []


@pytest.mark.unit
def test_lost_claim_reports_waiting_without_posting():
    orchestrator, _, repo, generator = _build(make_segments(["pending", "pending"]))
    repo.steal_claims = True

    report = orchestrator.tick(COURSE_ID)

    assert report["status"] == "waiting"
    assert report["message"] == "Segment 0 already claimed by another worker"
    assert generator.payloads == []
    assert repo.get("seg-0").worker_id == "other-worker"


@pytest.mark.unit
def test_second_tick_does_not_double_dispatch_claimed_segment():
    orchestrator, _, _, generator = _build(make_segments(["pending", "pending"]))

    first = orchestrator.tick(COURSE_ID)
    second = orchestrator.tick(COURSE_ID)

    assert first["status"] == "processing"
    assert second["status"] == "waiting"
    assert len(generator.payloads) == 1


@pytest.mark.unit
def test_dispatch_failure_releases_claim_and_raises():
    generator = FakeGeneratorClient(error=dispatch_error())
    orchestrator, _, repo, _ = _build(make_segments(["pending", "pending"]), generator=generator)

    with pytest.raises(SegmentDispatchError, match="Failed to trigger segment"):
        orchestrator.tick(COURSE_ID)

    seg = repo.get("seg-0")
    assert seg.status is SegmentStatus.FAILED
    assert seg.worker_id is None
    assert repo.releases == [("seg-0", "worker-a", "Failed to trigger segment: boom")]


class _TimingOutSession:
    def __init__(self):
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append(json)
        raise requests.ReadTimeout("read timed out")


@pytest.mark.unit
def test_dispatch_timeout_keeps_claim_and_is_not_reposted():
    session = _TimingOutSession()
    generator = SegmentGeneratorClient(
        url="https://generator.test/process-video-segment",
        api_key="service-key",
        timeout_seconds=60,
        session=session,
    )
    orchestrator, _, repo, _ = _build(make_segments(["pending", "pending"]), generator=generator)

    with pytest.raises(SegmentDispatchError) as excinfo:
        orchestrator.tick(COURSE_ID)

    assert excinfo.value.timed_out is True
    seg = repo.get("seg-0")
    assert seg.status is SegmentStatus.PROCESSING
    assert seg.worker_id == "worker-a"
    assert repo.releases == []

    report = orchestrator.tick(COURSE_ID)

    assert report["status"] == "waiting"
    assert len(session.posts) == 1


@pytest.mark.unit
def test_reap_write_failure_is_swallowed_and_stale_segment_not_redispatched():
    segments = make_segments(["completed", "processing"])
    segments[1].processing_started_at = minutes_ago(10)
    orchestrator, _, repo, generator = _build(segments)
    repo.fail_writes = True

    report = orchestrator.tick(COURSE_ID)

    assert report["status"] == "waiting"
    assert generator.payloads == []
    assert repo.get("seg-1").status is SegmentStatus.PROCESSING


@pytest.mark.unit
def test_missing_course_raises():
    orchestrator, _, _, _ = _build(make_segments(["pending"]))

    with pytest.raises(CourseNotFoundError):
        orchestrator.tick("missing-course")


@pytest.mark.unit
def test_course_without_segments_raises():
    orchestrator, _, _, _ = _build([])

    with pytest.raises(SegmentsNotFoundError):
        orchestrator.tick(COURSE_ID)


@pytest.mark.unit
def test_published_course_skips_description_backfill():
    course = make_course(published=True)
    transcripts = FakeTranscriptsRepository(summary="Summary")
    orchestrator, courses, _, _ = _build(
        make_segments(["completed"]),
        course=course,
        transcripts=transcripts,
    )

    report = orchestrator.tick(COURSE_ID)

    assert report["course_published"] is True
    assert transcripts.calls == 0
    assert courses.description_updates == []
