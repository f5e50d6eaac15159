import pytest

from models.enums import SegmentStatus
from services.segment_processing.errors import (
    CourseNotFoundError,
    SegmentsAlreadyInitializedError,
)
from services.segment_processing.orchestrator import SegmentOrchestrator
from services.segment_processing.planner import SegmentPlanner, expected_questions, plan_segment_ranges
from services.segment_processing.publisher import CoursePublisher
from services.segment_processing.service import SegmentProcessingService

from segment_fakes import (
    COURSE_ID,
    FakeCoursesRepository,
    FakeGeneratorClient,
    FakeQuestionsRepository,
    FakeSegmentsRepository,
    FakeTranscriptsRepository,
    fixed_clock,
    make_course,
    make_segments,
)

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.mark.unit
def test_plan_ranges_even_split():
    ranges = plan_segment_ranges(900, 300)

    assert [(r.start_time, r.end_time) for r in ranges] == [(0, 300), (300, 600), (600, 900)]
    assert [r.title for r in ranges] == [
        "Part 1: 0:00 - 5:00",
        "Part 2: 5:00 - 10:00",
        "Part 3: 10:00 - 15:00",
    ]
    assert [r.expected_questions for r in ranges] == [5, 5, 5]


@pytest.mark.unit
def test_plan_ranges_merges_short_tail():
    ranges = plan_segment_ranges(615, 300)

    assert [(r.start_time, r.end_time) for r in ranges] == [(0, 300), (300, 615)]


@pytest.mark.unit
def test_plan_ranges_keeps_tail_at_threshold():
    ranges = plan_segment_ranges(620, 300)

    assert [(r.start_time, r.end_time) for r in ranges] == [(0, 300), (300, 600), (600, 620)]
    assert ranges[-1].expected_questions == 1


@pytest.mark.unit
def test_plan_ranges_titles_past_an_hour():
    ranges = plan_segment_ranges(3900, 1800)
    assert ranges[1].title == "Part 2: 30:00 - 1:00:00"
    assert ranges[-1].title == "Part 3: 1:00:00 - 1:05:00"


@pytest.mark.unit
def test_plan_ranges_rejects_non_positive_durations():
    with pytest.raises(ValueError):
        plan_segment_ranges(0, 300)
    with pytest.raises(ValueError):
        plan_segment_ranges(600, 0)


@pytest.mark.unit
def test_expected_questions_capped():
    assert expected_questions(0, 90, 5) == 2
    assert expected_questions(0, 600, 5) == 5
    assert expected_questions(0, 600, 3) == 3


def _service(course=None, segments=None, duration=1200, generator=None, questions=None):
    courses = FakeCoursesRepository(course or make_course(is_segmented=False, total_segments=1))
    repo = FakeSegmentsRepository(segments)
    generator = generator or FakeGeneratorClient()
    orchestrator = SegmentOrchestrator(
        courses_repo=courses,
        segments_repo=repo,
        questions_repo=questions or FakeQuestionsRepository(count=6),
        transcripts_repo=FakeTranscriptsRepository(),
        generator_client=generator,
        clock=fixed_clock,
        worker_id_factory=lambda: "worker-a",
    )
    planner = SegmentPlanner(orchestrator, duration_lookup=lambda video_id: duration)
    publisher = CoursePublisher(
        courses_repo=courses,
        segments_repo=repo,
        questions_repo=questions or FakeQuestionsRepository(count=6),
    )
    service = SegmentProcessingService(orchestrator=orchestrator, planner=planner, publisher=publisher)
    return service, courses, repo, generator


@pytest.mark.unit
def test_initialize_creates_segments_and_dispatches_first():
    service, courses, repo, generator = _service(duration=1200)

    result = service.initialize(COURSE_ID, VIDEO_URL)

    assert result["segmented"] is True
    assert result["total_segments"] == 4
    assert result["expected_questions"] == 20
    assert result["first_tick"]["triggered_segment"] == 0
    assert [p["segment_index"] for p in generator.payloads] == [0]
    assert courses.segmentation_updates == [(COURSE_ID, True, 4, 300)]
    statuses = [seg.status for seg in repo.list_segments(COURSE_ID)]
    assert statuses == [SegmentStatus.PROCESSING] + [SegmentStatus.PENDING] * 3


@pytest.mark.unit
def test_initialize_short_video_is_not_segmented():
    service, courses, repo, generator = _service(duration=240)

    result = service.initialize(COURSE_ID, VIDEO_URL)

    assert result["segmented"] is False
    assert result["video_duration"] == 240
    assert courses.segmentation_updates == [(COURSE_ID, False, 1, 300)]
    assert repo.count_segments(COURSE_ID) == 0
    assert generator.payloads == []


@pytest.mark.unit
def test_initialize_unknown_duration_assumes_thirty_minutes():
    service, _, _, _ = _service(duration=None)

    result = service.initialize(COURSE_ID, VIDEO_URL)

    assert result["video_duration"] == 1800
    assert result["total_segments"] == 6


@pytest.mark.unit
def test_initialize_rejects_bad_url():
    service, _, _, _ = _service()

    with pytest.raises(ValueError, match="Invalid YouTube URL"):
        service.initialize(COURSE_ID, "https://example.com/video")


@pytest.mark.unit
def test_initialize_missing_course():
    service, _, _, _ = _service()

    with pytest.raises(CourseNotFoundError):
        service.initialize("missing", VIDEO_URL)


@pytest.mark.unit
def test_initialize_twice_is_rejected():
    service, _, _, _ = _service(duration=900)
    service.initialize(COURSE_ID, VIDEO_URL)

    with pytest.raises(SegmentsAlreadyInitializedError):
        service.initialize(COURSE_ID, VIDEO_URL)


@pytest.mark.unit
def test_initialize_existing_segments_skips_duration_lookup():
    service, courses, _, generator = _service(segments=make_segments(["pending", "pending"]))
    lookups = []
    service.planner.duration_lookup = lambda video_id: lookups.append(video_id) or 1200

    with pytest.raises(SegmentsAlreadyInitializedError) as excinfo:
        service.initialize(COURSE_ID, VIDEO_URL)

    assert excinfo.value.existing == 2
    assert lookups == []
    assert courses.segmentation_updates == []
    assert generator.payloads == []


@pytest.mark.unit
def test_recover_runs_full_tick_when_incomplete():
    service, _, _, generator = _service(
        course=make_course(),
        segments=make_segments(["completed", "failed"]),
    )

    result = service.recover(COURSE_ID)

    assert result["message"] == "Recovery initiated"
    assert result["status_before"]["status"] == "in_progress"
    assert result["status_before"]["status_breakdown"] == {"completed": 1, "failed": 1}
    assert result["action_taken"]["triggered_segment"] == 1
    assert len(generator.payloads) == 1


@pytest.mark.unit
def test_recover_completed_course():
    service, _, _, generator = _service(
        course=make_course(),
        segments=make_segments(["completed", "completed"]),
    )

    result = service.recover(COURSE_ID)

    assert result["message"] == "Course already completed"
    assert result["status"]["status"] == "completed"
    assert generator.payloads == []


@pytest.mark.unit
def test_list_segments_serializes_status():
    service, _, _, _ = _service(course=make_course(), segments=make_segments(["completed", "pending"]))

    rows = service.list_segments(COURSE_ID)

    assert [row["status"] for row in rows] == ["completed", "pending"]
    assert rows[0]["id"] == "seg-0"

    with pytest.raises(CourseNotFoundError):
        service.list_segments("missing")
