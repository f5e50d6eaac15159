"""
Background poller that ticks every segmented course still in progress.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional

from repositories.courses_repo import CoursesRepository
from services.segment_processing.orchestrator import SegmentOrchestrator
from utils.config import get_segment_poll_interval_seconds, is_segment_poller_enabled
from utils.logger import get_logger

logger = get_logger(__name__)


class SegmentProcessingWorker:
    def __init__(
        self,
        orchestrator: Optional[SegmentOrchestrator] = None,
        courses_repo: Optional[CoursesRepository] = None,
        enabled: Optional[bool] = None,
        poll_interval_seconds: Optional[int] = None,
        max_courses_per_poll: int = 50,
    ) -> None:
        self.enabled = is_segment_poller_enabled() if enabled is None else enabled
        self.poll_interval_seconds = poll_interval_seconds or get_segment_poll_interval_seconds()
        self.max_courses_per_poll = max_courses_per_poll
        self.orchestrator = orchestrator or SegmentOrchestrator()
        self.courses_repo = courses_repo or self.orchestrator.courses_repo
        self._stop_event = asyncio.Event()
        self._poll_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if not self.enabled:
            logger.info("Segment poller is disabled (SEGMENT_POLLER_ENABLED=false)")
            return
        if self._poll_task and not self._poll_task.done():
            return
        self._stop_event.clear()
        self._poll_task = asyncio.create_task(self._poll_loop(), name="segment-processing-poller")
        logger.info("Segment poller started (interval=%ss)", self.poll_interval_seconds)

    async def stop(self) -> None:
        if not self._poll_task:
            return
        self._stop_event.set()
        self._poll_task.cancel()
        try:
            await self._poll_task
        except asyncio.CancelledError:
            pass
        self._poll_task = None
        logger.info("Segment poller stopped")

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Segment poller error: %s", exc, exc_info=True)
            await asyncio.sleep(self.poll_interval_seconds)

    async def poll_once(self) -> Dict[str, str]:
        """Run one tick per open course; returns course_id -> tick status (or 'error')."""
        course_ids = await asyncio.to_thread(
            self.courses_repo.list_courses_with_open_segments,
            self.max_courses_per_poll,
        )
        results: Dict[str, str] = {}
        for course_id in course_ids:
            try:
                report = await asyncio.to_thread(self.orchestrator.tick, course_id)
                results[course_id] = str(report.get("status"))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Segment tick failed for course %s: %s", course_id, exc)
                results[course_id] = "error"
        return results
