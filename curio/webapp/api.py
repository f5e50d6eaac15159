"""
FastAPI application for Curio segment processing.
Serves the orchestrator endpoints and runs the background segment poller.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.segment_processing.worker import SegmentProcessingWorker
from utils.config import get_cors_allowed_origins
from utils.logger import get_logger
from webapp.routers import health, segments

logger = get_logger(__name__)


def create_webapp_api(worker: Optional[SegmentProcessingWorker] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        worker: Optional poller instance; one is built from config when omitted.

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        poller = worker or SegmentProcessingWorker()
        app.state.segment_worker = poller
        await poller.start()
        try:
            yield
        finally:
            await poller.stop()

    app = FastAPI(
        title="Curio Segment Processing",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(segments.router)

    logger.info("Curio webapp API created")
    return app
