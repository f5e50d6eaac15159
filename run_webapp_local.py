#!/usr/bin/env python3
"""
FastAPI webapp module for running with uvicorn.

Usage:
    uvicorn run_webapp_local:app --host 0.0.0.0 --port 8080

Environment Variables:
    DATABASE_URL (or DATABASE_URL_PROD / DATABASE_URL_STAGING with ENVIRONMENT)
    SERVICE_ROLE_KEY: bearer key required on write endpoints (open when unset)
    SEGMENT_GENERATOR_URL: segment generator endpoint
    SEGMENT_POLLER_ENABLED: run the background poller (default false)
"""

import sys
from pathlib import Path

# Add curio to path
sys.path.insert(0, str(Path(__file__).parent / "curio"))

from webapp.api import create_webapp_api  # noqa: E402
from utils.logger import get_logger  # noqa: E402

logger = get_logger(__name__)

# Create FastAPI app instance (exposed for uvicorn)
app = create_webapp_api()

logger.info("Curio segment processing API module loaded")
logger.info("  API docs: http://localhost:8080/api/docs")

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
