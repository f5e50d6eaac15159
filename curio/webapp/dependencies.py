"""
Shared dependencies for FastAPI routes.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException

from utils.config import get_service_role_key
from utils.logger import get_logger

logger = get_logger(__name__)


async def require_service_key(
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Guard write endpoints with `Authorization: Bearer <SERVICE_ROLE_KEY>`.
    Open when no key is configured (local development).
    """
    expected = get_service_role_key()
    if not expected:
        return
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing service authorization")
    if not hmac.compare_digest(authorization[7:], expected):
        logger.warning("Rejected request with invalid service key")
        raise HTTPException(status_code=401, detail="Invalid service authorization")
