"""
HTTP client for the external segment generator.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from services.segment_processing.errors import SegmentDispatchError
from utils.config import (
    get_segment_generator_timeout_seconds,
    get_segment_generator_url,
    get_service_role_key,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class SegmentGeneratorClient:
    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url if url is not None else get_segment_generator_url()
        self.api_key = api_key if api_key is not None else get_service_role_key()
        self.timeout_seconds = timeout_seconds or get_segment_generator_timeout_seconds()
        self.session = session or requests.Session()

    def trigger(self, payload: Dict[str, Any]) -> Any:
        """
        POST one segment job and return the generator's acknowledgment body.

        Raises SegmentDispatchError on transport errors and non-2xx responses. A read
        timeout is raised with `timed_out=True`.
        """
        if not self.url:
            raise SegmentDispatchError("Segment generator URL is not configured")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = self.session.post(
                self.url,
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.ReadTimeout as exc:
            # The request reached the generator; it may still be working on it.
            raise SegmentDispatchError(
                f"Timed out waiting for segment generator: {exc}", timed_out=True
            ) from exc
        except requests.RequestException as exc:
            raise SegmentDispatchError(f"Failed to trigger segment: {exc}") from exc

        body = _response_body(response)
        if not response.ok:
            detail = body.get("error") if isinstance(body, dict) else None
            logger.error(
                "Segment generator rejected segment %s (HTTP %s): %s",
                payload.get("segment_index"),
                response.status_code,
                body,
            )
            raise SegmentDispatchError(
                f"Failed to trigger segment: {detail or response.status_code}",
                status_code=response.status_code,
                response_body=body,
            )
        return body


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}
