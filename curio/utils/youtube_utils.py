"""
YouTube helpers: video id extraction and duration lookup through the YouTube Data API v3.
"""
import re
from typing import Optional

import requests

from utils.logger import get_logger

logger = get_logger(__name__)

_YOUTUBE_VIDEO_ID_PATTERNS = [
    r"(?:youtube\.com/watch\?(?:[^#\s]*&)?v=)([a-zA-Z0-9_-]{11})",
    r"(?:youtu\.be/)([a-zA-Z0-9_-]{11})",
    r"(?:youtube\.com/embed/)([a-zA-Z0-9_-]{11})",
]
_VIDEO_ID_RE = re.compile("|".join(f"(?:{p})" for p in _YOUTUBE_VIDEO_ID_PATTERNS))

_ISO8601_DURATION_RE = re.compile(r"^P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def extract_video_id(url_or_text: str) -> Optional[str]:
    """Extract YouTube video ID from a URL or text containing a YouTube link."""
    for m in _VIDEO_ID_RE.finditer(url_or_text or ""):
        for g in m.groups():
            if g:
                return g
    return None


def parse_iso8601_duration(duration: str) -> int:
    """'PT1H2M3S' -> 3723. Unparseable input yields 0."""
    m = _ISO8601_DURATION_RE.match((duration or "").strip())
    if not m:
        return 0
    days, hours, minutes, seconds = (int(g or 0) for g in m.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def get_video_duration_seconds(video_id: str, api_key: str, timeout_seconds: int = 10) -> Optional[int]:
    """
    Look up a video's duration with videos.list (part=contentDetails).

    Returns None when no key is configured, the API errors, or the video is missing.
    """
    if not api_key:
        logger.warning("YOUTUBE_API_KEY not set, cannot determine video duration")
        return None
    try:
        resp = requests.get(
            "https://www.googleapis.com/youtube/v3/videos",
            params={"id": video_id, "part": "contentDetails", "key": api_key},
            timeout=timeout_seconds,
        )
    except requests.RequestException as e:
        logger.error("YouTube API request failed for %s: %s", video_id, e)
        return None
    if resp.status_code != 200:
        logger.error("YouTube API error for %s: HTTP %s", video_id, resp.status_code)
        return None
    items = (resp.json() or {}).get("items") or []
    if not items:
        logger.error("YouTube video %s not found", video_id)
        return None
    duration = (items[0].get("contentDetails") or {}).get("duration") or ""
    seconds = parse_iso8601_duration(duration)
    return seconds or None
