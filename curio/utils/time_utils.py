from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """
    Normalize a timestamp column value to an aware UTC datetime.

    psycopg2 returns aware datetimes for timestamptz; fixtures and JSON payloads use ISO strings.
    Naive values are treated as UTC. Unparseable strings yield None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_seconds_for_display(seconds: Union[int, float]) -> str:
    """Return '4:05' for short offsets and '1:02:05' past the hour."""
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
