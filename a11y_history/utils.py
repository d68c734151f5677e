"""Small helpers shared by the store, the comparison engine and the CLI."""

import json
import math
import uuid
from datetime import UTC, datetime, tzinfo
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel

from a11y_history.consts import MAX_LABEL_LENGTH


def generate_scan_id() -> str:
    """Generate a unique scan identifier (UUID4)."""
    return str(uuid.uuid4())


def _to_datetime(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _ago(count: int, unit: str) -> str:
    return f"{count} {unit if count == 1 else unit + 's'} ago"


def format_relative_time(value: str | datetime, now: datetime | None = None) -> str:
    """Format a timestamp relative to now, e.g. "2 hours ago".

    Args:
        value: ISO 8601 string or datetime.
        now: Reference time (defaults to current UTC time).

    Returns:
        Human-readable string, or "unknown" if the timestamp cannot be parsed.
    """
    try:
        dt = _to_datetime(value)
    except (TypeError, ValueError):
        return "unknown"

    now = now or datetime.now(UTC)
    diff_seconds = int((now - dt).total_seconds())
    diff_minutes = diff_seconds // 60
    diff_hours = diff_minutes // 60
    diff_days = diff_hours // 24

    if diff_seconds < 60:
        return "just now"
    if diff_minutes < 60:
        return _ago(diff_minutes, "minute")
    if diff_hours < 24:
        return _ago(diff_hours, "hour")
    if diff_days < 7:
        return _ago(diff_days, "day")
    if diff_days < 30:
        return _ago(diff_days // 7, "week")
    if diff_days < 365:
        return _ago(diff_days // 30, "month")
    return _ago(diff_days // 365, "year")


def format_full_date(value: str | datetime, tz: tzinfo | None = None) -> str:
    """Format a timestamp as e.g. "Dec 15, 2023 at 3:45 PM".

    Args:
        value: ISO 8601 string or datetime.
        tz: Display timezone. None uses the local timezone.

    Returns:
        Formatted string, or "Invalid date" if the timestamp cannot be parsed.
    """
    try:
        dt = _to_datetime(value).astimezone(tz)
    except (TypeError, ValueError, OverflowError):
        return "Invalid date"

    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{dt:%b} {dt.day}, {dt.year} at {hour}:{dt:%M} {meridiem}"


def format_duration(ms: int | float) -> str:
    """Format milliseconds as "2m 30s" or "45s"."""
    seconds = int(ms // 1000)
    minutes, remaining = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{remaining}s"


def truncate_url(url: str, max_length: int = 50) -> str:
    """Truncate a URL for display, keeping the host visible."""
    if len(url) <= max_length:
        return url

    parsed = urlparse(url)
    domain = parsed.hostname
    if not parsed.scheme or not domain:
        return f"{url[: max_length - 3]}..."

    path = parsed.path or "/"
    if len(domain) > max_length - 3:
        return f"{domain[: max_length - 3]}..."

    remaining = max_length - len(domain) - 3
    if len(path) > remaining:
        return f"{domain}{path[:remaining]}..."
    return f"{domain}{path}"


def to_compact_json(obj: Any) -> str:
    """Serialize to compact JSON (no whitespace, unicode kept as-is)."""
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def utf16_size(text: str) -> int:
    """Size of a string at two bytes per UTF-16 code unit."""
    return len(text.encode("utf-16-le"))


def estimate_object_size(obj: Any) -> int:
    """Estimate the stored size of an object in bytes.

    Two bytes per UTF-16 code unit of the compact JSON form, matching the
    cost model of browser local storage.
    """
    return utf16_size(to_compact_json(obj))


def sanitize_label(value: str) -> str:
    """Trim a user-supplied label and cap its length."""
    return value.strip()[:MAX_LABEL_LENGTH]


def is_valid_url(url: str) -> bool:
    """Check that a URL is absolute http(s) with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up; the built-in ``round()`` rounds halves to even."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor
