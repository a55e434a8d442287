# clipvault/utils/time_parser.py
"""
Helpers for the timestamps and durations carried by uploaded media.

Uploaders stamp each object with:
  captured = RFC 3339 capture time, e.g. 2017-05-18T20:55:40-07:00
  duration = Go-style duration string, e.g. 1m30.5s
and name clips after their capture time (20170518205540.mp4) in camera-local time.
"""

import math
import re
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clipvault.utils.logger import get_logger

logger = get_logger(__name__)

CLIP_TIME_FORMAT = "%Y%m%d%H%M%S"
_CLIP_STEM_RE = re.compile(r"^\d{14}$")
_FRACTION_RE = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,   # U+00B5
    "μs": 1e-6,   # U+03BC
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive values read back from the database."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_utc_naive(dt: datetime) -> datetime:
    """Normalise to naive UTC for storage (SQLite drops offsets)."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Load a named zone, falling back to the process's local zone."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.warning(f"Time zone {name!r} unavailable ({e}); using local time")
    return datetime.now().astimezone().tzinfo


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp. Values without an offset are rejected.
    Fractions of any length (nanosecond stamps carry 9 digits) are cut
    or padded to microseconds before parsing.
    """
    if not value:
        return None
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return None
    return dt


def parse_clip_time(stem: str, tz: tzinfo) -> Optional[datetime]:
    """Parse a YYYYMMDDhhmmss filename stem as a wall-clock time in tz."""
    if not _CLIP_STEM_RE.match(stem or ""):
        return None
    try:
        return datetime.strptime(stem, CLIP_TIME_FORMAT).replace(tzinfo=tz)
    except ValueError:
        return None


def parse_capture_time(metadata: dict, stem: str, tz: tzinfo) -> Optional[datetime]:
    """Prefer the `captured` metadata value, then the filename stem."""
    return parse_rfc3339(metadata.get("captured")) or parse_clip_time(stem, tz)


def parse_duration(value: Optional[str]) -> Optional[float]:
    """
    Parse a duration into seconds.
    Accepts Go duration strings ("1m30.5s", "45s", "1h2m") and bare seconds ("12.5").
    Returns None for missing, malformed or negative values.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        return seconds if math.isfinite(seconds) and seconds >= 0 else None

    if text.startswith("+"):
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            return None
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        return None
    return total


def format_age(since: datetime, now: Optional[datetime] = None) -> str:
    """Human readable age, e.g. '1h05m12s'."""
    delta = (now or utcnow()) - since
    total = max(int(delta.total_seconds()), 0)
    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{seconds:02d}s"
    if minutes:
        return f"{minutes}m{seconds:02d}s"
    return f"{seconds}s"
