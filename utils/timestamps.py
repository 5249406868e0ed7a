"""
Timestamp parsing for heterogeneous Firestore documents.

Stored timestamps arrive as native datetimes (Firestore ``DatetimeWithNanoseconds``),
``{"seconds": ...}`` maps from JSON exports, epoch numbers, or ISO strings.
``parse_timestamp`` returns ``None`` for anything it cannot read so callers
decide whether to drop the record; ``timestamp_or_now`` is the legacy lossy
default that substitutes the current time.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def _aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Epoch millis if it looks too large for seconds.
        secs = value / 1000.0 if value > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(secs, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, dict):
        secs = value.get("seconds", value.get("_seconds"))
        if isinstance(secs, (int, float)) and not isinstance(secs, bool):
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            try:
                return datetime.fromtimestamp(secs + nanos / 1e9, tz=timezone.utc)
            except (OverflowError, OSError, ValueError, TypeError):
                return None
        return None
    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return _aware(datetime.fromisoformat(s))
        except ValueError:
            return None
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return _aware(to_datetime())
    return None


def timestamp_or_now(value: Any, now: Optional[datetime] = None) -> datetime:
    return parse_timestamp(value) or (now or datetime.now(timezone.utc))
