"""Short relative-time labels for thread rows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from agent_sidebar.hierarchy import Thread

# Epoch values at or above this are milliseconds, below it seconds.
MILLISECOND_THRESHOLD = 1_000_000_000_000

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 365 * DAY


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Convert an epoch number or ISO 8601 string to an aware datetime.

    Args:
        value: Epoch seconds, epoch milliseconds, ISO string, or datetime.

    Returns:
        UTC datetime, or None when the value is missing or unparseable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        seconds = value / 1000 if value >= MILLISECOND_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

    return None


def format_relative_time_short(timestamp: Any, now: Optional[datetime] = None) -> Optional[str]:
    """Format how long ago ``timestamp`` was, e.g. ``5m`` or ``2d``."""

    dt = parse_timestamp(timestamp)
    if dt is None:
        return None

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    elapsed = max(0, int((current - dt).total_seconds()))

    if elapsed < MINUTE:
        return "now"
    if elapsed < HOUR:
        return f"{elapsed // MINUTE}m"
    if elapsed < DAY:
        return f"{elapsed // HOUR}h"
    if elapsed < WEEK:
        return f"{elapsed // DAY}d"
    if elapsed < 5 * WEEK:
        return f"{elapsed // WEEK}w"
    if elapsed < YEAR:
        return f"{max(1, elapsed // MONTH)}mo"
    return f"{elapsed // YEAR}y"


def thread_time_label(
    thread: Thread,
    last_agent_message_by_thread: Mapping[str, Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Label a row with the age of its latest agent message, else its update time."""

    last_message = last_agent_message_by_thread.get(thread.id) or {}
    timestamp = last_message.get("timestamp") or thread.updated_at
    if not timestamp:
        return None
    return format_relative_time_short(timestamp, now=now)
