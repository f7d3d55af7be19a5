"""Tests for relative time labels."""

from datetime import datetime, timedelta, timezone

from agent_sidebar.hierarchy import Thread
from agent_sidebar.time_labels import (
    format_relative_time_short,
    parse_timestamp,
    thread_time_label,
)

NOW = datetime(2025, 11, 3, 12, 0, 0, tzinfo=timezone.utc)


def _ago(**kwargs):
    return NOW - timedelta(**kwargs)


def test_parse_epoch_seconds_and_milliseconds():
    seconds = int(NOW.timestamp())
    assert parse_timestamp(seconds) == NOW
    assert parse_timestamp(seconds * 1000) == NOW


def test_parse_iso_string():
    assert parse_timestamp("2025-11-03T12:00:00Z") == NOW


def test_parse_rejects_garbage():
    assert parse_timestamp(None) is None
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(True) is None


def test_short_labels():
    assert format_relative_time_short(_ago(seconds=30), now=NOW) == "now"
    assert format_relative_time_short(_ago(minutes=5), now=NOW) == "5m"
    assert format_relative_time_short(_ago(hours=3), now=NOW) == "3h"
    assert format_relative_time_short(_ago(days=2), now=NOW) == "2d"
    assert format_relative_time_short(_ago(days=15), now=NOW) == "2w"
    assert format_relative_time_short(_ago(days=90), now=NOW) == "3mo"
    assert format_relative_time_short(_ago(days=800), now=NOW) == "2y"


def test_future_timestamp_is_now():
    assert format_relative_time_short(NOW + timedelta(hours=1), now=NOW) == "now"


def test_thread_label_prefers_last_agent_message():
    thread = Thread(id="t-1", name="Plan", updated_at="2025-11-01T12:00:00Z")
    last_messages = {"t-1": {"text": "done", "timestamp": int(_ago(minutes=10).timestamp() * 1000)}}

    assert thread_time_label(thread, last_messages, now=NOW) == "10m"
    assert thread_time_label(thread, {}, now=NOW) == "2d"


def test_thread_without_timestamp_has_no_label():
    thread = Thread(id="t-1", name="Plan")
    assert thread_time_label(thread, {}, now=NOW) is None


def test_zero_timestamp_falls_back_to_update_time():
    thread = Thread(id="t-1", name="Plan", updated_at="2025-11-01T12:00:00Z")
    assert thread_time_label(thread, {"t-1": {"timestamp": 0}}, now=NOW) == "2d"

    undated = Thread(id="t-2", name="Draft", updated_at=0)
    assert thread_time_label(undated, {"t-2": {"timestamp": 0}}, now=NOW) is None
