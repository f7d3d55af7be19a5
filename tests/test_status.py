"""Tests for thread status resolution and list expansion."""

from agent_sidebar.expansion import ExpansionState
from agent_sidebar.status import ThreadStatusFlags, resolve_thread_status


def test_missing_entry_is_ready():
    assert resolve_thread_status("t-1", {}) == "ready"


def test_no_flags_is_ready():
    assert resolve_thread_status("t-1", {"t-1": ThreadStatusFlags()}) == "ready"


def test_processing_beats_unread():
    status = {"t-1": ThreadStatusFlags(is_processing=True, has_unread=True)}
    assert resolve_thread_status("t-1", status) == "processing"


def test_reviewing_beats_processing():
    status = {"t-1": ThreadStatusFlags(is_processing=True, is_reviewing=True)}
    assert resolve_thread_status("t-1", status) == "reviewing"


def test_unread_only():
    assert resolve_thread_status("t-1", {"t-1": {"hasUnread": True}}) == "unread"


def test_camel_case_mapping_entries():
    status = {"t-1": {"isProcessing": True, "hasUnread": False, "isReviewing": False}}
    assert resolve_thread_status("t-1", status) == "processing"


def test_expansion_defaults_to_collapsed():
    state = ExpansionState()
    assert state.is_expanded("ws-1") is False


def test_expansion_toggle_twice_restores_state():
    state = ExpansionState()

    assert state.toggle("ws-1") is True
    assert state.is_expanded("ws-1") is True
    assert state.toggle("ws-1") is False
    assert state.is_expanded("ws-1") is False


def test_expansion_is_tracked_per_owner():
    state = ExpansionState(["ws-1"])
    state.toggle("wt-1")

    assert state.expanded_ids() == {"ws-1", "wt-1"}
    assert state.is_expanded("ws-2") is False
