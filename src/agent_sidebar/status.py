"""Resolve the status indicator shown next to a thread."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

STATUS_REVIEWING = "reviewing"
STATUS_PROCESSING = "processing"
STATUS_UNREAD = "unread"
STATUS_READY = "ready"


@dataclass(frozen=True)
class ThreadStatusFlags:
    is_processing: bool = False
    has_unread: bool = False
    is_reviewing: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ThreadStatusFlags":
        return cls(
            is_processing=bool(data.get("isProcessing", data.get("is_processing", False))),
            has_unread=bool(data.get("hasUnread", data.get("has_unread", False))),
            is_reviewing=bool(data.get("isReviewing", data.get("is_reviewing", False))),
        )


StatusEntry = Union[ThreadStatusFlags, Mapping[str, Any]]


def resolve_thread_status(thread_id: str, status_by_id: Mapping[str, StatusEntry]) -> str:
    """Return exactly one status label for a thread.

    Reviewing wins over processing, processing over unread; a thread with no
    flags set, or with no entry at all, is ``ready``.
    """
    flags = _coerce_flags(status_by_id.get(thread_id))
    if flags is None:
        return STATUS_READY
    if flags.is_reviewing:
        return STATUS_REVIEWING
    if flags.is_processing:
        return STATUS_PROCESSING
    if flags.has_unread:
        return STATUS_UNREAD
    return STATUS_READY


def _coerce_flags(entry: Optional[StatusEntry]) -> Optional[ThreadStatusFlags]:
    if entry is None:
        return None
    if isinstance(entry, ThreadStatusFlags):
        return entry
    if isinstance(entry, Mapping):
        return ThreadStatusFlags.from_dict(entry)
    return None
