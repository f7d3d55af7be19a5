"""Organize flat thread lists into depth-annotated sidebar rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_VISIBLE_ROOTS = 3


@dataclass(frozen=True)
class Thread:
    """Read-only snapshot of a conversation thread."""

    id: str
    name: str = ""
    updated_at: Optional[Any] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Thread":
        """Build a thread from a camelCase or snake_case mapping."""

        thread_id = data.get("id")
        if not thread_id:
            raise ValueError("Thread record is missing an id")
        updated_at = data.get("updatedAt", data.get("updated_at"))
        return cls(id=str(thread_id), name=str(data.get("name") or ""), updated_at=updated_at)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "updatedAt": self.updated_at}


@dataclass(frozen=True)
class ThreadRow:
    thread: Thread
    depth: int


@dataclass(frozen=True)
class ThreadRows:
    """Rows for one thread list plus the signals needed for truncation."""

    rows: List[ThreadRow] = field(default_factory=list)
    total_roots: int = 0
    has_more_roots: bool = False


def _valid_parent(thread: Thread, parent_by_id: Mapping[str, str], thread_ids: set) -> Optional[str]:
    parent_id = parent_by_id.get(thread.id)
    if parent_id and parent_id != thread.id and parent_id in thread_ids:
        return parent_id
    return None


def build_thread_rows(
    threads: Sequence[Thread],
    parent_by_id: Mapping[str, str],
    expanded: bool,
    visible_root_limit: int = DEFAULT_VISIBLE_ROOTS,
) -> ThreadRows:
    """Return threads in display order with their nesting depth.

    Args:
        threads: Threads of a single list owner, in the order they should appear.
        parent_by_id: Mapping of thread id to parent thread id. Links that point
            at the thread itself or at an id outside ``threads`` are ignored and
            the thread is treated as a root.
        expanded: When False only the first ``visible_root_limit`` roots (and
            all of their descendants) are returned.
        visible_root_limit: Number of roots shown while collapsed.

    Returns:
        ThreadRows with pre-order rows, the root count, and whether roots were
        left out.
    """
    threads = _first_by_id(threads)
    thread_ids = {thread.id for thread in threads}
    children_by_parent: Dict[str, List[Thread]] = {}
    roots: List[Thread] = []

    for thread in threads:
        parent_id = _valid_parent(thread, parent_by_id, thread_ids)
        if parent_id:
            children_by_parent.setdefault(parent_id, []).append(thread)
        else:
            roots.append(thread)

    visible_root_count = len(roots) if expanded else visible_root_limit
    rows: List[ThreadRow] = []
    visited: set = set()

    for root in roots[:visible_root_count]:
        stack = [(root, 0)]
        while stack:
            thread, depth = stack.pop()
            if thread.id in visited:
                continue
            visited.add(thread.id)
            rows.append(ThreadRow(thread=thread, depth=depth))
            children = children_by_parent.get(thread.id, [])
            # Reversed so the first child is popped first.
            stack.extend((child, depth + 1) for child in reversed(children))

    if expanded or len(roots) <= visible_root_count:
        _warn_unreachable(threads, visited)

    return ThreadRows(
        rows=rows,
        total_roots=len(roots),
        has_more_roots=len(roots) > visible_root_count,
    )


def _first_by_id(threads: Sequence[Thread]) -> List[Thread]:
    """Drop repeated ids, keeping the first occurrence."""

    seen: set = set()
    unique: List[Thread] = []
    for thread in threads:
        if thread.id in seen:
            continue
        seen.add(thread.id)
        unique.append(thread)
    return unique


def _warn_unreachable(threads: Sequence[Thread], visited: set) -> None:
    """Log threads that no root leads to; only parent-link cycles cause this."""

    orphaned = [thread.id for thread in threads if thread.id not in visited]
    if orphaned:
        logger.warning(f"Skipping {len(orphaned)} thread(s) on a parent cycle: {', '.join(orphaned)}")
