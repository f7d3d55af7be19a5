"""Assemble the sidebar view model from workspace and thread snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from agent_sidebar.collapsed_groups import CollapsedGroupStore
from agent_sidebar.config import SidebarConfig
from agent_sidebar.expansion import ExpansionState
from agent_sidebar.hierarchy import Thread, build_thread_rows
from agent_sidebar.pagination import PaginationTracker
from agent_sidebar.status import StatusEntry, resolve_thread_status
from agent_sidebar.time_labels import thread_time_label

KIND_MAIN = "main"
KIND_WORKTREE = "worktree"

MORE_LABEL = "More..."
LESS_LABEL = "Show less"
LOAD_OLDER_LABEL = "Load older..."
LOADING_LABEL = "Loading..."


@dataclass(frozen=True)
class WorkspaceInfo:
    id: str
    name: str
    kind: str = KIND_MAIN
    parent_id: Optional[str] = None
    branch: Optional[str] = None
    connected: bool = True
    sidebar_collapsed: bool = False

    @property
    def is_worktree(self) -> bool:
        return self.kind == KIND_WORKTREE

    @property
    def label(self) -> str:
        return self.branch or self.name


@dataclass(frozen=True)
class WorkspaceGroup:
    id: Optional[str]
    name: str
    workspace_ids: List[str] = field(default_factory=list)


@dataclass
class SidebarSnapshot:
    """Everything the thread, status, and workspace sources currently report."""

    workspaces: List[WorkspaceInfo] = field(default_factory=list)
    groups: List[WorkspaceGroup] = field(default_factory=list)
    threads_by_workspace: Dict[str, List[Thread]] = field(default_factory=dict)
    thread_parent_by_id: Dict[str, str] = field(default_factory=dict)
    thread_status_by_id: Dict[str, StatusEntry] = field(default_factory=dict)
    loading_by_workspace: Dict[str, bool] = field(default_factory=dict)
    last_agent_message_by_thread: Dict[str, Mapping[str, Any]] = field(default_factory=dict)
    active_workspace_id: Optional[str] = None
    active_thread_id: Optional[str] = None

    @property
    def has_workspace_groups(self) -> bool:
        return any(group.id for group in self.groups)


@dataclass(frozen=True)
class ThreadRowView:
    thread: Thread
    depth: int
    status: str
    time_label: Optional[str]
    indent_px: int
    active: bool


@dataclass(frozen=True)
class ThreadListView:
    """Display state of one workspace's or worktree's thread list."""

    owner_id: str
    rows: List[ThreadRowView]
    total_roots: int
    has_more_roots: bool
    expanded: bool
    show_threads: bool
    show_loader: bool
    show_more_toggle: bool
    more_label: str
    show_load_older: bool
    load_older_disabled: bool
    load_older_label: str


@dataclass(frozen=True)
class WorktreeView:
    workspace: WorkspaceInfo
    active: bool
    threads: ThreadListView


@dataclass(frozen=True)
class WorkspaceView:
    workspace: WorkspaceInfo
    active: bool
    threads: ThreadListView
    worktrees: List[WorktreeView]


@dataclass(frozen=True)
class GroupView:
    id: Optional[str]
    name: str
    show_header: bool
    collapsed: bool
    workspaces: List[WorkspaceView]


def build_thread_list(
    owner: WorkspaceInfo,
    snapshot: SidebarSnapshot,
    expanded: bool,
    pagination: PaginationTracker,
    config: SidebarConfig,
    now: Optional[datetime] = None,
) -> ThreadListView:
    """Build the thread list for a workspace or a worktree."""

    threads = snapshot.threads_by_workspace.get(owner.id, [])
    result = build_thread_rows(
        threads,
        snapshot.thread_parent_by_id,
        expanded,
        visible_root_limit=config.visible_root_limit,
    )
    is_active_owner = owner.id == snapshot.active_workspace_id

    rows = [
        ThreadRowView(
            thread=row.thread,
            depth=row.depth,
            status=resolve_thread_status(row.thread.id, snapshot.thread_status_by_id),
            time_label=thread_time_label(row.thread, snapshot.last_agent_message_by_thread, now=now),
            indent_px=row.depth * config.indent_step,
            active=is_active_owner and row.thread.id == snapshot.active_thread_id,
        )
        for row in result.rows
    ]

    page = pagination.state(owner.id)
    is_loading = snapshot.loading_by_workspace.get(owner.id, False)
    collapsed = owner.sidebar_collapsed

    return ThreadListView(
        owner_id=owner.id,
        rows=rows,
        total_roots=result.total_roots,
        has_more_roots=result.has_more_roots,
        expanded=expanded,
        show_threads=not collapsed and bool(threads),
        show_loader=not collapsed and is_loading and not threads,
        show_more_toggle=result.total_roots > config.visible_root_limit,
        more_label=LESS_LABEL if expanded else MORE_LABEL,
        show_load_older=expanded and page.next_cursor is not None,
        load_older_disabled=page.is_paging,
        load_older_label=LOADING_LABEL if page.is_paging else LOAD_OLDER_LABEL,
    )


def group_worktrees(workspaces: List[WorkspaceInfo]) -> Dict[str, List[WorkspaceInfo]]:
    """Return worktrees keyed by their parent workspace id, sorted by name."""

    worktrees_by_parent: Dict[str, List[WorkspaceInfo]] = {}
    for entry in workspaces:
        if entry.is_worktree and entry.parent_id:
            worktrees_by_parent.setdefault(entry.parent_id, []).append(entry)

    for entries in worktrees_by_parent.values():
        entries.sort(key=lambda workspace: workspace.name.casefold())
    return worktrees_by_parent


def build_sidebar(
    snapshot: SidebarSnapshot,
    expansion: ExpansionState,
    collapsed_groups: CollapsedGroupStore,
    pagination: PaginationTracker,
    config: SidebarConfig,
    now: Optional[datetime] = None,
) -> List[GroupView]:
    """Build every group section of the sidebar."""

    lookup = {workspace.id: workspace for workspace in snapshot.workspaces}
    worktrees_by_parent = group_worktrees(snapshot.workspaces)

    groups = snapshot.groups
    if not groups:
        groups = [
            WorkspaceGroup(
                id=None,
                name="Workspaces",
                workspace_ids=[ws.id for ws in snapshot.workspaces if not ws.is_worktree],
            )
        ]

    def _list(owner: WorkspaceInfo) -> ThreadListView:
        return build_thread_list(
            owner,
            snapshot,
            expansion.is_expanded(owner.id),
            pagination,
            config,
            now=now,
        )

    sections: List[GroupView] = []
    for group in groups:
        workspace_views: List[WorkspaceView] = []
        for workspace_id in group.workspace_ids:
            workspace = lookup.get(workspace_id)
            if workspace is None or workspace.is_worktree:
                continue

            worktree_views: List[WorktreeView] = []
            if not workspace.sidebar_collapsed:
                worktree_views = [
                    WorktreeView(
                        workspace=worktree,
                        active=worktree.id == snapshot.active_workspace_id,
                        threads=_list(worktree),
                    )
                    for worktree in worktrees_by_parent.get(workspace.id, [])
                ]

            workspace_views.append(
                WorkspaceView(
                    workspace=workspace,
                    active=workspace.id == snapshot.active_workspace_id,
                    threads=_list(workspace),
                    worktrees=worktree_views,
                )
            )

        sections.append(
            GroupView(
                id=group.id,
                name=group.name,
                show_header=bool(group.id) or snapshot.has_workspace_groups,
                collapsed=collapsed_groups.is_collapsed(group.id),
                workspaces=workspace_views,
            )
        )

    return sections
