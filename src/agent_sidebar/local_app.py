"""Local JSON service exposing the sidebar view model."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, List, Mapping, Set
from urllib.parse import urlparse

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from agent_sidebar.collapsed_groups import CollapsedGroupStore
from agent_sidebar.config import load_config
from agent_sidebar.events import EVENT_LOAD_OLDER, EVENT_SIDEBAR_UPDATED, SidebarEvents
from agent_sidebar.expansion import ExpansionState
from agent_sidebar.hierarchy import Thread
from agent_sidebar.pagination import PaginationTracker
from agent_sidebar.sidebar import (
    GroupView,
    SidebarSnapshot,
    ThreadListView,
    WorkspaceGroup,
    WorkspaceInfo,
    build_sidebar,
)
from agent_sidebar.status import ThreadStatusFlags

logger = logging.getLogger(__name__)

app = FastAPI(title="Agent Sidebar (Local)")

CSRF_HEADER = "X-Agent-Sidebar-CSRF"
# Collaborators outside the browser share the token through this variable.
CSRF_ENV_VAR = "AGENT_SIDEBAR_CSRF_TOKEN"
CSRF_TOKEN = secrets.token_urlsafe(32)
ALLOWED_HOSTS = {"127.0.0.1:8080", "localhost:8080", "testserver"}

# In-memory sidebar state; only collapsed groups survive a restart.
_snapshot = SidebarSnapshot()
_expansion = ExpansionState()
_pagination = PaginationTracker()
_events: SidebarEvents = SidebarEvents.get_instance()


def _reset_state() -> None:
    global _snapshot, _expansion, _pagination
    _snapshot = SidebarSnapshot()
    _expansion = ExpansionState()
    _pagination = PaginationTracker()


def _set_snapshot(snapshot: SidebarSnapshot) -> None:
    global _snapshot
    _snapshot = snapshot


# ----------------------------------------------------------------------
# Payload parsing
# ----------------------------------------------------------------------


def _require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be an object")
    return value


def _parse_workspace(data: Any) -> WorkspaceInfo:
    if not isinstance(data, Mapping) or not data.get("id"):
        raise ValueError("Each workspace needs an id")
    settings = _require_mapping(data.get("settings"), "settings")
    worktree = _require_mapping(data.get("worktree"), "worktree")
    parent_id = data.get("parentId")
    return WorkspaceInfo(
        id=str(data["id"]),
        name=str(data.get("name") or data["id"]),
        kind=str(data.get("kind") or "main"),
        parent_id=str(parent_id) if parent_id else None,
        branch=worktree.get("branch") or None,
        connected=bool(data.get("connected", True)),
        sidebar_collapsed=bool(settings.get("sidebarCollapsed", False)),
    )


def _parse_group(data: Any) -> WorkspaceGroup:
    if not isinstance(data, Mapping):
        raise ValueError("Each group must be an object")
    members = data.get("workspaceIds", data.get("workspaces", []))
    if not isinstance(members, list):
        raise ValueError("Group workspaces must be a list")
    workspace_ids = [
        str(member.get("id")) if isinstance(member, Mapping) else str(member)
        for member in members
    ]
    group_id = data.get("id")
    return WorkspaceGroup(
        id=str(group_id) if group_id else None,
        name=str(data.get("name") or "Ungrouped"),
        workspace_ids=workspace_ids,
    )


def _parse_threads(value: Any) -> List[Thread]:
    if not isinstance(value, list):
        raise ValueError("threads must be a list")
    threads = []
    for item in value:
        if not isinstance(item, Mapping):
            raise ValueError("Each thread must be an object")
        threads.append(Thread.from_dict(item))
    return threads


def _parse_snapshot(payload: Mapping[str, Any]) -> SidebarSnapshot:
    workspaces = payload.get("workspaces", [])
    groups = payload.get("groupedWorkspaces", [])
    if not isinstance(workspaces, list) or not isinstance(groups, list):
        raise ValueError("workspaces and groupedWorkspaces must be lists")

    threads_by_workspace = {
        str(owner): _parse_threads(threads)
        for owner, threads in _require_mapping(
            payload.get("threadsByWorkspace"), "threadsByWorkspace"
        ).items()
    }
    parents = _require_mapping(payload.get("threadParentById"), "threadParentById")
    statuses = _require_mapping(payload.get("threadStatusById"), "threadStatusById")
    loading = _require_mapping(
        payload.get("threadListLoadingByWorkspace"), "threadListLoadingByWorkspace"
    )
    last_messages = _require_mapping(
        payload.get("lastAgentMessageByThread"), "lastAgentMessageByThread"
    )

    return SidebarSnapshot(
        workspaces=[_parse_workspace(entry) for entry in workspaces],
        groups=[_parse_group(entry) for entry in groups],
        threads_by_workspace=threads_by_workspace,
        thread_parent_by_id={str(k): str(v) for k, v in parents.items() if v},
        thread_status_by_id={
            str(k): ThreadStatusFlags.from_dict(v)
            for k, v in statuses.items()
            if isinstance(v, Mapping)
        },
        loading_by_workspace={str(k): bool(v) for k, v in loading.items()},
        last_agent_message_by_thread={
            str(k): v for k, v in last_messages.items() if isinstance(v, Mapping)
        },
        active_workspace_id=payload.get("activeWorkspaceId"),
        active_thread_id=payload.get("activeThreadId"),
    )


def _apply_pagination(payload: Mapping[str, Any]) -> None:
    cursors = _require_mapping(
        payload.get("threadListCursorByWorkspace"), "threadListCursorByWorkspace"
    )
    paging = _require_mapping(
        payload.get("threadListPagingByWorkspace"), "threadListPagingByWorkspace"
    )
    for owner_id in set(cursors) | set(paging):
        cursor = cursors.get(owner_id)
        _pagination.set_cursor(owner_id, str(cursor) if cursor else None)
        _pagination.set_paging(owner_id, bool(paging.get(owner_id)))


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------


def _serialize_workspace(workspace: WorkspaceInfo) -> Dict[str, Any]:
    return {
        "id": workspace.id,
        "name": workspace.name,
        "label": workspace.label,
        "kind": workspace.kind,
        "parentId": workspace.parent_id,
        "connected": workspace.connected,
        "sidebarCollapsed": workspace.sidebar_collapsed,
    }


def _serialize_thread_list(view: ThreadListView) -> Dict[str, Any]:
    return {
        "ownerId": view.owner_id,
        "rows": [
            {
                "thread": row.thread.to_dict(),
                "depth": row.depth,
                "status": row.status,
                "timeLabel": row.time_label,
                "indentPx": row.indent_px,
                "active": row.active,
            }
            for row in view.rows
        ],
        "totalRoots": view.total_roots,
        "hasMoreRoots": view.has_more_roots,
        "expanded": view.expanded,
        "showThreads": view.show_threads,
        "showLoader": view.show_loader,
        "showMoreToggle": view.show_more_toggle,
        "moreLabel": view.more_label,
        "showLoadOlder": view.show_load_older,
        "loadOlderDisabled": view.load_older_disabled,
        "loadOlderLabel": view.load_older_label,
    }


def _serialize_groups(groups: List[GroupView]) -> List[Dict[str, Any]]:
    return [
        {
            "id": group.id,
            "name": group.name,
            "showHeader": group.show_header,
            "collapsed": group.collapsed,
            "workspaces": [
                {
                    "workspace": _serialize_workspace(entry.workspace),
                    "active": entry.active,
                    "threads": _serialize_thread_list(entry.threads),
                    "worktrees": [
                        {
                            "workspace": _serialize_workspace(worktree.workspace),
                            "active": worktree.active,
                            "threads": _serialize_thread_list(worktree.threads),
                        }
                        for worktree in entry.worktrees
                    ],
                }
                for entry in group.workspaces
            ],
        }
        for group in groups
    ]


def _build_payload() -> Dict[str, Any]:
    config = load_config()
    groups = build_sidebar(
        _snapshot,
        _expansion,
        CollapsedGroupStore(config.state_path),
        _pagination,
        config,
    )
    return {"groups": _serialize_groups(groups)}


# ----------------------------------------------------------------------
# Request guards
# ----------------------------------------------------------------------


def _origin_from_url(value: str | None) -> str | None:
    if not value:
        return None
    try:
        parsed = urlparse(value)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def _expected_origins(request: Request) -> Set[str]:
    host = request.headers.get("host")
    allowed_hosts = set(ALLOWED_HOSTS)
    if host:
        allowed_hosts.add(host)
    origins: Set[str] = set()
    for entry in allowed_hosts:
        origins.add(f"http://{entry}")
        origins.add(f"https://{entry}")
    return origins


def _csrf_token() -> str:
    return os.getenv(CSRF_ENV_VAR) or CSRF_TOKEN


def _require_same_origin(request: Request) -> None:
    allowed_origins = _expected_origins(request)

    origin = _origin_from_url(request.headers.get("origin"))
    if origin and origin not in allowed_origins:
        raise HTTPException(status_code=403, detail="Cross-origin request blocked")

    referer = _origin_from_url(request.headers.get("referer"))
    if referer and referer not in allowed_origins:
        raise HTTPException(status_code=403, detail="Cross-site request blocked")


def _require_authorized_post(request: Request) -> None:
    _require_same_origin(request)

    token = request.headers.get(CSRF_HEADER)
    if not token or not secrets.compare_digest(token, _csrf_token()):
        raise HTTPException(status_code=403, detail="Invalid or missing CSRF token")


def _require_owner_id(payload: Dict[str, Any]) -> str:
    owner_id = payload.get("ownerId")
    if not owner_id or not isinstance(owner_id, str):
        raise HTTPException(status_code=400, detail="ownerId is required")
    return owner_id


# ----------------------------------------------------------------------
# Routes
# ----------------------------------------------------------------------


@app.get("/api/csrf")
async def get_csrf_token(request: Request) -> JSONResponse:
    """Hand the CSRF token to same-origin clients."""

    _require_same_origin(request)
    return JSONResponse({"header": CSRF_HEADER, "token": _csrf_token()})


@app.get("/api/sidebar")
async def get_sidebar() -> JSONResponse:
    """Return the current sidebar view model."""

    return JSONResponse(_build_payload())


@app.post("/api/snapshot")
async def update_snapshot(payload: Dict[str, Any], request: Request) -> JSONResponse:
    """Replace the workspace and thread snapshot reported by the thread source."""

    _require_authorized_post(request)

    try:
        snapshot = _parse_snapshot(payload)
        _apply_pagination(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _set_snapshot(snapshot)
    await _events.publish(EVENT_SIDEBAR_UPDATED, reason="snapshot")
    return JSONResponse({"status": "ok"})


@app.post("/api/expanded/toggle")
async def toggle_expanded(payload: Dict[str, Any], request: Request) -> JSONResponse:
    """Switch a workspace or worktree list between first roots and all roots."""

    _require_authorized_post(request)

    owner_id = _require_owner_id(payload)
    expanded = _expansion.toggle(owner_id)
    await _events.publish(EVENT_SIDEBAR_UPDATED, reason="expanded", ownerId=owner_id)
    return JSONResponse({"ownerId": owner_id, "expanded": expanded})


@app.post("/api/groups/toggle")
async def toggle_group(payload: Dict[str, Any], request: Request) -> JSONResponse:
    """Collapse or expand a workspace group; the choice is persisted."""

    _require_authorized_post(request)

    group_id = payload.get("groupId")
    if not group_id or not isinstance(group_id, str):
        raise HTTPException(status_code=400, detail="groupId is required")

    config = load_config()
    collapsed = CollapsedGroupStore(config.state_path).toggle(group_id)
    await _events.publish(EVENT_SIDEBAR_UPDATED, reason="group", groupId=group_id)
    return JSONResponse({"groupId": group_id, "collapsed": collapsed})


@app.post("/api/threads/load-older")
async def load_older_threads(payload: Dict[str, Any], request: Request) -> JSONResponse:
    """Ask the thread-list loader for the next page of older threads."""

    _require_authorized_post(request)

    owner_id = _require_owner_id(payload)
    cursor = _pagination.request_older(owner_id)
    if cursor is None:
        return JSONResponse({"requested": False, "cursor": _pagination.next_cursor(owner_id)})

    await _events.publish(EVENT_LOAD_OLDER, ownerId=owner_id, cursor=cursor)
    return JSONResponse({"requested": True, "cursor": cursor})


@app.post("/api/threads/page")
async def complete_thread_page(payload: Dict[str, Any], request: Request) -> JSONResponse:
    """Record a page of older threads delivered by the thread-list loader."""

    _require_authorized_post(request)

    owner_id = _require_owner_id(payload)
    if payload.get("error"):
        _pagination.fail_page(owner_id)
        await _events.publish(EVENT_SIDEBAR_UPDATED, reason="page-failed", ownerId=owner_id)
        return JSONResponse({"status": "ok", "added": 0})

    try:
        page = _parse_threads(payload.get("threads", []))
        parents = _require_mapping(payload.get("threadParentById"), "threadParentById")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    existing = _snapshot.threads_by_workspace.get(owner_id, [])
    known = {thread.id for thread in existing}
    added = [thread for thread in page if thread.id not in known]

    threads_by_workspace = dict(_snapshot.threads_by_workspace)
    threads_by_workspace[owner_id] = existing + added
    parent_by_id = dict(_snapshot.thread_parent_by_id)
    parent_by_id.update({str(k): str(v) for k, v in parents.items() if v})
    _set_snapshot(
        replace(
            _snapshot,
            threads_by_workspace=threads_by_workspace,
            thread_parent_by_id=parent_by_id,
        )
    )

    next_cursor = payload.get("nextCursor")
    _pagination.complete_page(owner_id, str(next_cursor) if next_cursor else None)
    logger.info(f"Added {len(added)} older thread(s) to {owner_id}")

    await _events.publish(EVENT_SIDEBAR_UPDATED, reason="page", ownerId=owner_id)
    return JSONResponse({"status": "ok", "added": len(added)})


@app.get("/api/events")
async def events_stream(request: Request) -> StreamingResponse:
    """Server-Sent Events stream of sidebar events."""

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async for event in _events.subscribe():
                if await request.is_disconnected():
                    break

                yield f"data: {json.dumps(event)}\n\n"

        except asyncio.CancelledError:
            logger.info("SSE client disconnected")
            raise

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@app.get("/api/health")
async def health_check() -> JSONResponse:
    """Health check endpoint with event coordinator stats."""

    return JSONResponse({
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "events": _events.get_stats(),
    })


def run() -> None:
    """Convenience entry point for running with `python -m`."""

    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Agent Sidebar service...")

    uvicorn.run(
        "agent_sidebar.local_app:app",
        host="127.0.0.1",
        port=8080,
        reload=True,
    )


if __name__ == "__main__":
    run()
