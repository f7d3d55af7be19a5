"""Persisted collapse state for workspace groups."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Set

logger = logging.getLogger(__name__)

COLLAPSED_GROUPS_STORAGE_KEY = "agentsidebar.collapsedGroups"


class CollapsedGroupStore:
    """Reads and writes the set of collapsed group ids in a JSON state file.

    The state file is a flat key/value object so other sidebar state can share
    it; only ``COLLAPSED_GROUPS_STORAGE_KEY`` is touched here. Anything that
    cannot be read back as a list of strings is treated as an empty set.
    """

    def __init__(self, state_path: str | Path):
        self.state_path = Path(state_path).expanduser()
        self._collapsed: Set[str] = self._load()

    @property
    def collapsed(self) -> Set[str]:
        return set(self._collapsed)

    def is_collapsed(self, group_id: str | None) -> bool:
        return bool(group_id) and group_id in self._collapsed

    def toggle(self, group_id: str) -> bool:
        """Flip collapse for ``group_id``, persist, and return the new value."""

        if group_id in self._collapsed:
            self._collapsed.discard(group_id)
            collapsed = False
        else:
            self._collapsed.add(group_id)
            collapsed = True
        self._persist()
        return collapsed

    def _read_state(self) -> Dict[str, Any]:
        if not self.state_path.exists():
            return {}
        try:
            data = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable sidebar state {self.state_path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _load(self) -> Set[str]:
        raw = self._read_state().get(COLLAPSED_GROUPS_STORAGE_KEY)
        if not isinstance(raw, list):
            return set()
        return {value for value in raw if isinstance(value, str)}

    def _persist(self) -> None:
        state = self._read_state()
        state[COLLAPSED_GROUPS_STORAGE_KEY] = sorted(self._collapsed)
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(json.dumps(state, indent=2), encoding="utf-8")
