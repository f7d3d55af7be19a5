"""Per-list "show all threads" state."""

from __future__ import annotations

from typing import Iterable, Set


class ExpansionState:
    """Tracks which list owners (workspaces or worktrees) show every root thread.

    Lists start collapsed. The state lives only in memory and is never cleared
    when the underlying threads change.
    """

    def __init__(self, expanded: Iterable[str] = ()):
        self._expanded: Set[str] = set(expanded)

    def is_expanded(self, owner_id: str) -> bool:
        return owner_id in self._expanded

    def toggle(self, owner_id: str) -> bool:
        """Flip the flag for ``owner_id`` and return the new value."""

        if owner_id in self._expanded:
            self._expanded.discard(owner_id)
            return False
        self._expanded.add(owner_id)
        return True

    def expanded_ids(self) -> Set[str]:
        return set(self._expanded)
