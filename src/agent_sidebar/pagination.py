"""Cursor bookkeeping for loading older threads page by page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class PageState:
    next_cursor: Optional[str] = None
    is_paging: bool = False


class PaginationTracker:
    """Tracks the next-page cursor and in-flight flag per list owner.

    Fetching is done elsewhere; this only decides whether a "load older"
    request may be issued and records the loader's answer.
    """

    def __init__(self):
        self._pages: Dict[str, PageState] = {}

    def state(self, owner_id: str) -> PageState:
        page = self._pages.get(owner_id)
        if page is None:
            return PageState()
        return PageState(next_cursor=page.next_cursor, is_paging=page.is_paging)

    def next_cursor(self, owner_id: str) -> Optional[str]:
        return self.state(owner_id).next_cursor

    def is_paging(self, owner_id: str) -> bool:
        return self.state(owner_id).is_paging

    def set_cursor(self, owner_id: str, next_cursor: Optional[str]) -> None:
        self._pages.setdefault(owner_id, PageState()).next_cursor = next_cursor

    def set_paging(self, owner_id: str, is_paging: bool) -> None:
        self._pages.setdefault(owner_id, PageState()).is_paging = is_paging

    def request_older(self, owner_id: str) -> Optional[str]:
        """Mark a page fetch as started and return the cursor to fetch from.

        Returns None when there is nothing older or a fetch is already running.
        """
        page = self._pages.setdefault(owner_id, PageState())
        if not page.next_cursor or page.is_paging:
            return None
        page.is_paging = True
        logger.info(f"Requesting older threads for {owner_id} from cursor {page.next_cursor}")
        return page.next_cursor

    def complete_page(self, owner_id: str, next_cursor: Optional[str]) -> None:
        page = self._pages.setdefault(owner_id, PageState())
        page.next_cursor = next_cursor
        page.is_paging = False

    def fail_page(self, owner_id: str) -> None:
        page = self._pages.setdefault(owner_id, PageState())
        page.is_paging = False
        logger.warning(f"Loading older threads failed for {owner_id}")
