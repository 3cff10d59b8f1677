"""Page cache keyed by (filter fingerprint, page index)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from linear_tui.core.models import IssuePage, IssueSummary

logger = logging.getLogger(__name__)


class FetchStatus(str, Enum):
    """Lifecycle of one cached page."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class PageKey:
    """Cache key: the filter fingerprint plus a 0-based page index."""

    fingerprint: str
    page: int

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError(f"page index must be >= 0, got {self.page}")


@dataclass
class PageEntry:
    """Last known state of one page."""

    status: FetchStatus
    generation: int
    issues: list[IssueSummary] = field(default_factory=list)
    end_cursor: str | None = None
    has_more: bool = False
    error: str | None = None

    @classmethod
    def pending(cls, generation: int) -> PageEntry:
        return cls(status=FetchStatus.PENDING, generation=generation)

    @classmethod
    def ready(cls, generation: int, page: IssuePage) -> PageEntry:
        return cls(
            status=FetchStatus.READY,
            generation=generation,
            issues=list(page.issues),
            end_cursor=page.end_cursor,
            has_more=page.has_next_page,
        )

    @classmethod
    def failed(cls, generation: int, reason: str) -> PageEntry:
        return cls(status=FetchStatus.FAILED, generation=generation, error=reason)

    @property
    def next_cursor(self) -> str | None:
        """Cursor for the following page, if this page is loaded and has one."""
        if self.status is FetchStatus.READY and self.has_more:
            return self.end_cursor
        return None


class PageCache:
    """Maps PageKey to PageEntry.

    At most one entry exists per key, so a PENDING entry doubles as the
    "fetch in flight" marker that suppresses duplicate requests.
    """

    def __init__(self) -> None:
        self._entries: dict[PageKey, PageEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def lookup(self, key: PageKey) -> PageEntry | None:
        return self._entries.get(key)

    def insert(self, key: PageKey, entry: PageEntry) -> None:
        self._entries[key] = entry

    def needs_fetch(self, key: PageKey) -> bool:
        """True when the key is absent or its last fetch failed."""
        entry = self._entries.get(key)
        return entry is None or entry.status is FetchStatus.FAILED

    def invalidate(self, key: PageKey) -> None:
        """Drop a single entry (forced refresh of one page)."""
        self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        """Drop every entry."""
        if self._entries:
            logger.debug(f"Invalidating {len(self._entries)} cached pages")
        self._entries.clear()

    def drop_stale_pending(self, generation: int) -> list[PageKey]:
        """Remove PENDING entries tagged with an older generation.

        Their completions will be discarded on arrival, so leaving the marker
        in place would block the key from ever being fetched again.

        Returns:
            The keys that were removed.
        """
        stale = [
            key
            for key, entry in self._entries.items()
            if entry.status is FetchStatus.PENDING and entry.generation != generation
        ]
        for key in stale:
            del self._entries[key]
        return stale
