"""Tests for the page cache."""

from __future__ import annotations

import pytest

from linear_tui.core.cache import FetchStatus, PageCache, PageEntry, PageKey
from linear_tui.core.models import IssuePage, IssueSummary


def _page(*identifiers: str, cursor: str | None = None, more: bool = False) -> IssuePage:
    issues = [IssueSummary(id=f"id-{i}", identifier=i, title=f"Issue {i}") for i in identifiers]
    return IssuePage(issues=issues, end_cursor=cursor, has_next_page=more)


class TestPageKey:
    """Test PageKey validation."""

    def test_negative_page_rejected(self) -> None:
        """Page indexes start at zero."""
        with pytest.raises(ValueError, match="page index"):
            PageKey("abc", -1)

    def test_keys_are_hashable_values(self) -> None:
        """Equal keys address the same entry."""
        assert PageKey("abc", 0) == PageKey("abc", 0)
        assert len({PageKey("abc", 0), PageKey("abc", 0), PageKey("abc", 1)}) == 2


class TestPageEntry:
    """Test PageEntry constructors."""

    def test_ready_copies_page(self) -> None:
        """A ready entry carries issues and pagination info."""
        entry = PageEntry.ready(3, _page("ENG-1", "ENG-2", cursor="c1", more=True))
        assert entry.status is FetchStatus.READY
        assert entry.generation == 3
        assert [i.identifier for i in entry.issues] == ["ENG-1", "ENG-2"]
        assert entry.next_cursor == "c1"

    def test_next_cursor_requires_more(self) -> None:
        """The last page offers no cursor even if the API returned one."""
        assert PageEntry.ready(1, _page("ENG-1", cursor="c1", more=False)).next_cursor is None

    def test_failed_and_pending_have_no_cursor(self) -> None:
        """Only Ready entries can be paged past."""
        assert PageEntry.failed(1, "boom").next_cursor is None
        assert PageEntry.pending(1).next_cursor is None
        assert PageEntry.failed(1, "boom").error == "boom"


class TestPageCache:
    """Test PageCache operations."""

    @pytest.fixture
    def cache(self) -> PageCache:
        return PageCache()

    def test_lookup_missing(self, cache: PageCache) -> None:
        """Unknown keys return None."""
        assert cache.lookup(PageKey("f", 0)) is None

    def test_insert_replaces(self, cache: PageCache) -> None:
        """At most one entry exists per key."""
        key = PageKey("f", 0)
        cache.insert(key, PageEntry.pending(1))
        cache.insert(key, PageEntry.ready(1, _page("ENG-1")))
        assert len(cache) == 1
        assert cache.lookup(key).status is FetchStatus.READY

    def test_needs_fetch(self, cache: PageCache) -> None:
        """Absent and failed keys need fetching; pending and ready do not."""
        absent, pending, ready, failed = (PageKey("f", n) for n in range(4))
        cache.insert(pending, PageEntry.pending(1))
        cache.insert(ready, PageEntry.ready(1, _page()))
        cache.insert(failed, PageEntry.failed(1, "down"))
        assert cache.needs_fetch(absent)
        assert not cache.needs_fetch(pending)
        assert not cache.needs_fetch(ready)
        assert cache.needs_fetch(failed)

    def test_invalidate_single(self, cache: PageCache) -> None:
        """invalidate drops one key and tolerates missing keys."""
        cache.insert(PageKey("f", 0), PageEntry.pending(1))
        cache.insert(PageKey("f", 1), PageEntry.pending(1))
        cache.invalidate(PageKey("f", 0))
        cache.invalidate(PageKey("f", 9))
        assert PageKey("f", 0) not in cache
        assert PageKey("f", 1) in cache

    def test_invalidate_all(self, cache: PageCache) -> None:
        """invalidate_all empties the cache."""
        cache.insert(PageKey("f", 0), PageEntry.pending(1))
        cache.insert(PageKey("g", 0), PageEntry.ready(1, _page()))
        cache.invalidate_all()
        assert len(cache) == 0

    def test_drop_stale_pending(self, cache: PageCache) -> None:
        """Pending markers from older generations are removed; others stay."""
        stale = PageKey("f", 0)
        current = PageKey("f", 1)
        ready = PageKey("f", 2)
        cache.insert(stale, PageEntry.pending(1))
        cache.insert(current, PageEntry.pending(2))
        cache.insert(ready, PageEntry.ready(1, _page()))

        dropped = cache.drop_stale_pending(2)

        assert dropped == [stale]
        assert stale not in cache
        assert current in cache
        assert ready in cache
