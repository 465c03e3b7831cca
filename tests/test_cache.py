"""Tests for the derived view cache."""

from __future__ import annotations

from earmark.cache import GROUP_SLOTS, Group, Slot, ViewCache


class Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"value-{self.calls}"


def test_slot_computed_once_until_invalidated() -> None:
    cache = ViewCache()
    compute = Counter()
    assert cache.get_or_compute(Slot.BOOKMARKS_LEFT, compute) == "value-1"
    assert cache.get_or_compute(Slot.BOOKMARKS_LEFT, compute) == "value-1"
    assert compute.calls == 1
    cache.invalidate(Group.BOOKMARKS)
    assert cache.get_or_compute(Slot.BOOKMARKS_LEFT, compute) == "value-2"


def test_group_invalidation_leaves_other_groups() -> None:
    cache = ViewCache()
    cache.get_or_compute(Slot.KEYBINDINGS_LEFT, lambda: "keys")
    cache.get_or_compute(Slot.BOOKMARKS_RIGHT, lambda: "marks")
    cache.invalidate(Group.BOOKMARKS)
    assert cache.peek(Slot.KEYBINDINGS_LEFT) == "keys"
    assert not cache.is_populated(Slot.BOOKMARKS_RIGHT)


def test_bookmark_counts_belong_to_both_groups() -> None:
    assert Slot.PLAYLIST_BOOKMARK_COUNTS in GROUP_SLOTS[Group.PLAYLIST]
    assert Slot.PLAYLIST_BOOKMARK_COUNTS in GROUP_SLOTS[Group.BOOKMARKS]


def test_invalidate_single_slot() -> None:
    cache = ViewCache()
    cache.get_or_compute(Slot.PLAYLIST_PERCENTAGES, lambda: "p")
    cache.get_or_compute(Slot.PLAYLIST_TITLES, lambda: "t")
    cache.invalidate_slot(Slot.PLAYLIST_PERCENTAGES)
    assert not cache.is_populated(Slot.PLAYLIST_PERCENTAGES)
    assert cache.peek(Slot.PLAYLIST_TITLES) == "t"


def test_chapter_length_memoized_until_full_invalidation() -> None:
    cache = ViewCache()
    assert cache.chapter_length(61) == "1m1s"
    assert cache.chapter_length(3600) == "1m1s"
    cache.invalidate(Group.PLAYLIST)
    assert cache.chapter_length(3600) == "1m1s"
    cache.invalidate_all()
    assert cache.chapter_length(3600) == "1h0m0s"


def test_on_tick_recomputes_every_time() -> None:
    cache = ViewCache()
    first = cache.on_tick(1065, 1000)
    assert first.position == 65
    assert first.absolute_position == 1065
    assert first.formatted_position == "1m5s"
    assert first.formatted_absolute == "17m45s"
    second = cache.on_tick(30, None)
    assert second.formatted_position == "30s"
    assert cache.now is second


def test_on_tick_clamps_before_start() -> None:
    now = ViewCache().on_tick(5, 100)
    assert now.position == 0
    assert now.absolute_position == 100


def test_invalidate_all_clears_now() -> None:
    cache = ViewCache()
    cache.on_tick(3, None)
    cache.invalidate_all()
    assert cache.now is None
