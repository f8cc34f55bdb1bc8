from datetime import datetime, timedelta, timezone

import pytest

from smartmark.dashboard.reconciler import (
    Bookmark,
    ListEvent,
    filter_bookmarks,
    filter_by_ids,
    reduce_bookmarks,
)


BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _bookmark(bookmark_id: str, title: str = "", url: str = "", minutes: int = 0):
    return Bookmark(
        id=bookmark_id,
        owner=1,
        url=url or f"https://example.com/{bookmark_id}",
        title=title or bookmark_id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def test_local_insert_then_remote_insert_keeps_single_entry():
    created = _bookmark("new", minutes=5)
    state = (_bookmark("old"),)

    state = reduce_bookmarks(state, ListEvent.local_insert(created))
    state = reduce_bookmarks(state, ListEvent.remote_insert(created))

    assert [item.id for item in state] == ["new", "old"]


def test_remote_insert_then_local_insert_keeps_single_entry():
    created = _bookmark("new")

    state = reduce_bookmarks((), ListEvent.remote_insert(created))
    state = reduce_bookmarks(state, ListEvent.local_insert(created))

    assert [item.id for item in state] == ["new"]


def test_insert_prepends_newest_first():
    state = (_bookmark("b"), _bookmark("a"))
    state = reduce_bookmarks(state, ListEvent.remote_insert(_bookmark("c")))
    assert [item.id for item in state] == ["c", "b", "a"]


@pytest.mark.parametrize("factory", [ListEvent.local_delete, ListEvent.remote_delete])
def test_delete_of_absent_id_is_noop(factory):
    state = (_bookmark("a"), _bookmark("b"))
    assert reduce_bookmarks(state, factory("missing")) is state


def test_local_delete_then_remote_delete_is_idempotent():
    state = (_bookmark("a"), _bookmark("b"))
    state = reduce_bookmarks(state, ListEvent.local_delete("a"))
    state = reduce_bookmarks(state, ListEvent.remote_delete("a"))
    assert [item.id for item in state] == ["b"]


def test_full_refresh_replaces_list():
    state = (_bookmark("stale"),)
    fresh = [_bookmark("x"), _bookmark("y")]
    assert reduce_bookmarks(state, ListEvent.full_refresh(fresh)) == tuple(fresh)


def test_unknown_event_kind_raises():
    with pytest.raises(ValueError):
        reduce_bookmarks((), ListEvent("rename"))


def test_substring_search_is_case_insensitive_over_title_and_url():
    pasta = _bookmark("1", title="Pasta Recipes", url="https://food.example/pasta")
    cooking = _bookmark("2", title="Cooking Videos", url="https://video.example/v")
    state = (pasta, cooking)

    assert filter_bookmarks(state, "cooking") == (cooking,)
    assert filter_bookmarks(state, "FOOD.example") == (pasta,)
    assert filter_bookmarks(state, "   ") == state
    assert state == (pasta, cooking)


def test_filter_by_ids_keeps_list_order():
    state = (_bookmark("a"), _bookmark("b"), _bookmark("c"))
    assert [item.id for item in filter_by_ids(state, ["c", "a", "zzz"])] == ["a", "c"]


def test_bookmark_from_dict_assumes_utc_for_naive_timestamps():
    bookmark = Bookmark.from_dict(
        {
            "id": "abc",
            "user_id": 7,
            "url": "https://example.com",
            "title": "Example",
            "created_at": "2026-01-01T10:30:00",
        }
    )
    assert bookmark.owner == 7
    assert bookmark.created_at == datetime(2026, 1, 1, 10, 30, tzinfo=timezone.utc)
