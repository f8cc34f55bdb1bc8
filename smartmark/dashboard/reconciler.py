"""Pure merge logic for the dashboard bookmark list.

The list is an immutable, newest-first tuple. Every change, whether it comes
from the initial load, an optimistic local mutation or a pushed remote event,
goes through :func:`reduce_bookmarks`, so an optimistic insert followed by the
push notification for the same row still leaves exactly one entry.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from dateutil import parser as dt_parser


LOCAL_INSERT = "local-insert"
LOCAL_DELETE = "local-delete"
REMOTE_INSERT = "remote-insert"
REMOTE_DELETE = "remote-delete"
FULL_REFRESH = "full-refresh"

INSERT_KINDS = {LOCAL_INSERT, REMOTE_INSERT}
DELETE_KINDS = {LOCAL_DELETE, REMOTE_DELETE}


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif value:
        parsed = dt_parser.isoparse(str(value))
    else:
        parsed = datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Bookmark:
    id: str
    owner: int | str
    url: str
    title: str
    created_at: datetime

    @classmethod
    def from_dict(cls, payload: dict) -> "Bookmark":
        return cls(
            id=str(payload["id"]),
            owner=payload.get("user_id", payload.get("owner")),
            url=payload.get("url") or "",
            title=payload.get("title") or "",
            created_at=_parse_timestamp(payload.get("created_at")),
        )

    def as_candidate(self) -> dict:
        return {"id": self.id, "title": self.title, "url": self.url}


@dataclass(frozen=True)
class ListEvent:
    kind: str
    bookmark: Bookmark | None = None
    bookmark_id: str | None = None
    bookmarks: tuple[Bookmark, ...] = field(default_factory=tuple)

    @classmethod
    def local_insert(cls, bookmark: Bookmark) -> "ListEvent":
        return cls(LOCAL_INSERT, bookmark=bookmark)

    @classmethod
    def remote_insert(cls, bookmark: Bookmark) -> "ListEvent":
        return cls(REMOTE_INSERT, bookmark=bookmark)

    @classmethod
    def local_delete(cls, bookmark_id: str) -> "ListEvent":
        return cls(LOCAL_DELETE, bookmark_id=bookmark_id)

    @classmethod
    def remote_delete(cls, bookmark_id: str) -> "ListEvent":
        return cls(REMOTE_DELETE, bookmark_id=bookmark_id)

    @classmethod
    def full_refresh(cls, bookmarks: Iterable[Bookmark]) -> "ListEvent":
        return cls(FULL_REFRESH, bookmarks=tuple(bookmarks))


def reduce_bookmarks(
    current: tuple[Bookmark, ...], event: ListEvent
) -> tuple[Bookmark, ...]:
    if event.kind in INSERT_KINDS:
        if event.bookmark is None:
            raise ValueError(f"{event.kind} requires a bookmark")
        if any(item.id == event.bookmark.id for item in current):
            return current
        return (event.bookmark, *current)

    if event.kind in DELETE_KINDS:
        if event.bookmark_id is None:
            raise ValueError(f"{event.kind} requires a bookmark_id")
        remaining = tuple(item for item in current if item.id != event.bookmark_id)
        if len(remaining) == len(current):
            return current
        return remaining

    if event.kind == FULL_REFRESH:
        return tuple(event.bookmarks)

    raise ValueError(f"unknown list event: {event.kind}")


def filter_bookmarks(
    bookmarks: tuple[Bookmark, ...], query: str
) -> tuple[Bookmark, ...]:
    q = (query or "").strip().lower()
    if not q:
        return bookmarks
    return tuple(
        item
        for item in bookmarks
        if q in item.title.lower() or q in item.url.lower()
    )


def filter_by_ids(
    bookmarks: tuple[Bookmark, ...], ids: Iterable[str]
) -> tuple[Bookmark, ...]:
    wanted = set(ids)
    return tuple(item for item in bookmarks if item.id in wanted)
