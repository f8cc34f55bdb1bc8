from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from smartmark.dashboard.channel import RealtimeChannel
from smartmark.dashboard.client import ApiError, SmartmarkClient
from smartmark.dashboard.reconciler import (
    Bookmark,
    ListEvent,
    filter_bookmarks,
    filter_by_ids,
    reduce_bookmarks,
)


logger = logging.getLogger(__name__)

TOAST_TTL = timedelta(seconds=3)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def relative_time(value: datetime, now: datetime) -> str:
    seconds = int((now - value).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if seconds < 60:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return value.date().isoformat()


def _hostname(url: str) -> str:
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    return host or url


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


@dataclass(frozen=True)
class SessionUser:
    id: int | str
    display_name: str
    avatar_url: str | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> "SessionUser":
        return cls(
            id=payload["id"],
            display_name=payload.get("display_name") or "User",
            avatar_url=payload.get("avatar_url") or None,
        )


@dataclass(frozen=True)
class Toast:
    message: str
    shown_at: datetime


@dataclass(frozen=True)
class DashboardStats:
    total: int
    domains: int
    last_added: str | None


class Dashboard:
    """Client-side state for one signed-in owner.

    Local mutations are applied optimistically and reconciled with pushed
    store events by id. Flags such as ``adding`` mark a request in flight;
    while set, the matching action is refused instead of issued twice.
    """

    def __init__(
        self,
        client: SmartmarkClient,
        user: SessionUser,
        bookmarks: tuple[Bookmark, ...] = (),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.user = user
        self.bookmarks = tuple(bookmarks)
        self._clock = clock
        self._channel: RealtimeChannel | None = None
        self._toast: Toast | None = None

        self.url = ""
        self.title = ""
        self.search_query = ""
        self.ai_mode = False
        self.ai_query = ""
        self.ai_matched_ids: list[str] | None = None

        self.adding = False
        self.fetching_title = False
        self.ai_searching = False

    @classmethod
    def load(cls, client: SmartmarkClient, **kwargs) -> "Dashboard":
        user = SessionUser.from_dict(client.current_user())
        return cls(client, user, tuple(client.list_bookmarks()), **kwargs)

    # Realtime subscription

    def open(self) -> "Dashboard":
        if self._channel is None:
            channel = RealtimeChannel(self.client, self.apply)
            channel.open()
            self._channel = channel
            # Rows written between the initial load and the subscription
            # only show up in a fresh snapshot.
            self.refresh()
        return self

    def close(self) -> None:
        channel, self._channel = self._channel, None
        if channel is None:
            return
        try:
            channel.close()
        except ApiError as exc:
            logger.warning("Failed to close realtime subscription: %s", exc)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def sync(self) -> int:
        if self._channel is None:
            raise RuntimeError("dashboard is not subscribed")
        try:
            return self._channel.poll()
        except ApiError as exc:
            logger.warning("Realtime poll failed: %s", exc)
            return 0

    def apply(self, event: ListEvent) -> None:
        self.bookmarks = reduce_bookmarks(self.bookmarks, event)

    # Notifications

    def notify(self, message: str) -> None:
        self._toast = Toast(message, self._clock())

    @property
    def toast(self) -> str | None:
        if self._toast is None:
            return None
        if self._clock() - self._toast.shown_at >= TOAST_TTL:
            self._toast = None
            return None
        return self._toast.message

    # Mutations

    def add_bookmark(self, url: str | None = None, title: str | None = None):
        url = (self.url if url is None else url).strip()
        title = (self.title if title is None else title).strip()
        if not url or not title or self.adding:
            return None

        self.adding = True
        try:
            bookmark = self.client.insert_bookmark(url, title)
        except ApiError as exc:
            logger.warning("Insert failed: %s", exc)
            self.notify("Failed to add bookmark. Please try again.")
            return None
        finally:
            self.adding = False

        self.apply(ListEvent.local_insert(bookmark))
        self.url = ""
        self.title = ""
        self.notify("Bookmark added")
        return bookmark

    def delete_bookmark(self, bookmark_id: str) -> bool:
        self.apply(ListEvent.local_delete(bookmark_id))
        try:
            self.client.delete_bookmark(bookmark_id)
        except ApiError as exc:
            logger.warning("Delete of %s failed: %s", bookmark_id, exc)
            self.notify("Failed to delete. Refreshing...")
            self.refresh()
            return False
        self.notify("Bookmark deleted")
        return True

    def refresh(self) -> None:
        try:
            rows = self.client.list_bookmarks()
        except ApiError as exc:
            logger.warning("Refresh failed: %s", exc)
            return
        self.apply(ListEvent.full_refresh(rows))

    # Title suggestion

    def set_url(self, url: str) -> None:
        self.url = url
        if url.startswith("http") and not self.title.strip():
            self.suggest_title(url)

    def suggest_title(self, url: str) -> str:
        if not url.strip() or not url.startswith("http") or self.fetching_title:
            return ""
        self.fetching_title = True
        try:
            title = self.client.fetch_title(url)
        except ApiError as exc:
            logger.debug("Title fetch for %s failed: %s", url, exc)
            return ""
        finally:
            self.fetching_title = False
        if title:
            self.title = title
        return title

    # Search

    def use_substring_search(self) -> None:
        self.ai_mode = False
        self.ai_matched_ids = None
        self.ai_query = ""

    def use_ai_search(self) -> None:
        self.ai_mode = True
        self.search_query = ""

    def clear_ai_results(self) -> None:
        self.ai_matched_ids = None
        self.ai_query = ""

    def ai_search(self, query: str | None = None) -> list[str] | None:
        if query is not None:
            self.ai_query = query
        if not self.ai_query.strip() or not self.bookmarks or self.ai_searching:
            return None

        self.ai_mode = True
        self.ai_searching = True
        self.ai_matched_ids = None
        try:
            matched = self.client.ai_search(self.ai_query, self.bookmarks)
        except ApiError as exc:
            if exc.status_code is None:
                self.notify("AI search failed. Try again.")
            else:
                self.notify(exc.message or "AI search failed")
            return None
        finally:
            self.ai_searching = False

        self.ai_matched_ids = matched
        self.notify(f"AI found {_plural(len(matched), 'matching bookmark')}")
        return matched

    def visible_bookmarks(self) -> tuple[Bookmark, ...]:
        if self.ai_mode:
            if self.ai_matched_ids is None:
                return self.bookmarks
            return filter_by_ids(self.bookmarks, self.ai_matched_ids)
        return filter_bookmarks(self.bookmarks, self.search_query)

    def stats(self) -> DashboardStats:
        if not self.bookmarks:
            return DashboardStats(total=0, domains=0, last_added=None)
        return DashboardStats(
            total=len(self.bookmarks),
            domains=len({_hostname(item.url) for item in self.bookmarks}),
            last_added=relative_time(self.bookmarks[0].created_at, self._clock()),
        )
