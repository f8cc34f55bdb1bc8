from __future__ import annotations

import logging
from collections.abc import Callable

from smartmark.dashboard.client import SmartmarkClient
from smartmark.dashboard.reconciler import Bookmark, ListEvent


logger = logging.getLogger(__name__)


def event_from_push(event: dict) -> ListEvent | None:
    """Translate one pushed store event into a reducer event."""
    action = event.get("action")
    payload = event.get("payload") or {}
    if action == "insert":
        return ListEvent.remote_insert(Bookmark.from_dict(payload))
    if action == "delete":
        bookmark_id = payload.get("id") or event.get("bookmark_id")
        if bookmark_id:
            return ListEvent.remote_delete(str(bookmark_id))
    logger.debug("Ignoring push event %r", event)
    return None


class RealtimeChannel:
    """One owner's insert/delete feed, held for the lifetime of a dashboard.

    Use as a context manager: the server-side subscription is created on
    entry and torn down on exit. :meth:`poll` delivers pending events to
    ``on_event`` in cursor order and returns how many were delivered.
    """

    def __init__(
        self, client: SmartmarkClient, on_event: Callable[[ListEvent], None]
    ):
        self._client = client
        self._on_event = on_event
        self.subscription_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.subscription_id is not None

    def open(self) -> "RealtimeChannel":
        if self.subscription_id is None:
            self.subscription_id = self._client.subscribe()
            logger.debug("Opened realtime subscription %s", self.subscription_id)
        return self

    def close(self) -> None:
        subscription_id, self.subscription_id = self.subscription_id, None
        if subscription_id is None:
            return
        self._client.unsubscribe(subscription_id)
        logger.debug("Closed realtime subscription %s", subscription_id)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def poll(self) -> int:
        if self.subscription_id is None:
            raise RuntimeError("realtime channel is not open")

        delivered = 0
        while True:
            batch = self._client.pull_events(self.subscription_id)
            for raw in batch.get("events") or []:
                event = event_from_push(raw)
                if event is not None:
                    self._on_event(event)
                    delivered += 1
            if not batch.get("has_more"):
                return delivered
