from __future__ import annotations

from datetime import timedelta

from smartmark.extensions import db
from smartmark.models import Bookmark, BookmarkEvent, RealtimeSubscription, utcnow


EVENT_INSERT = "insert"
EVENT_DELETE = "delete"

EVENT_ACTIONS = {EVENT_INSERT, EVENT_DELETE}


def log_bookmark_event(bookmark: Bookmark, action: str) -> BookmarkEvent:
    """Queue a push event in the current session; the caller commits."""
    if action not in EVENT_ACTIONS:
        raise ValueError(f"unknown bookmark event action: {action}")
    if action == EVENT_INSERT:
        payload = bookmark.as_dict()
    else:
        payload = {"id": bookmark.id}
    event = BookmarkEvent(
        user_id=bookmark.user_id,
        bookmark_id=bookmark.id,
        action=action,
        payload=payload,
    )
    db.session.add(event)
    return event


def latest_cursor(user_id: int) -> int:
    return (
        db.session.query(db.func.max(BookmarkEvent.id))
        .filter_by(user_id=user_id)
        .scalar()
        or 0
    )


def open_subscription(user_id: int) -> RealtimeSubscription:
    subscription = RealtimeSubscription(
        id=RealtimeSubscription.new_id(),
        user_id=user_id,
        cursor=latest_cursor(user_id),
    )
    db.session.add(subscription)
    db.session.commit()
    return subscription


def get_subscription(user_id: int, subscription_id: str) -> RealtimeSubscription | None:
    return RealtimeSubscription.query.filter_by(
        id=subscription_id, user_id=user_id
    ).first()


def drain_subscription(
    subscription: RealtimeSubscription, limit: int = 200
) -> tuple[list[BookmarkEvent], bool]:
    events = (
        BookmarkEvent.query.filter_by(user_id=subscription.user_id)
        .filter(BookmarkEvent.id > subscription.cursor)
        .order_by(BookmarkEvent.id.asc())
        .limit(limit)
        .all()
    )
    if events:
        subscription.cursor = events[-1].id
    subscription.last_polled_at = utcnow()
    db.session.commit()
    return events, len(events) == limit


def close_subscription(subscription: RealtimeSubscription) -> None:
    db.session.delete(subscription)
    db.session.commit()


def prune_realtime_state(retention_hours: int, idle_hours: int) -> tuple[int, int]:
    now = utcnow()
    events_removed = BookmarkEvent.query.filter(
        BookmarkEvent.created_at < now - timedelta(hours=retention_hours)
    ).delete(synchronize_session=False)
    subscriptions_removed = RealtimeSubscription.query.filter(
        RealtimeSubscription.last_polled_at < now - timedelta(hours=idle_hours)
    ).delete(synchronize_session=False)
    db.session.commit()
    return events_removed, subscriptions_removed
