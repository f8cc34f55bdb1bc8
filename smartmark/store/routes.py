from __future__ import annotations

from flask import g, jsonify, request

from smartmark.extensions import db
from smartmark.models import Bookmark
from smartmark.services.realtime import (
    EVENT_DELETE,
    EVENT_INSERT,
    close_subscription,
    drain_subscription,
    get_subscription,
    log_bookmark_event,
    open_subscription,
)
from smartmark.services.security import api_auth_required
from smartmark.store import store_bp


def _get_user_bookmark_or_404(user_id: int, bookmark_id: str):
    bookmark = Bookmark.query.filter_by(id=bookmark_id, user_id=user_id).first()
    if not bookmark:
        return None, (jsonify({"error": "bookmark not found"}), 404)
    return bookmark, None


def _get_user_subscription_or_404(user_id: int, subscription_id: str):
    subscription = get_subscription(user_id, subscription_id)
    if not subscription:
        return None, (jsonify({"error": "subscription not found"}), 404)
    return subscription, None


@store_bp.route("/me", methods=["GET"])
@api_auth_required
def me_api():
    return jsonify(g.api_user.as_session_dict())


@store_bp.route("/bookmarks", methods=["GET"])
@api_auth_required
def bookmarks_list_api():
    user = g.api_user
    items = (
        Bookmark.query.filter_by(user_id=user.id)
        .order_by(Bookmark.created_at.desc())
        .all()
    )
    return jsonify({"items": [item.as_dict() for item in items]})


@store_bp.route("/bookmarks", methods=["POST"])
@api_auth_required
def bookmarks_create_api():
    user = g.api_user
    payload = request.get_json(silent=True) or {}
    url = str(payload.get("url") or "").strip()
    title = str(payload.get("title") or "").strip()
    if not url or not title:
        return jsonify({"error": "url and title are required"}), 400

    bookmark = Bookmark(user_id=user.id, url=url, title=title)
    db.session.add(bookmark)
    db.session.flush()
    log_bookmark_event(bookmark, EVENT_INSERT)
    db.session.commit()
    return jsonify(bookmark.as_dict()), 201


@store_bp.route("/bookmarks/<bookmark_id>", methods=["DELETE"])
@api_auth_required
def bookmarks_delete_api(bookmark_id: str):
    user = g.api_user
    bookmark, error = _get_user_bookmark_or_404(user.id, bookmark_id)
    if error:
        return error

    log_bookmark_event(bookmark, EVENT_DELETE)
    db.session.delete(bookmark)
    db.session.commit()
    return jsonify({"status": "deleted", "id": bookmark_id})


@store_bp.route("/realtime/subscriptions", methods=["POST"])
@api_auth_required
def realtime_subscribe():
    subscription = open_subscription(g.api_user.id)
    return jsonify({"id": subscription.id, "cursor": subscription.cursor}), 201


@store_bp.route("/realtime/subscriptions/<subscription_id>/events", methods=["GET"])
@api_auth_required
def realtime_events(subscription_id: str):
    subscription, error = _get_user_subscription_or_404(
        g.api_user.id, subscription_id
    )
    if error:
        return error

    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 500))
    events, has_more = drain_subscription(subscription, limit=limit)
    return jsonify(
        {
            "events": [event.as_dict() for event in events],
            "cursor": subscription.cursor,
            "has_more": has_more,
        }
    )


@store_bp.route("/realtime/subscriptions/<subscription_id>", methods=["DELETE"])
@api_auth_required
def realtime_unsubscribe(subscription_id: str):
    subscription, error = _get_user_subscription_or_404(
        g.api_user.id, subscription_id
    )
    if error:
        return error

    close_subscription(subscription)
    return jsonify({"status": "closed"})
