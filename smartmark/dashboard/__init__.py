from smartmark.dashboard.channel import RealtimeChannel
from smartmark.dashboard.client import ApiError, SmartmarkClient
from smartmark.dashboard.reconciler import (
    Bookmark,
    ListEvent,
    filter_bookmarks,
    reduce_bookmarks,
)
from smartmark.dashboard.session import Dashboard, SessionUser

__all__ = [
    "ApiError",
    "Bookmark",
    "Dashboard",
    "ListEvent",
    "RealtimeChannel",
    "SessionUser",
    "SmartmarkClient",
    "filter_bookmarks",
    "reduce_bookmarks",
]
