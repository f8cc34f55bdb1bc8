from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

from smartmark.dashboard.reconciler import Bookmark


logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A failed call to the Smart Bookmark server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SmartmarkClient:
    """Synchronous HTTP client for the store, push channel and proxy endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(str(exc) or exc.__class__.__name__) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.is_error:
            message = payload.get("error") or f"HTTP {response.status_code}"
            logger.debug("%s %s -> %s: %s", method, path, response.status_code, message)
            raise ApiError(message, status_code=response.status_code)
        return payload

    # Identity

    def current_user(self) -> dict:
        return self._request("GET", "/api/v1/me")

    # Store

    def list_bookmarks(self) -> list[Bookmark]:
        payload = self._request("GET", "/api/v1/bookmarks")
        return [Bookmark.from_dict(item) for item in payload.get("items") or []]

    def insert_bookmark(self, url: str, title: str) -> Bookmark:
        payload = self._request(
            "POST", "/api/v1/bookmarks", json={"url": url, "title": title}
        )
        return Bookmark.from_dict(payload)

    def delete_bookmark(self, bookmark_id: str) -> None:
        self._request("DELETE", f"/api/v1/bookmarks/{bookmark_id}")

    # Push channel

    def subscribe(self) -> str:
        payload = self._request("POST", "/api/v1/realtime/subscriptions")
        return payload["id"]

    def pull_events(self, subscription_id: str, limit: int = 200) -> dict:
        return self._request(
            "GET",
            f"/api/v1/realtime/subscriptions/{subscription_id}/events",
            params={"limit": limit},
        )

    def unsubscribe(self, subscription_id: str) -> None:
        self._request("DELETE", f"/api/v1/realtime/subscriptions/{subscription_id}")

    # Proxies

    def fetch_title(self, url: str) -> str:
        payload = self._request("GET", "/api/fetch-title", params={"url": url})
        return payload.get("title") or ""

    def ai_search(self, query: str, bookmarks: Iterable[Bookmark]) -> list[str]:
        payload = self._request(
            "POST",
            "/api/ai-search",
            json={
                "query": query,
                "bookmarks": [item.as_candidate() for item in bookmarks],
            },
        )
        matched = payload.get("matchedIds")
        if not isinstance(matched, list):
            raise ApiError(payload.get("error") or "AI search failed")
        return [str(item) for item in matched]
