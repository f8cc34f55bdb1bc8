from __future__ import annotations

import html
import re
import time

import httpx


TITLE_PATTERN = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def fetch_html(
    url: str,
    timeout: float,
    user_agent: str,
    max_bytes: int,
    transport: httpx.BaseTransport | None = None,
) -> str:
    headers = {"User-Agent": user_agent, "Accept": DEFAULT_ACCEPT}
    deadline = time.monotonic() + timeout
    with httpx.Client(
        follow_redirects=True, timeout=timeout, headers=headers, transport=transport
    ) as client:
        with client.stream("GET", url) as response:
            chunks = []
            total = 0
            for chunk in response.iter_bytes():
                total += len(chunk)
                chunks.append(chunk)
                if total >= max_bytes or time.monotonic() >= deadline:
                    break
            data = b"".join(chunks)[:max_bytes]
            encoding = response.encoding or "utf-8"
            return data.decode(encoding, errors="ignore")


def extract_title(document: str) -> str:
    match = TITLE_PATTERN.search(document or "")
    if not match:
        return ""
    return html.unescape(match.group(1)).strip()


def fetch_title(
    url: str,
    timeout: float = 5.0,
    user_agent: str = "Mozilla/5.0 (compatible; SmartBookmark/1.0)",
    max_bytes: int = 1_000_000,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Return the trimmed ``<title>`` of ``url``, or ``""`` on any failure.

    One request, no retries. ``timeout`` also caps the whole body read: a
    server that trickles bytes is cut off at the deadline and whatever arrived
    by then is searched for the title.
    """
    try:
        document = fetch_html(
            url,
            timeout=timeout,
            user_agent=user_agent,
            max_bytes=max_bytes,
            transport=transport,
        )
    except Exception:
        return ""
    return extract_title(document)
