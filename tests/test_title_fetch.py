import socket
import threading
import time

import httpx
import pytest

from smartmark.services import titles
from smartmark.services.titles import extract_title, fetch_title


def _html_transport(body: str, status_code: int = 200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(
            status_code,
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/html; charset=utf-8"},
        )

    return httpx.MockTransport(handler)


def test_extract_title_takes_first_title_and_trims():
    document = """
    <html><head>
      <TITLE lang="en">
         Example
      </TITLE>
      <title>Second</title>
    </head></html>
    """
    assert extract_title(document) == "Example"


def test_extract_title_missing_tag_returns_empty():
    assert extract_title("<html><body>No head here</body></html>") == ""
    assert extract_title("<title></title>") == ""


def test_fetch_title_sends_identifying_user_agent():
    seen = []
    title = fetch_title(
        "https://example.com",
        user_agent="Mozilla/5.0 (compatible; SmartBookmark/1.0)",
        transport=_html_transport("<title>Example</title>", seen=seen),
    )

    assert title == "Example"
    assert seen[0].headers["User-Agent"] == "Mozilla/5.0 (compatible; SmartBookmark/1.0)"


def test_fetch_title_network_error_returns_empty():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert fetch_title("https://unreachable.invalid", transport=httpx.MockTransport(handler)) == ""


def test_fetch_title_timeout_returns_empty():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    assert fetch_title("https://slow.example", transport=httpx.MockTransport(handler)) == ""


def test_fetch_title_unreachable_host_returns_within_timeout():
    started = time.monotonic()
    # TEST-NET-1 is reserved and never routable.
    title = fetch_title("http://192.0.2.1/", timeout=0.5)
    elapsed = time.monotonic() - started

    assert title == ""
    assert elapsed < 5


@pytest.fixture
def drip_server():
    """Serve a page whose body trickles in ten bytes at a time."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    stop = threading.Event()

    def serve(prefix: bytes, interval: float):
        conn, _ = listener.accept()
        with conn:
            conn.recv(65536)
            conn.sendall(
                b"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n"
                b"Content-Length: 1000000\r\n\r\n" + prefix
            )
            while not stop.wait(interval):
                try:
                    conn.sendall(b"<!-- x -->")
                except OSError:
                    break

    def start(prefix: bytes = b"", interval: float = 0.2) -> str:
        threading.Thread(target=serve, args=(prefix, interval), daemon=True).start()
        return f"http://127.0.0.1:{listener.getsockname()[1]}/"

    yield start
    stop.set()
    listener.close()


def test_fetch_title_gives_up_on_slow_body_at_deadline(drip_server):
    url = drip_server()

    started = time.monotonic()
    title = fetch_title(url, timeout=1.0)
    elapsed = time.monotonic() - started

    assert title == ""
    assert elapsed < 2.5


def test_fetch_title_keeps_title_read_before_deadline(drip_server):
    url = drip_server(b"<html><head><title>Slow page</title>")

    started = time.monotonic()
    title = fetch_title(url, timeout=1.0)

    assert title == "Slow page"
    assert time.monotonic() - started < 2.5


def test_fetch_title_api_returns_title(client, monkeypatch):
    calls = []

    def _fake_fetch_html(url, timeout, user_agent, max_bytes, transport=None):
        calls.append((url, timeout, user_agent))
        return "<html><head><title>Example</title></head></html>"

    monkeypatch.setattr(titles, "fetch_html", _fake_fetch_html)

    response = client.get("/api/fetch-title", query_string={"url": "https://example.com"})
    assert response.status_code == 200
    assert response.get_json() == {"title": "Example"}
    assert calls == [
        ("https://example.com", 5.0, "Mozilla/5.0 (compatible; SmartBookmark/1.0)")
    ]


def test_fetch_title_api_requires_url(client):
    response = client.get("/api/fetch-title")
    assert response.status_code == 400
    assert response.get_json() == {"title": ""}


def test_fetch_title_api_failure_is_empty_title(client, monkeypatch):
    def _boom(*args, **kwargs):
        raise httpx.ConnectTimeout("timed out")

    monkeypatch.setattr(titles, "fetch_html", _boom)

    response = client.get("/api/fetch-title", query_string={"url": "https://down.example"})
    assert response.status_code == 200
    assert response.get_json() == {"title": ""}
