import math

import httpx

from conftest import FakeClock
from libprobe.core.client import HttpClient


def _client(handler, clock=None):
    return HttpClient("http://lib.test/", transport=httpx.MockTransport(handler),
                      clock=clock or FakeClock())


def test_bearer_header_only_when_token_given():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, request=request, json={"success": True})

    with _client(handler) as client:
        client.send("GET", "/api/books", token="abc")
        client.send("GET", "/api/books")

    assert seen == ["Bearer abc", None]


def test_body_and_status_are_returned_for_error_statuses():
    def handler(request):
        return httpx.Response(400, request=request, text='{"error": "Search failed: x"}')

    with _client(handler) as client:
        reply = client.send("GET", "/api/search", params={"q": "'"})

    assert reply.status_code == 400
    assert "Search failed" in reply.body
    assert reply.error is None
    assert not reply.ok


def test_elapsed_comes_from_the_clock():
    clock = FakeClock()

    def handler(request):
        clock.now += 1.5
        return httpx.Response(200, request=request, text="{}")

    with _client(handler, clock) as client:
        reply = client.send("GET", "/api/books")

    assert reply.elapsed == 1.5


def test_timeout_is_recorded_not_raised():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with _client(handler) as client:
        reply = client.send("GET", "/api/search", params={"q": "x"}, timeout=0.1)

    assert reply.timed_out
    assert math.isinf(reply.elapsed)
    assert reply.error.startswith("timeout")


def test_connection_error_is_recorded_not_raised():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with _client(handler) as client:
        reply = client.send("POST", "/api/auth/login", json={"username": "a"})

    assert not reply.timed_out
    assert reply.status_code == 0
    assert "ConnectError" in reply.error


def test_raw_content_is_sent_as_is():
    bodies = []

    def handler(request):
        bodies.append((request.headers.get("Content-Type"), request.content))
        return httpx.Response(400, request=request, text="{}")

    with _client(handler) as client:
        client.send("POST", "/api/books", token="abc", content='{title: "Book"}')

    assert bodies == [("application/json", b'{title: "Book"}')]
