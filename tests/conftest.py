import json
from urllib.parse import unquote

import httpx
import pytest

from libprobe.core.client import HttpClient
from libprobe.core.config import Config
from libprobe.core.engine import Engine, ProbeContext
from libprobe.core.models import Session
from libprobe.reporters.console import Log

BOOKS = [
    {"id": i, "title": f"Book {i}", "author": f"Author {i}", "isbn": str(9000 + i),
     "available": True}
    for i in range(1, 9)
]


def reply(request: httpx.Request, status: int = 200, **data) -> httpx.Response:
    return httpx.Response(status, request=request, json=data)


def books_reply(request: httpx.Request, books) -> httpx.Response:
    return reply(request, 200, success=True, message=f"Found {len(books)} books",
                 books=list(books))


class FakeClock:
    """Monotonic clock the mock handlers move forward."""

    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class LibraryApi:
    """
    In-memory stand-in for the target. Search answers four books for any
    query and all eight when q carries the quote-OR tautology.
    """

    def __init__(self, token="abc", admin_ok=True, injectable=True):
        self.token = token
        self.admin_ok = admin_ok
        self.injectable = injectable
        self.requests = []

    def search(self, request, q):
        if self.injectable and "' OR '1'='1" in q:
            return books_reply(request, BOOKS)
        return books_reply(request, BOOKS[:4])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path)
        if path == "/api/auth/login":
            body = json.loads(request.content or b"{}")
            if body.get("username") == "admin" and self.admin_ok:
                return reply(request, success=True, token=self.token, username="admin")
            return reply(request, 401, success=False, error="Invalid username or password")
        if path == "/api/auth/register":
            return reply(request, 400, success=False, error="Username already exists")
        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return reply(request, 401, success=False, error="Authentication required")
        if path == "/api/search":
            return self.search(request, request.url.params.get("q", ""))
        if path == "/api/books" and request.method == "GET":
            return books_reply(request, BOOKS)
        return reply(request, 403, success=False, error="Access denied")


@pytest.fixture
def quiet():
    return Log(verbose=-1)


@pytest.fixture
def config():
    return Config(base_url="http://lib.test", pacing=0, verbose=-1)


def make_context(handler, config, clock=None, session=None):
    client = HttpClient(config.base_url, transport=httpx.MockTransport(handler),
                        clock=clock or FakeClock())
    session = session or Session(token="abc", username="admin", origin="admin")
    ctx = ProbeContext(client, session, config, logger=Log(verbose=-1), run_id="t1")
    return ctx, Engine(ctx, sleep=lambda s: None)
