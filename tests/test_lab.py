import httpx
import jwt
import pytest

from libprobe import main as cli
from libprobe.core.client import HttpClient
from libprobe.core.config import Config
from libprobe.core.models import ApiReply
from libprobe.reporters.console import Log
from vuln_lab.app import JWT_SECRET, create_app


@pytest.fixture
def lab(tmp_path):
    return create_app(str(tmp_path / "lab.db"), reset=True)


@pytest.fixture
def client(lab):
    with HttpClient("http://lab", transport=httpx.WSGITransport(app=lab)) as c:
        yield c


def _login(client, username="admin"):
    reply = client.send("POST", "/api/auth/login",
                        json={"username": username, "password": "password123"})
    return ApiReply.parse(reply.body).token


def test_login_issues_signed_token(client):
    token = _login(client)
    claims = jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    assert claims["sub"] == "admin"
    assert claims["role"] == "ROLE_ADMIN"
    assert _login(client, "nobody") is None


def test_search_concatenates_the_query(client):
    token = _login(client, "alice")
    normal = client.send("GET", "/api/search", token=token, params={"q": "Tolkien"})
    assert len(ApiReply.parse(normal.body).books) == 2

    injected = client.send("GET", "/api/search", token=token, params={"q": "' OR '1'='1"})
    assert len(ApiReply.parse(injected.body).books) == 8

    broken = client.send("GET", "/api/search", token=token, params={"q": "')"})
    assert broken.status_code == 400
    assert ApiReply.parse(broken.body).error.startswith("Search failed:")


def test_registration_trusts_the_role_field(client):
    reply = client.send("POST", "/api/auth/register",
                        json={"username": "mallory", "password": "x", "role": "ADMIN"})
    assert reply.ok
    claims = jwt.decode(_login_as(client, "mallory", "x"), JWT_SECRET, algorithms=["HS256"])
    assert claims["role"] == "ROLE_ADMIN"


def _login_as(client, username, password):
    reply = client.send("POST", "/api/auth/login", json={"username": username, "password": password})
    return ApiReply.parse(reply.body).token


def test_admin_routes_reject_users(client):
    token = _login(client, "alice")
    reply = client.send("POST", "/api/books", token=token,
                        json={"title": "t", "author": "a", "isbn": "1"})
    assert reply.status_code == 403
    assert client.send("GET", "/api/books").status_code == 401


@pytest.mark.parametrize("method, path", [
    ("PUT", "/api/books/{}"),
    ("DELETE", "/api/books/{}"),
    ("POST", "/api/borrow/{}"),
])
def test_ids_outside_integer_range_are_rejected(client, method, path):
    token = _login(client)
    reply = client.send(method, path.format("999999999999999999999999999999"), token=token,
                        json={"title": "t", "author": "a"})
    assert reply.status_code == 400
    assert ApiReply.parse(reply.body).success is False


def test_full_run_against_lab(lab):
    config = Config(base_url="http://lab", pacing=0, verbose=-1)
    status, report = cli.run(config, transport=httpx.WSGITransport(app=lab),
                             log=Log(verbose=-1), sleep=lambda s: None)
    assert status == 0

    categories = [c["category"] for c in report.to_dict()["categories"]]
    assert len(categories) == 22

    assert report.findings("classic-injection")
    assert report.findings("mass-assignment")
    assert any(f.severity == "critical" for f in report.findings("data-exfiltration"))
    assert report.findings("auth-bypass") == []
    assert report.findings("jwt") == []
    assert report.findings("time-based") == []

    # the seeded catalogue survives the destructive categories
    with HttpClient("http://lab", transport=httpx.WSGITransport(app=lab)) as client:
        books = ApiReply.parse(client.send("GET", "/api/books", token=_login(client)).body).books
    assert len(books) == 8
