import json

from conftest import BOOKS, LibraryApi, books_reply, make_context, reply
from libprobe.checkers.base import BaseChecker
from libprobe.checkers.registry import CATEGORY_ORDER, CHECKERS, by_category, default_checkers
from libprobe.core.engine import Engine
from libprobe.core.models import Payload
from libprobe.reporters.report import Report


class Permissive:
    """Answers 2xx to everything, the way a very trusting API would."""

    def __call__(self, request):
        path = request.url.path
        if path == "/api/auth/login":
            user = json.loads(request.content)["username"]
            return reply(request, success=True, token=f"tok-{user}")
        if path == "/api/books" and request.method == "GET":
            return books_reply(request, BOOKS)
        if path == "/api/books" and request.method == "POST":
            return reply(request, 201, success=True, book={"id": 77})
        if path == "/api/search":
            return books_reply(request, BOOKS[:3])
        return reply(request, success=True, message="ok")


def test_registry_covers_every_category_once():
    assert len(CHECKERS) == 22
    assert len(set(CATEGORY_ORDER)) == 22
    assert CATEGORY_ORDER[0] == "schema-extraction"
    assert CATEGORY_ORDER[-1] == "delete-endpoint"
    assert by_category("jwt").category == "jwt"


def test_every_category_records_one_result_per_payload(config):
    ctx, engine = make_context(Permissive(), config)
    for checker in default_checkers():
        report = Report()
        results = engine.run(checker, report)
        assert len(results) == len(checker.get_payloads()), checker.category
        assert all(r.category == checker.category for r in results)
        assert report.to_dict()["categories"][0]["probes"] == len(results)


def test_probe_failures_do_not_abort_the_category(config):
    def handler(request):
        if request.url.params.get("q") == "boom":
            raise ConnectionResetError("reset")
        return books_reply(request, [])

    class Flaky(BaseChecker):
        name = "flaky"
        category = "flaky"

        def __init__(self):
            self.torn_down = False

        def get_payloads(self):
            return self.wrap(["a", "boom", "b"])

        def check(self, result):
            return None

        def teardown(self, ctx):
            self.torn_down = True

    checker = Flaky()
    ctx, engine = make_context(handler, config)
    results = engine.run(checker)

    assert [r.payload.value for r in results] == ["a", "boom", "b"]
    assert results[1].error and "ConnectionResetError" in results[1].error
    assert results[2].success
    assert checker.torn_down


def test_pacing_sleeps_between_payloads(config):
    config.pacing = 2.0
    ctx, _ = make_context(Permissive(), config)
    slept = []
    engine = Engine(ctx, sleep=slept.append)
    checker = by_category("classic-injection")
    engine.run(checker)
    assert slept == [checker.delay * 2.0] * (len(checker.get_payloads()) - 1)


def test_scan_honours_selection_and_skip_destructive(config):
    config.skip_destructive = True
    config.skip = ["jwt"]
    ctx, engine = make_context(Permissive(), config)
    report = engine.scan(default_checkers(), Report())

    ran = [c["category"] for c in report.to_dict()["categories"]]
    assert "manipulation" not in ran
    assert "put-endpoint" not in ran
    assert "delete-endpoint" not in ran
    assert "jwt" not in ran
    assert ran == [c for c in CATEGORY_ORDER if c in ran]


def test_only_runs_named_categories(config):
    config.only = ["blind", "time-based"]
    ctx, engine = make_context(Permissive(), config)
    report = engine.scan(default_checkers(), Report())
    assert [c["category"] for c in report.to_dict()["categories"]] == ["blind", "time-based"]


def test_two_runs_against_the_same_stub_agree(config):
    def findings():
        ctx, engine = make_context(LibraryApi(), config)
        report = engine.scan(default_checkers(), Report())
        return set(report.findings())

    first, second = findings(), findings()
    assert first == second
    assert any(f.category == "classic-injection" for f in first)


def test_payload_labels_are_unique_within_a_category():
    for checker in default_checkers():
        shown = [p.display for p in checker.get_payloads()]
        assert len(shown) == len(set(shown)), checker.category
        assert all(isinstance(p, Payload) for p in checker.get_payloads())
