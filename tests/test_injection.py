import httpx
import pytest

from conftest import BOOKS, FakeClock, LibraryApi, books_reply, make_context
from libprobe.checkers import payloads as P
from libprobe.checkers.blind import BlindBoolean, TimeBased
from libprobe.checkers.sqli import ClassicInjection
from libprobe.core.client import HttpClient
from libprobe.core.session import SessionManager
from libprobe.reporters.report import Report

TAUTOLOGY = "' OR '1'='1"


def test_stub_target_session_and_classic_injection(config):
    api = LibraryApi(token="abc")
    client = HttpClient(config.base_url, transport=httpx.MockTransport(api), clock=FakeClock())
    session = SessionManager(client).authenticate(config.admin, config.fallback)
    assert session.token == "abc"

    ctx, engine = make_context(api, config, session=session)
    report = Report()
    results = engine.run(ClassicInjection(), report)

    assert len(results) == len(P.CLASSIC_INJECTION)
    flagged = {f.payload for f in report.findings("classic-injection")}
    assert flagged == {p for p in P.CLASSIC_INJECTION if TAUTOLOGY in p}
    for f in report.findings("classic-injection"):
        assert "8 rows" in f.evidence and "returns 4" in f.evidence


def test_classic_injection_no_findings_when_rows_never_grow(config):
    ctx, engine = make_context(LibraryApi(injectable=False), config)
    report = Report()
    engine.run(ClassicInjection(), report)
    assert report.findings("classic-injection") == []


def test_classic_injection_uses_configured_baseline(config):
    config.baseline_rows = 8
    ctx, engine = make_context(LibraryApi(), config)
    report = Report()
    engine.run(ClassicInjection(), report)
    assert report.findings("classic-injection") == []


def _blind_handler(true_rows, false_rows):
    def handler(request):
        q = request.url.params.get("q", "")
        if "1=2" in q:
            return books_reply(request, BOOKS[:false_rows])
        if "1=1" in q:
            return books_reply(request, BOOKS[:true_rows])
        return books_reply(request, BOOKS[:2])
    return handler


def test_blind_boolean_differential(config):
    ctx, engine = make_context(_blind_handler(4, 0), config)
    report = Report()
    results = engine.run(BlindBoolean(), report)

    assert len(results) == len(P.BLIND)
    findings = report.findings("blind")
    assert len(findings) == 1
    assert findings[0].severity == "high"
    assert "1=1 → 4 rows" in findings[0].evidence


@pytest.mark.parametrize("rows", [0, 4])
def test_blind_boolean_same_truthiness_is_not_a_finding(config, rows):
    ctx, engine = make_context(_blind_handler(rows, rows), config)
    report = Report()
    engine.run(BlindBoolean(), report)
    assert report.findings("blind") == []


def _slow_handler(clock, slow_payloads):
    def handler(request):
        q = request.url.params.get("q", "")
        clock.now += 3.0 if q in slow_payloads else 0.05
        return books_reply(request, [])
    return handler


def test_time_based_flags_only_the_delayed_payload(config):
    clock = FakeClock()
    delayed = P.TIME_BASED[0]
    ctx, engine = make_context(_slow_handler(clock, {delayed}), config, clock=clock)
    report = Report()
    engine.run(TimeBased(), report)

    findings = report.findings("time-based")
    assert [f.payload for f in findings] == [delayed]
    assert findings[0].confidence == "firm"


def test_time_based_quiet_target(config):
    clock = FakeClock()
    ctx, engine = make_context(_slow_handler(clock, set()), config, clock=clock)
    report = Report()
    engine.run(TimeBased(), report)
    assert report.findings("time-based") == []


def test_time_based_timeout_is_a_possible_finding(config):
    def handler(request):
        q = request.url.params.get("q", "")
        if q == P.TIME_BASED[1]:
            raise httpx.ReadTimeout("slow", request=request)
        return books_reply(request, [])

    ctx, engine = make_context(handler, config)
    report = Report()
    engine.run(TimeBased(), report)

    findings = report.findings("time-based")
    assert len(findings) == 1
    assert findings[0].possible
    assert report.to_dict()["categories"][0]["timeouts"] == 1


def test_user_token_falls_back_to_a_registered_account(config):
    api = LibraryApi()
    ctx, _ = make_context(api, config)
    # alice cannot log in on the stub, so a throwaway account is registered
    assert ctx.user_token() is None
    paths = [r.url.path for r in api.requests]
    assert paths == ["/api/auth/login", "/api/auth/register", "/api/auth/login"]
