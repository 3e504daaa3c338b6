import json

from libprobe.checkers.blind import TimeBased
from libprobe.checkers.sqli import ClassicInjection, ErrorBasedInjection
from libprobe.core import classifier
from libprobe.core.models import Payload, ProbeResult


def _result(category="classic-injection", status=200, body="", **kw):
    return ProbeResult(category=category, payload=Payload(category, "x"), endpoint=None,
                       status_code=status, body=body, **kw)


def _books(n):
    return json.dumps({"success": True, "books": [{"id": i} for i in range(n)]})


def test_error_leak_markers():
    assert classifier.error_leak('{"error": "Search failed: near \\"x\\": syntax error"}')
    assert classifier.error_leak("org.h2.jdbc.JdbcSQLSyntaxErrorException: Table \"FOO\" not found")
    assert classifier.error_leak('{"error": "Book not found"}') is None


def test_error_leak_strict_list_is_narrower():
    body = '{"error": "no such column: foo"}'
    assert classifier.error_leak(body)
    assert classifier.error_leak(body, strict=True) is None
    assert classifier.error_leak("NumberFormatException: For input string", strict=True)


def test_stack_trace_needs_exception_and_frame():
    assert classifier.stack_trace("java.lang.IllegalStateException\n\tat com.lib.Foo.bar(Foo.java:12)")
    assert not classifier.stack_trace("looking at the shelf")


def test_credential_leak_shapes():
    assert classifier.credential_leak('{"author": "$2a$10$abcdefghijklmnopqrstuv"}')
    werkzeug = "scrypt:32768:8:1$0nJ3a1b2$" + "ab" * 64
    assert classifier.credential_leak(json.dumps({"author": werkzeug}))
    hexhash = "5f4dcc3b5aa765d61d8327deb882cf99"
    assert classifier.credential_leak(json.dumps({"username": "admin", "password": hexhash}))
    assert classifier.credential_leak(json.dumps({"isbn": hexhash})) is None


def test_truthiness_is_rows_in_a_success_reply():
    assert classifier.is_truthy(_result(body=_books(3)))
    assert not classifier.is_truthy(_result(body=_books(0)))
    assert not classifier.is_truthy(_result(status=400, body=_books(3)))
    assert not classifier.is_truthy(_result(body="x" * 500))


def test_transport_errors_never_become_findings():
    checker = ErrorBasedInjection()
    result = _result(category="error-based", body="SQLException", error="ConnectError: refused")
    assert classifier.classify(checker, result) is None


def test_timeout_is_evidence_only_for_time_based():
    timed_out = dict(elapsed=float("inf"), timed_out=True, error="timeout: ReadTimeout")

    classic = ClassicInjection(baseline_rows=0)
    assert classifier.classify(classic, _result(**timed_out)) is None

    time_based = TimeBased()
    finding = classifier.classify(time_based, _result(category="time-based", **timed_out))
    assert finding is not None
    assert finding.confidence == "tentative"


def test_classifier_exception_is_contained():
    class Broken(ClassicInjection):
        def check(self, result):
            raise RuntimeError("boom")

    assert classifier.classify(Broken(), _result(body=_books(9))) is None
