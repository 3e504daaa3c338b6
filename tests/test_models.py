from libprobe.core.models import ApiReply, Endpoint, Finding, Payload, ProbeResult


def test_api_reply_tolerates_missing_fields():
    reply = ApiReply.parse('{"success": true}')
    assert reply.success is True
    assert reply.token is None
    assert reply.books is None
    assert reply.book_id is None


def test_api_reply_never_raises_on_garbage():
    for body in ("", "not json", "[1, 2]", "<html>500</html>", "null"):
        reply = ApiReply.parse(body)
        assert reply.success is None
        assert reply.raw == {}


def test_api_reply_extracts_token_and_ids():
    reply = ApiReply.parse('{"success": true, "token": "abc", "username": "admin"}')
    assert reply.token == "abc"
    assert reply.username == "admin"

    assert ApiReply.parse('{"bookId": "12"}').book_id == 12
    assert ApiReply.parse('{"book": {"id": 7, "title": "x"}}').book_id == 7
    assert ApiReply.parse('{"books": [{"id": 3}]}').book_id == 3


def test_api_reply_ignores_empty_or_non_string_token():
    assert ApiReply.parse('{"token": ""}').token is None
    assert ApiReply.parse('{"token": 42}').token is None


def test_endpoint_path_encodes_each_value_as_one_segment():
    ep = Endpoint("DELETE", "/api/books/{id}")
    assert ep.path(id="../etc/passwd") == "/api/books/..%2Fetc%2Fpasswd"
    assert ep.path(id="1 OR 1=1") == "/api/books/1%20OR%201%3D1"
    assert ep.path(id=5) == "/api/books/5"


def test_payload_display():
    assert Payload("jwt", "x", label="none-alg").display == "none-alg"
    assert Payload("blind", "' AND 1=1 --").display == "' AND 1=1 --"
    assert Payload("mass-assignment", {"role": "ADMIN"}).display == '{"role": "ADMIN"}'


def test_probe_result_timeout_rendering():
    result = ProbeResult(category="time-based", payload=Payload("time-based", "x"),
                         endpoint=None, elapsed=float("inf"), timed_out=True)
    assert result.describe_elapsed() == "timeout"
    assert not result.success


def test_finding_possible_marker():
    f = Finding("blind", "p", "high", "tentative")
    assert f.possible
    assert "possible" in str(f)
    assert not Finding("blind", "p", "high", "firm").possible
    assert f.to_dict()["confidence"] == "tentative"
