"""Malformed ids, traversal strings, and hostile book bodies."""

import re
from typing import List, Optional

from libprobe.checkers.base import BaseChecker, ADD_BOOK, BORROW, SEARCH
from libprobe.checkers import payloads as P
from libprobe.core.classifier import error_leak, stack_trace
from libprobe.core.models import Endpoint, Finding, Payload, Probe, ProbeResult


class _CreatedBooks:
    """Deletes, at teardown, any book a probe managed to create."""

    def _reset_created(self):
        self._created: List[int] = []

    def _remember(self, result: ProbeResult):
        if result.success:
            book_id = result.reply.book_id
            if book_id is not None:
                self._created.append(book_id)

    def teardown(self, ctx):
        token = ctx.admin_token() if self._created else None
        for book_id in getattr(self, "_created", []):
            if token is None:
                break
            ctx.request("DELETE", f"/api/books/{book_id}", token=token)
        self._created = []


class TypeConfusion(BaseChecker):
    name = "Type Confusion (borrow id)"
    category = "type-confusion"
    endpoint = BORROW
    delay = 0.1

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.TYPE_CONFUSION)

    def build(self, ctx, payload):
        return Probe(self.endpoint, path_params={"id": payload.value}, json={})

    def check(self, result: ProbeResult) -> Optional[Finding]:
        marker = error_leak(result.body, strict=True)
        if marker:
            return self.finding(result, "info-disclosure", "firm",
                                f"{marker}: {result.snippet()}")
        if result.status_code >= 500:
            return self.finding(result, "low", "tentative",
                                f"unhandled server error for id {result.payload.value!r}")
        return None


class PathTraversal(BaseChecker):
    name = "Path Traversal"
    category = "path-traversal"
    endpoint = SEARCH
    delay = 0.1

    _hit = [
        re.compile(r"^root:x:0:0:", re.M),
        re.compile(r"\b/bin/(bash|sh|zsh)\b"),
        re.compile(r"^\[boot loader\]", re.I | re.M),
        re.compile(r"for 16-bit app support", re.I),
    ]

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.PATH_TRAVERSAL)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        for rx in self._hit:
            if rx.search(result.body):
                return self.finding(result, "high", "confirmed",
                                    f"file content in response: {rx.pattern}")
        marker = error_leak(result.body)
        if marker:
            return self.finding(result, "info-disclosure", "tentative",
                                f"{marker}: {result.snippet()}")
        return None


class InputValidation(_CreatedBooks, BaseChecker):
    name = "Input Validation (add book)"
    category = "input-validation"
    endpoint = ADD_BOOK
    delay = 0.1

    def __init__(self):
        self._reset_created()

    def get_payloads(self) -> List[Payload]:
        return self.wrap_labelled(P.INPUT_VALIDATION)

    def build(self, ctx, payload):
        return Probe(self.endpoint, json=payload.value)

    def execute(self, ctx, payload):
        result = super().execute(ctx, payload)
        self._remember(result)
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        marker = error_leak(result.body)
        if marker:
            return self.finding(result, "info-disclosure", "firm",
                                f"{marker}: {result.snippet()}")
        if not result.success:
            return None
        if "<script>" in result.body:
            return self.finding(result, "medium", "firm",
                                "markup stored and echoed back unescaped")
        return self.finding(result, "medium", "tentative",
                            f"{result.payload.display} accepted (HTTP {result.status_code})")


class ExtremeInput(_CreatedBooks, BaseChecker):
    name = "Extreme Inputs"
    category = "extreme-input"
    endpoint = ADD_BOOK
    delay = 0.1

    def __init__(self):
        self._reset_created()

    def get_payloads(self) -> List[Payload]:
        return self.wrap_labelled(P.EXTREME_INPUT)

    def build(self, ctx, payload):
        return Probe(self.endpoint, content=payload.value)

    def execute(self, ctx, payload):
        result = super().execute(ctx, payload)
        self._remember(result)
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if result.status_code >= 500:
            return self.finding(result, "medium", "tentative",
                                f"server error on {result.payload.display}")
        marker = error_leak(result.body)
        if marker:
            return self.finding(result, "info-disclosure", "firm",
                                f"{marker}: {result.snippet()}")
        if result.success:
            return self.finding(result, "low", "tentative",
                                f"{result.payload.display} body accepted")
        return None


class ErrorHandling(BaseChecker):
    name = "Error Handling"
    category = "error-handling"
    endpoint = ADD_BOOK
    delay = 0.1

    _unknown = Endpoint("GET", "/api/nonexistent")

    def get_payloads(self) -> List[Payload]:
        return [
            Payload(self.category, P.MALFORMED_JSON, label="malformed-json"),
            Payload(self.category, self._unknown.route, label="unknown-endpoint"),
        ]

    def build(self, ctx, payload):
        if payload.label == "unknown-endpoint":
            return Probe(self._unknown)
        return Probe(self.endpoint, content=payload.value)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if stack_trace(result.body):
            return self.finding(result, "info-disclosure", "confirmed",
                                f"stack trace exposed: {result.snippet(200)}")
        marker = error_leak(result.body)
        if marker:
            return self.finding(result, "info-disclosure", "tentative",
                                f"{marker}: {result.snippet(200)}")
        return None
