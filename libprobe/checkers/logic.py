"""Borrow/return abuse and the PUT/DELETE book endpoints."""

from typing import Any, Dict, List, Optional

from libprobe.checkers.base import BaseChecker, BORROW, DELETE_BOOK, RETURN, UPDATE_BOOK
from libprobe.checkers import payloads as P
from libprobe.core.classifier import error_leak
from libprobe.core.models import ApiReply, Finding, Payload, Probe, ProbeResult

_PLACEHOLDER_BOOK = {"title": "Test", "author": "Test", "isbn": "123"}
_SUSPICIOUS_BODIES = ("xss-and-sql", "long-fields", "wrong-types", "empty-fields")


class BusinessLogic(BaseChecker):
    name = "Business Logic"
    category = "business-logic"
    endpoint = BORROW
    delay = 0.1

    def __init__(self):
        self._book: Optional[int] = None
        self._borrowed = 0

    def get_payloads(self) -> List[Payload]:
        out = [Payload(self.category, "borrow", label=f"borrow same book #{i}")
               for i in range(1, 4)]
        out.append(Payload(self.category, "return", label="return never-borrowed book"))
        return out

    def setup(self, ctx):
        self._borrowed = 0
        self._book = ctx.first_book_id() or 1

    def build(self, ctx, payload):
        if payload.value == "borrow":
            return Probe(BORROW, path_params={"id": self._book}, json={})
        return Probe(RETURN, path_params={"id": P.ABSENT_ID}, json={})

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if result.payload.value == "return" and result.success:
            reply = result.reply
            if reply.success is not False:
                return self.finding(result, "medium", "firm",
                                    "return accepted for a book that was never borrowed")
        return None

    def finalize(self, ctx, results: List[ProbeResult]) -> List[Finding]:
        borrowed = [r for r in results
                    if r.payload.value == "borrow" and r.success and r.reply.success is not False]
        if len(borrowed) < 2:
            return []
        return [Finding(
            category=self.category,
            payload=f"POST /api/borrow/{self._book} x{len(borrowed)}",
            severity="medium",
            confidence="firm",
            evidence=f"same book borrowed {len(borrowed)} times by one user",
            status_code=borrowed[-1].status_code,
        )]

    def execute(self, ctx, payload):
        result = super().execute(ctx, payload)
        if payload.value == "borrow" and result.success:
            self._borrowed += 1
        return result

    def teardown(self, ctx):
        # hand back what the probes borrowed
        for _ in range(self._borrowed):
            ctx.request("POST", RETURN.path(id=self._book), json={})
        self._borrowed = 0


class PutEndpoint(BaseChecker):
    """Hostile bodies against a real book, then malformed ids. The book is restored afterwards."""

    name = "PUT /api/books/{id}"
    category = "put-endpoint"
    endpoint = UPDATE_BOOK
    delay = 0.2
    destructive = True

    def __init__(self):
        self._book: Optional[Dict[str, Any]] = None
        self._dirty = False

    def get_payloads(self) -> List[Payload]:
        bodies = [Payload(self.category, body, label=f"body:{name}")
                  for name, body in P.PUT_BODIES.items()]
        ids = [Payload(self.category, i, label=f"id:{i}") for i in P.INVALID_IDS]
        return bodies + ids

    def setup(self, ctx):
        self._dirty = False
        self._book = None
        reply = ctx.request("GET", "/api/books")
        books = ApiReply.parse(reply.body).books if reply.ok else None
        if books and isinstance(books[0], dict) and books[0].get("id") is not None:
            self._book = books[0]
        elif ctx.logger:
            ctx.logger.warn("No books found to test the PUT endpoint")

    def execute(self, ctx, payload):
        if isinstance(payload.value, dict):
            if self._book is None:
                return ProbeResult.failed(payload, self.endpoint, "no book available to update")
            probe = Probe(self.endpoint, path_params={"id": self._book["id"]}, json=payload.value)
        else:
            probe = Probe(self.endpoint, path_params={"id": payload.value},
                          json=dict(_PLACEHOLDER_BOOK))
        result = ctx.send(probe, payload)
        if result.success:
            self._dirty = True
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if result.status_code == 403:
            return None
        marker = error_leak(result.body, strict=not isinstance(result.payload.value, dict))
        if marker:
            return self.finding(result, "info-disclosure", "firm",
                                f"{marker}: {result.snippet(80)}")
        if isinstance(result.payload.value, dict):
            name = result.payload.label.split(":", 1)[1]
            if result.success and name in _SUSPICIOUS_BODIES:
                return self.finding(result, "medium", "tentative",
                                    f"update with {name} accepted")
            return None
        if result.status_code >= 500:
            return self.finding(result, "low", "tentative",
                                f"unhandled server error for id {result.payload.value!r}")
        if result.success:
            return self.finding(result, "high", "tentative",
                                f"malformed id {result.payload.value!r} accepted")
        return None

    def teardown(self, ctx):
        if not (self._dirty and self._book):
            return
        original = {k: self._book.get(k) for k in ("title", "author", "isbn", "available")
                    if self._book.get(k) is not None}
        token = ctx.admin_token()
        if token is not None and original:
            ctx.request("PUT", self.endpoint.path(id=self._book["id"]), token=token, json=original)


class DeleteEndpoint(BaseChecker):
    """Delete a throwaway book, then malformed and absent ids."""

    name = "DELETE /api/books/{id}"
    category = "delete-endpoint"
    endpoint = DELETE_BOOK
    delay = 0.1
    destructive = True

    CREATED = "created"

    def __init__(self):
        self._created: Optional[int] = None

    def get_payloads(self) -> List[Payload]:
        out = [Payload(self.category, self.CREATED, label="id:created")]
        out += [Payload(self.category, i, label=f"id:{i}") for i in P.DELETE_INVALID_IDS]
        out.append(Payload(self.category, P.ABSENT_ID, label=f"id:{P.ABSENT_ID} (absent)"))
        return out

    def setup(self, ctx):
        self._created = ctx.create_book("DELETE TEST BOOK", "Test Author",
                                        ctx.unique("DELETE-TEST"))
        if self._created is None and ctx.logger:
            ctx.logger.warn("Could not create a test book for DELETE testing")

    def execute(self, ctx, payload):
        if payload.value == self.CREATED:
            if self._created is None:
                return ProbeResult.failed(payload, self.endpoint, "no test book was created")
            result = ctx.send(Probe(self.endpoint, path_params={"id": self._created}), payload,
                              admin_session=ctx.session.is_admin)
            if result.success:
                self._created = None
            return result
        return ctx.send(Probe(self.endpoint, path_params={"id": payload.value}), payload)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if result.status_code == 403:
            return None
        marker = error_leak(result.body, strict=True)
        if marker:
            return self.finding(result, "info-disclosure", "firm",
                                f"{marker}: {result.snippet(80)}")
        if result.status_code >= 500:
            return self.finding(result, "low", "tentative",
                                f"unhandled server error for id {result.payload.value!r}")
        if not result.success:
            return None
        if result.payload.value == self.CREATED:
            if not result.context.get("admin_session"):
                return self.finding(result, "critical", "confirmed",
                                    "non-admin session deleted a book")
            return None
        if result.payload.value == P.ABSENT_ID:
            return self.finding(result, "medium", "tentative",
                                "delete of an absent book reported success")
        return self.finding(result, "high", "tentative",
                            f"malformed id {result.payload.value!r} accepted")

    def teardown(self, ctx):
        if self._created is not None:
            token = ctx.admin_token()
            if token is not None:
                ctx.request("DELETE", self.endpoint.path(id=self._created), token=token)
            self._created = None
