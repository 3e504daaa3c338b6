"""Checks that go after the database itself through the search endpoint."""

import re
from typing import List, Optional

from libprobe.checkers.base import BaseChecker, LOGIN, REGISTER
from libprobe.checkers import payloads as P
from libprobe.core.classifier import credential_leak, error_leak
from libprobe.core.models import ApiReply, Credential, Finding, Payload, ProbeResult

_IDENT_RX = re.compile(r"^[A-Z_]{4,}$")
_TABLES = ("USERS", "BOOKS", "BORROW_RECORDS")


class SchemaExtraction(BaseChecker):
    name = "Database Schema Extraction"
    category = "schema-extraction"

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.SCHEMA_EXTRACTION)

    @staticmethod
    def identifiers(body: str) -> List[str]:
        """UPPER_CASE names that came back in the book columns."""
        found = []
        for row in ApiReply.parse(body).books or []:
            if not isinstance(row, dict):
                continue
            for key in ("title", "author", "isbn"):
                value = row.get(key)
                if isinstance(value, str) and _IDENT_RX.match(value) and value not in found:
                    found.append(value)
        return found

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.success:
            return None
        tables = [t for t in _TABLES if t in result.body]
        names = self.identifiers(result.body)
        if tables:
            extra = f"; identifiers: {', '.join(names[:10])}" if names else ""
            return self.finding(result, "high", "confirmed",
                                f"tables leaked: {' '.join(tables)}{extra}")
        if names:
            return self.finding(result, "high", "tentative",
                                f"identifiers in book columns: {', '.join(names[:10])}")
        return None


class DataExfiltration(BaseChecker):
    name = "Data Exfiltration"
    category = "data-exfiltration"
    delay = 0.4

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.DATA_EXFILTRATION)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.success:
            return None
        leaked = credential_leak(result.body)
        if leaked:
            return self.finding(result, "critical", "confirmed",
                                f"password hash in response: {leaked}...")
        body = result.body
        if "ROLE_ADMIN" in body or ("admin" in body and "@" in body):
            return self.finding(result, "medium", "tentative",
                                "admin account details in response")
        return None


class Manipulation(BaseChecker):
    """
    Stacked INSERT/UPDATE/DELETE/DROP statements. Book count is sampled before
    and after every probe, so a DELETE or DROP that lands is confirmed.
    """

    name = "Database Manipulation"
    category = "manipulation"
    delay = 0.5
    timeout = 5.0
    destructive = True

    def __init__(self):
        self._books: Optional[int] = None

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.MANIPULATION)

    def _count_books(self, ctx) -> Optional[int]:
        reply = ctx.request("GET", "/api/books")
        books = ApiReply.parse(reply.body).books if reply.ok else None
        return len(books) if books is not None else None

    def setup(self, ctx):
        self._books = self._count_books(ctx)

    def execute(self, ctx, payload):
        result = ctx.send(self.build(ctx, payload), payload)
        before = self._books
        after = self._count_books(ctx)
        result.context["books_before"] = before
        result.context["books_after"] = after
        if before is not None and (after is None or after < before):
            result.context["persisted"] = True
        self._books = after
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if result.context.get("persisted"):
            before = result.context.get("books_before")
            after = result.context.get("books_after")
            state = "book listing broken" if after is None else f"{before} → {after} books"
            return self.finding(result, "critical", "confirmed",
                                f"database changed after probe: {state}")
        if result.status_code != 200 or result.elapsed > 2.0:
            return self.finding(result, "high", "tentative",
                                f"HTTP {result.status_code} in {result.describe_elapsed()}")
        return None


class StoredProcedure(BaseChecker):
    name = "Stored Procedure / Function Abuse"
    category = "stored-procedure"

    _rx = re.compile(r"SYSTEM_USER|CURRENT_USER|\bADMIN\b|\bSA\b")

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.STORED_PROCEDURE)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.success:
            return None
        m = self._rx.search(result.body)
        if m:
            return self.finding(result, "medium", "tentative",
                                f"system information in response: {m.group(0)}")
        return None


class SecondOrder(BaseChecker):
    """
    Store the payload as a username, then read it back: log in as that
    user and search for it. Failures on the read side are the signal.
    """

    name = "Second-Order SQL Injection"
    category = "second-order"
    delay = 0.5

    def __init__(self):
        self._n = 0

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.SECOND_ORDER)

    def setup(self, ctx):
        self._n = 0

    def execute(self, ctx, payload):
        self._n += 1
        username = f"so{self._n}_{ctx.run_id}{payload.value}"
        cred = Credential(username, "Secret123!")

        reg = ctx.request("POST", REGISTER.route, token=None,
                          json={**cred.as_body(), "role": "USER"})
        if not reg.ok:
            result = ProbeResult.from_reply(payload, REGISTER, reg, registered=False)
            return result

        login = ctx.request("POST", LOGIN.route, token=None, json=cred.as_body())
        probe = self.build(ctx, Payload(self.category, username))
        result = ctx.send(probe, payload, registered=True,
                          login_status=login.status_code, login_body=login.body[:300])
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.context.get("registered"):
            return None
        login_body = result.context.get("login_body", "")
        login_status = result.context.get("login_status", 0)
        for where, status, body in (("login", login_status, login_body),
                                    ("search", result.status_code, result.body)):
            marker = error_leak(body)
            if marker or status >= 500:
                return self.finding(result, "medium", "tentative",
                                    f"stored payload broke {where} (HTTP {status}"
                                    f"{', ' + marker if marker else ''})")
        return None
