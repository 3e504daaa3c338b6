"""SQL injection against the search endpoint: classic, enhanced, error-based, error disclosure."""

import re
from typing import List, Optional

from libprobe.checkers.base import BaseChecker
from libprobe.checkers import payloads as P
from libprobe.core.classifier import credential_leak, error_leak, row_count, stack_trace
from libprobe.core.models import ApiReply, Finding, Payload, ProbeResult


class ClassicInjection(BaseChecker):
    """
    Tautologies and UNIONs in q. A hit is a search that returns more rows
    than a benign search for a string no book contains.
    """

    name = "SQL Injection (classic)"
    category = "classic-injection"
    delay = 0.1

    def __init__(self, baseline_rows: Optional[int] = None):
        self.baseline_rows = baseline_rows
        self._baseline: Optional[int] = None

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.CLASSIC_INJECTION)

    def setup(self, ctx):
        self._baseline = self.baseline_rows
        if self._baseline is None:
            self._baseline = ctx.config.baseline_rows
        if self._baseline is None:
            reply = ctx.request("GET", self.endpoint.route, params={"q": ctx.unique("nomatch")})
            books = ApiReply.parse(reply.body).books if reply.ok else None
            if books is None:
                if ctx.logger:
                    ctx.logger.warn("Benign search failed, row-count baseline unknown")
                return
            self._baseline = len(books)
        if ctx.logger:
            ctx.logger.debug(f"Row-count baseline: {self._baseline}")

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.success or self._baseline is None:
            return None
        rows = row_count(result)
        if rows is None or rows <= self._baseline:
            return None
        return self.finding(result, "high", "firm",
                            f"{rows} rows returned, benign search returns {self._baseline}")


class EnhancedInjection(BaseChecker):
    """UNION extraction aimed at credentials and metadata."""

    name = "SQL Injection (credential extraction)"
    category = "enhanced-injection"
    delay = 0.2

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.ENHANCED_INJECTION)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.success:
            return None
        leaked = credential_leak(result.body)
        if leaked:
            return self.finding(result, "critical", "confirmed",
                                f"password hash in response: {leaked}...")
        for row in ApiReply.parse(result.body).books or []:
            if isinstance(row, dict) and ("password" in row or "username" in row):
                return self.finding(result, "high", "firm",
                                    f"user columns in search rows: {sorted(row)[:6]}")
        return None


class ErrorBasedInjection(BaseChecker):
    name = "SQL Injection (error-based)"
    category = "error-based"

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.ERROR_BASED)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if stack_trace(result.body):
            return self.finding(result, "info-disclosure", "confirmed",
                                f"stack trace: {result.snippet()}")
        marker = error_leak(result.body)
        if marker:
            return self.finding(result, "info-disclosure", "firm",
                                f"SQL error exposed ({marker}): {result.snippet()}")
        return None


class ErrorDisclosure(BaseChecker):
    """Malformed queries that should fail, checked for engine detail in the failure."""

    name = "Database Error Disclosure"
    category = "error-disclosure"

    _markers = [
        re.compile(r"SQLState"),
        re.compile(r"SQLCODE"),
        re.compile(r"syntax error", re.I),
        re.compile(r"\bTable\b"),
        re.compile(r"\bColumn\b"),
        re.compile(r"does not exist"),
        re.compile(r"H2 Database"),
        re.compile(r"no such (?:table|column)"),
        re.compile(r"SELECTs to the left and right of UNION", re.I),
    ]

    def get_payloads(self) -> List[Payload]:
        return self.wrap_labelled(P.ERROR_DISCLOSURE)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        for rx in self._markers:
            m = rx.search(result.body)
            if m:
                return self.finding(result, "info-disclosure", "firm",
                                    f"{m.group(0)}: {result.snippet(120)}")
        return None
