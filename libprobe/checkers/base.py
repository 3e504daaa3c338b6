"""Abstract base for all category handlers."""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from libprobe.core.models import Endpoint, Finding, Payload, Probe, ProbeResult

SEARCH = Endpoint("GET", "/api/search")
BOOKS = Endpoint("GET", "/api/books")
ADD_BOOK = Endpoint("POST", "/api/books", auth="admin")
UPDATE_BOOK = Endpoint("PUT", "/api/books/{id}", auth="admin")
DELETE_BOOK = Endpoint("DELETE", "/api/books/{id}", auth="admin")
BORROW = Endpoint("POST", "/api/borrow/{id}")
RETURN = Endpoint("POST", "/api/return/{id}")
LOGIN = Endpoint("POST", "/api/auth/login", auth="none")
REGISTER = Endpoint("POST", "/api/auth/register", auth="none")


class BaseChecker(ABC):
    """Every checker must implement get_payloads() and check()."""

    name: str = "Unnamed Checker"
    category: str = ""
    endpoint: Endpoint = SEARCH
    delay: float = 0.3                 # seconds between requests
    timeout: Optional[float] = None    # None -> client default
    destructive: bool = False
    timeout_is_evidence: bool = False

    # ── public API ──────────────────────────────────────────────

    @abstractmethod
    def get_payloads(self) -> List[Payload]:
        """Return the list of payloads to inject."""
        ...

    @abstractmethod
    def check(self, result: ProbeResult) -> Optional[Finding]:
        """Return a Finding if *result* shows the vulnerability, else None."""
        ...

    def setup(self, ctx) -> None:
        """Runs once before the first payload."""

    def teardown(self, ctx) -> None:
        """Runs once after the last payload, even when probes failed."""

    def build(self, ctx, payload: Payload) -> Probe:
        """Default attack surface: the search query string."""
        return Probe(self.endpoint, params={"q": payload.value}, timeout=self.timeout)

    def execute(self, ctx, payload: Payload) -> ProbeResult:
        """Send one payload. Multi-step checkers override this."""
        probe = self.build(ctx, payload)
        return ctx.send(probe, payload)

    def finalize(self, ctx, results: List[ProbeResult]) -> List[Finding]:
        """Verdicts that compare several results. Empty by default."""
        return []

    # ── shared helpers ──────────────────────────────────────────

    def wrap(self, values: Iterable) -> List[Payload]:
        return [Payload(self.category, v) for v in values]

    def wrap_labelled(self, mapping: dict) -> List[Payload]:
        return [Payload(self.category, v, label=k) for k, v in mapping.items()]

    def finding(self, result: ProbeResult, severity: str, confidence: str,
                evidence: str) -> Finding:
        return Finding(
            category=self.category,
            payload=result.payload.display,
            severity=severity,
            confidence=confidence,
            evidence=evidence,
            status_code=result.status_code,
        )
