"""Inference-based SQL injection: boolean differential and induced delay."""

from typing import Dict, List, Optional

from libprobe.checkers.base import BaseChecker
from libprobe.checkers import payloads as P
from libprobe.core.classifier import is_truthy, row_count, slow
from libprobe.core.models import Finding, Payload, ProbeResult


class BlindBoolean(BaseChecker):
    """
    Vulnerable only when `AND 1=1` keeps the rows and `AND 1=2` drops them
    on the same endpoint. Single responses never decide anything here.
    """

    name = "Blind SQL Injection (boolean)"
    category = "blind"

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.BLIND)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        return None

    def finalize(self, ctx, results: List[ProbeResult]) -> List[Finding]:
        by_value: Dict[str, ProbeResult] = {r.payload.value: r for r in results}
        true_r = by_value.get(P.BLIND_TRUE)
        false_r = by_value.get(P.BLIND_FALSE)
        if true_r is None or false_r is None:
            return []
        if true_r.error or false_r.error:
            return []
        if not (is_truthy(true_r) and not is_truthy(false_r)):
            return []

        inferred = [f"{r.payload.value.strip()} → {'true' if is_truthy(r) else 'false'}"
                    for r in results
                    if r is not true_r and r is not false_r and not r.error]
        evidence = (f"1=1 → {row_count(true_r)} rows, 1=2 → {row_count(false_r) or 0} rows")
        if inferred:
            evidence += "; " + "; ".join(inferred)
        return [Finding(
            category=self.category,
            payload=f"{P.BLIND_TRUE} / {P.BLIND_FALSE}",
            severity="high",
            confidence="firm",
            evidence=evidence,
            status_code=true_r.status_code,
        )]


class TimeBased(BaseChecker):
    name = "Time-Based SQL Injection"
    category = "time-based"
    delay = 2.0
    timeout = 10.0
    timeout_is_evidence = True

    def __init__(self):
        self.baseline = 0.0
        self.threshold = 2.5

    def get_payloads(self) -> List[Payload]:
        return self.wrap(P.TIME_BASED)

    def setup(self, ctx):
        self.timeout = ctx.config.time_timeout
        self.threshold = ctx.config.time_threshold
        reply = ctx.request("GET", self.endpoint.route, params={"q": "test"})
        self.baseline = reply.elapsed if reply.error is None else 0.0
        if ctx.logger:
            ctx.logger.debug(f"Response-time baseline: {self.baseline * 1000:.0f}ms")

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not slow(result, self.baseline, self.threshold):
            return None
        if result.timed_out:
            return self.finding(result, "high", "tentative",
                                f"request timed out after {self.timeout:.0f}s")
        return self.finding(result, "high", "firm",
                            f"{result.elapsed:.2f}s vs {self.baseline:.2f}s baseline")
