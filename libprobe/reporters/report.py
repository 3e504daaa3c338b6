"""Collects findings across categories and renders the final report."""

from datetime import datetime
from typing import Dict, List, Optional

from libprobe.checkers.registry import CATEGORY_ORDER
from libprobe.core.models import Finding, ProbeResult, SEVERITIES

RECOMMENDATIONS = [
    "Use prepared statements for ALL database queries",
    "Implement proper input validation and sanitization",
    "Use principle of least privilege for database users",
    "Implement Web Application Firewall (WAF)",
    "Regular security audits and penetration testing",
    "Encrypt sensitive data in database",
    "Implement rate limiting and monitoring",
    "Validate all user inputs server-side",
    "Use parameterized queries to prevent SQL injection",
    "Implement proper error handling without information disclosure",
]

TITLES = {
    "schema-extraction": "Schema Extraction",
    "data-exfiltration": "Data Exfiltration",
    "manipulation": "Database Manipulation",
    "stored-procedure": "Stored Procedure Attacks",
    "blind": "Blind SQL Injection",
    "time-based": "Time-Based SQL Injection",
    "error-based": "Error-Based SQL Injection",
    "second-order": "Second-Order SQL Injection",
    "error-disclosure": "Error Information Disclosure",
    "classic-injection": "SQL Injection (classic)",
    "enhanced-injection": "SQL Injection (credential extraction)",
    "type-confusion": "Type Confusion",
    "path-traversal": "Path Traversal",
    "auth-bypass": "Authorization Bypass",
    "input-validation": "Input Validation",
    "extreme-input": "Extreme Inputs",
    "mass-assignment": "Mass Assignment",
    "error-handling": "Error Handling",
    "jwt": "JWT Token Vulnerabilities",
    "business-logic": "Business Logic",
    "put-endpoint": "PUT Endpoint",
    "delete-endpoint": "DELETE Endpoint",
}


class Report:
    def __init__(self, target: str = ""):
        self.target = target
        self._findings: Dict[str, List[Finding]] = {}
        self._runs: Dict[str, Dict[str, int]] = {}

    def record(self, finding: Finding):
        self._findings.setdefault(finding.category, []).append(finding)

    def record_run(self, category: str, results: List[ProbeResult]):
        self._runs[category] = {
            "probes": len(results),
            "errors": sum(1 for r in results if r.error and not r.timed_out),
            "timeouts": sum(1 for r in results if r.timed_out),
        }

    def _order(self) -> List[str]:
        seen = set(self._findings) | set(self._runs)
        ordered = [c for c in CATEGORY_ORDER if c in seen]
        return ordered + sorted(seen - set(CATEGORY_ORDER))

    def findings(self, category: Optional[str] = None) -> List[Finding]:
        if category is not None:
            return list(self._findings.get(category, []))
        return [f for c in self._order() for f in self._findings.get(c, [])]

    def counts(self) -> Dict[str, int]:
        out = {s: 0 for s in SEVERITIES}
        for f in self.findings():
            out[f.severity] = out.get(f.severity, 0) + 1
        return out

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "categories": [
                {
                    "category": c,
                    "title": TITLES.get(c, c),
                    **self._runs.get(c, {"probes": 0, "errors": 0, "timeouts": 0}),
                    "findings": [f.to_dict() for f in self._findings.get(c, [])],
                }
                for c in self._order()
            ],
            "summary": self.counts(),
            "recommendations": list(RECOMMENDATIONS),
        }

    def render(self, timestamp: Optional[datetime] = None) -> str:
        bar = "=" * 60
        lines = [bar, "SECURITY TESTING REPORT".center(60)]
        if self.target:
            lines.append(f"Target: {self.target}".center(60))
        lines.append(bar)

        for category in self._order():
            run = self._runs.get(category)
            found = self._findings.get(category, [])
            head = f"\n[{TITLES.get(category, category)}]"
            if run:
                head += f"  {run['probes']} probes"
                if run["errors"]:
                    head += f", {run['errors']} errors"
                if run["timeouts"]:
                    head += f", {run['timeouts']} timeouts"
            lines.append(head)
            if not found:
                lines.append("   no findings (not evidence of safety)")
                continue
            for f in found:
                marker = "⚠ possible " if f.possible else ""
                lines.append(f"   {marker}[{f.severity.upper()}/{f.confidence}] {f.payload[:70]}")
                if f.evidence:
                    lines.append(f"      {f.evidence[:160]}")

        counts = self.counts()
        lines.append("\nSUMMARY")
        lines.append("   " + ", ".join(f"{s}: {n}" for s, n in counts.items()))

        lines.append("\nSECURITY RECOMMENDATIONS:")
        for i, rec in enumerate(RECOMMENDATIONS, 1):
            lines.append(f"   {i}. {rec}")

        when = (timestamp or datetime.now()).isoformat(timespec="seconds")
        lines += ["", bar, f"TESTING COMPLETE {when}".center(60), bar]
        return "\n".join(lines)
