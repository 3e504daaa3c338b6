"""
Response heuristics shared by the checkers.

All of these are string and shape matching over the response; none of them
is an oracle. Checkers attach a confidence level to whatever they report.
"""

import math
import re
from typing import List, Optional

from libprobe.core.models import ApiReply, Finding, ProbeResult

# Exception type names and SQL engine vocabulary
_ERR_RX = [
    re.compile(r"\b\w*Exception\b"),
    re.compile(r"SQLState", re.I),
    re.compile(r"SQLCODE"),
    re.compile(r"SQLSTATE\[\d+\]"),
    re.compile(r"syntax error", re.I),
    re.compile(r"Syntax error in SQL statement", re.I),
    re.compile(r"\bsyntax\b"),
    re.compile(r"(?:Table|Column) \"?\w+\"? not found", re.I),
    re.compile(r"does not exist", re.I),
    re.compile(r"H2 Database", re.I),
    re.compile(r"no such (?:table|column)", re.I),
    re.compile(r"unrecognized token", re.I),
    re.compile(r"OperationalError"),
    re.compile(r"Division by zero", re.I),
    re.compile(r"Data conversion error", re.I),
    re.compile(r"You have an error in your SQL syntax", re.I),
    re.compile(r"ORA-\d+"),
]

# Only the markers the type-confusion probes care about
_TYPE_ERR_RX = [
    re.compile(r"Exception"),
    re.compile(r"\bSQL\b"),
    re.compile(r"\bsyntax\b"),
    re.compile(r"NumberFormatException"),
]

_STACK_FRAME_RX = re.compile(r"\bat [\w$.]+\(")
_BCRYPT_RX = re.compile(r"\$2[aby]\$\d{2}\$[./A-Za-z0-9]{4,}")
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
_KDF_RX = re.compile(r"\b(?:scrypt|pbkdf2):[\w:]+\$[^$\s\"]+\$[a-fA-F0-9]{32,}")
_HASHLIKE_RX = re.compile(r"\b[a-fA-F0-9]{32,128}\b")
_USERNAME_RX = re.compile(r'"username"\s*:\s*"([^"]+)"')


def error_leak(body: str, strict: bool = False) -> Optional[str]:
    """First error marker found in *body*; strict uses the short type-confusion list."""
    for rx in (_TYPE_ERR_RX if strict else _ERR_RX):
        m = rx.search(body or "")
        if m:
            return m.group(0)
    return None


def stack_trace(body: str) -> bool:
    body = body or ""
    if "Exception" not in body:
        return False
    return "at " in body or bool(_STACK_FRAME_RX.search(body))


def row_count(result: ProbeResult) -> Optional[int]:
    """Rows in the books list, None when the body has no such list."""
    reply = ApiReply.parse(result.body)
    if reply.books is not None:
        return len(reply.books)
    return None


def is_truthy(result: ProbeResult) -> bool:
    """A search that came back with rows."""
    if not result.success:
        return False
    rows = row_count(result)
    return bool(rows)


def credential_leak(body: str) -> Optional[str]:
    """bcrypt or werkzeug KDF hash, or a username next to something hash-looking."""
    body = body or ""
    m = _BCRYPT_RX.search(body)
    if m:
        return m.group(0)[:30]
    for prefix in _BCRYPT_PREFIXES:
        if prefix in body:
            return prefix
    m = _KDF_RX.search(body)
    if m:
        return m.group(0)[:30]
    if _USERNAME_RX.search(body):
        m = _HASHLIKE_RX.search(body)
        if m:
            return m.group(0)[:30]
    return None


def slow(result: ProbeResult, baseline: float, threshold: float) -> bool:
    if result.timed_out or math.isinf(result.elapsed):
        return True
    return result.elapsed - baseline >= threshold


def accepted(result: ProbeResult) -> bool:
    return result.success


def classify(checker, result: ProbeResult, logger=None) -> Optional[Finding]:
    """Run *checker*'s heuristic on one result. Errors never become findings."""
    if result.timed_out:
        if not checker.timeout_is_evidence:
            return None
    elif result.error:
        return None
    try:
        return checker.check(result)
    except Exception as e:
        if logger:
            logger.warn(f"{checker.name}: classifier error on {result.payload.display!r}: {e}")
        return None


def finalize(checker, ctx, results: List[ProbeResult], logger=None) -> List[Finding]:
    """Differential verdicts that need more than one result."""
    try:
        return list(checker.finalize(ctx, results) or [])
    except Exception as e:
        if logger:
            logger.warn(f"{checker.name}: differential check failed: {e}")
        return []
