"""Shared data models for the library API probe."""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote


SEVERITIES = ("critical", "high", "medium", "info-disclosure", "low")
CONFIDENCES = ("confirmed", "firm", "tentative")


@dataclass(frozen=True)
class Endpoint:
    """A route on the target API."""
    method: str
    route: str             # "/api/books/{id}"
    auth: str = "user"     # "none", "user", "admin"

    def path(self, **params) -> str:
        # every value is a single path segment, "/" included
        encoded = {k: quote(str(v), safe="") for k, v in params.items()}
        return self.route.format(**encoded)

    def __str__(self):
        return f"{self.method} {self.route}"


@dataclass(frozen=True)
class Credential:
    username: str
    password: str

    def as_body(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}


@dataclass
class Session:
    """Bearer token for the run and where it came from."""
    token: str
    username: str
    origin: str            # "admin" or "registered"

    @property
    def is_admin(self) -> bool:
        return self.origin == "admin"


@dataclass(frozen=True)
class Payload:
    category: str
    value: Any             # str, or a dict body
    label: str = ""

    @property
    def display(self) -> str:
        if self.label:
            return self.label
        if isinstance(self.value, str):
            return self.value
        return json.dumps(self.value, sort_keys=True)[:80]


@dataclass
class Probe:
    """One request to send for a payload."""
    endpoint: Endpoint
    path_params: Dict[str, Any] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    content: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    token: Optional[str] = None    # None -> session token
    anonymous: bool = False        # send no Authorization header at all
    timeout: Optional[float] = None

    @property
    def path(self) -> str:
        return self.endpoint.path(**self.path_params)


@dataclass
class HttpReply:
    """What came back from one HTTP call."""
    status_code: int = 0
    body: str = ""
    elapsed: float = 0.0
    error: Optional[str] = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.timed_out and 200 <= self.status_code < 300


@dataclass
class ProbeResult:
    category: str
    payload: Payload
    endpoint: Optional[Endpoint]
    status_code: int = 0
    body: str = ""
    elapsed: float = 0.0
    error: Optional[str] = None
    timed_out: bool = False
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_reply(cls, payload: Payload, endpoint: Optional[Endpoint], reply: HttpReply, **context):
        return cls(
            category=payload.category, payload=payload, endpoint=endpoint,
            status_code=reply.status_code, body=reply.body, elapsed=reply.elapsed,
            error=reply.error, timed_out=reply.timed_out, context=dict(context),
        )

    @classmethod
    def failed(cls, payload: Payload, endpoint: Optional[Endpoint], error: str, **context):
        return cls(category=payload.category, payload=payload, endpoint=endpoint,
                   error=error, context=dict(context))

    @property
    def length(self) -> int:
        return len(self.body)

    @property
    def success(self) -> bool:
        return self.error is None and not self.timed_out and 200 <= self.status_code < 300

    @property
    def reply(self) -> "ApiReply":
        return ApiReply.parse(self.body)

    def snippet(self, n: int = 100) -> str:
        return self.body[:n].replace("\n", " ")

    def describe_elapsed(self) -> str:
        if math.isinf(self.elapsed):
            return "timeout"
        return f"{self.elapsed * 1000:.0f}ms"


@dataclass(frozen=True)
class Finding:
    """A single vulnerability verdict."""
    category: str
    payload: str
    severity: str          # see SEVERITIES
    confidence: str        # "confirmed", "firm", "tentative"
    evidence: str = ""     # Short proof snippet
    status_code: int = 0

    @property
    def possible(self) -> bool:
        return self.confidence == "tentative"

    def __str__(self):
        marker = "possible " if self.possible else ""
        return (f"[{self.severity.upper()}][{self.confidence}] {marker}{self.category} "
                f"payload={self.payload!r} (HTTP {self.status_code})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category, "payload": self.payload,
            "severity": self.severity, "confidence": self.confidence,
            "evidence": self.evidence, "status_code": self.status_code,
        }


@dataclass
class ApiReply:
    """Decoded JSON body of an API reply. Missing fields stay None."""
    success: Optional[bool] = None
    token: Optional[str] = None
    username: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    books: Optional[List[Dict[str, Any]]] = None
    book: Any = None
    id: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, body: str) -> "ApiReply":
        try:
            data = json.loads(body) if body else {}
        except ValueError:
            return cls()
        if not isinstance(data, dict):
            return cls()

        token = data.get("token")
        books = data.get("books")
        success = data.get("success")
        return cls(
            success=success if isinstance(success, bool) else None,
            token=token if isinstance(token, str) and token else None,
            username=data.get("username"),
            message=data.get("message"),
            error=data.get("error"),
            books=books if isinstance(books, list) else None,
            book=data.get("book"),
            id=data.get("id", data.get("bookId")),
            raw=data,
        )

    @property
    def book_id(self) -> Optional[int]:
        """Id of the book in the reply, wherever the API put it."""
        candidates = [self.id]
        if isinstance(self.book, dict):
            candidates.insert(0, self.book.get("id"))
        if self.books:
            first = self.books[0]
            if isinstance(first, dict):
                candidates.append(first.get("id"))
        for value in candidates:
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
        return None
