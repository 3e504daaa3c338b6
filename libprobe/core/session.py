"""Obtain and hold the bearer credential for a run."""

from typing import Any, Dict, Optional

from libprobe.core.client import HttpClient
from libprobe.core.models import ApiReply, Credential, Session

LOGIN = "/api/auth/login"
REGISTER = "/api/auth/register"


class AuthError(Exception):
    """No session token could be obtained; nothing else can run."""


class SessionManager:
    def __init__(self, client: HttpClient, logger=None):
        self.client = client
        self.logger = logger

    def login(self, credential: Credential) -> Optional[str]:
        reply = self.client.send("POST", LOGIN, json=credential.as_body())
        if reply.error:
            self._log("warn", f"login {credential.username}: error: {reply.error}")
            return None
        token = ApiReply.parse(reply.body).token
        if not reply.ok or token is None:
            self._log("debug", f"login {credential.username} → HTTP {reply.status_code} "
                               f"{reply.body[:100]!r}")
            return None
        return token

    def register(self, credential: Credential, role: Optional[str] = "USER",
                 extra: Optional[Dict[str, Any]] = None) -> bool:
        body: Dict[str, Any] = credential.as_body()
        if role is not None:
            body["role"] = role
        if extra:
            body.update(extra)
        reply = self.client.send("POST", REGISTER, json=body)
        if reply.error:
            self._log("warn", f"register {credential.username}: error: {reply.error}")
            return False
        parsed = ApiReply.parse(reply.body)
        return reply.ok and parsed.success is not False

    def authenticate(self, primary: Credential, fallback: Credential) -> Session:
        self._log("info", f"Authenticating as {primary.username}")
        token = self.login(primary)
        if token:
            self._log("ok", f"Token obtained: {token[:20]}...")
            return Session(token=token, username=primary.username, origin="admin")

        self._log("warn", f"Login as {primary.username} failed, registering {fallback.username}")
        if not self.register(fallback):
            # an earlier run may already have created the account
            self._log("debug", f"register {fallback.username} rejected, trying login anyway")
        token = self.login(fallback)
        if token:
            self._log("ok", f"Token obtained: {token[:20]}...")
            return Session(token=token, username=fallback.username, origin="registered")

        raise AuthError(f"could not authenticate as {primary.username} "
                        f"or {fallback.username}")

    def _log(self, level: str, msg: str):
        if self.logger:
            getattr(self.logger, level)(msg)
