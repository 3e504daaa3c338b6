import secrets
import time
from typing import Callable, Iterable, List, Optional

from colorama import Style

from libprobe.core import classifier
from libprobe.core.client import HttpClient
from libprobe.core.config import Config
from libprobe.core.models import (
    ApiReply, Credential, HttpReply, Payload, Probe, ProbeResult, Session,
)
from libprobe.core.session import SessionManager


class ProbeContext:
    """Everything a checker may touch during a run."""

    def __init__(self, client: HttpClient, session: Session, config: Config,
                 logger=None, run_id: str | None = None):
        self.client = client
        self.session = session
        self.config = config
        self.logger = logger
        self.run_id = run_id or secrets.token_hex(3)
        self.auth = SessionManager(client, logger=logger)
        self._admin_token: Optional[str] = None
        self._user_token: Optional[str] = None

    # ---------- sending ----------
    def send(self, probe: Probe, payload: Payload, **context) -> ProbeResult:
        if probe.anonymous:
            token = None
        elif probe.token is not None:
            token = probe.token
        else:
            token = self.session.token

        try:
            path = probe.path
        except (KeyError, IndexError) as e:
            return ProbeResult.failed(payload, probe.endpoint, f"bad route params: {e}", **context)

        reply = self.client.send(
            probe.endpoint.method, path, token=token, params=probe.params,
            json=probe.json, content=probe.content, headers=probe.headers or None,
            timeout=probe.timeout)
        return ProbeResult.from_reply(payload, probe.endpoint, reply, **context)

    def request(self, method: str, path: str, token: Optional[str] = "", **kwargs) -> HttpReply:
        """Raw call for setup steps. token="" means the session token."""
        if token == "":
            token = self.session.token
        return self.client.send(method, path, token=token, **kwargs)

    def unique(self, prefix: str) -> str:
        return f"{prefix}_{self.run_id}"

    # ---------- helpers for setup ----------
    def first_book_id(self) -> Optional[int]:
        reply = self.request("GET", "/api/books")
        if not reply.ok:
            self._debug(f"GET /api/books → {reply.status_code or reply.error}")
            return None
        return ApiReply.parse(reply.body).book_id

    def admin_token(self) -> Optional[str]:
        if self.session.is_admin:
            return self.session.token
        if self._admin_token is None:
            self._admin_token = self.auth.login(self.config.admin)
        return self._admin_token

    def user_token(self) -> Optional[str]:
        """Token of a non-privileged account."""
        if self._user_token is None:
            if not self.session.is_admin:
                self._user_token = self.session.token
            else:
                self._user_token = self.auth.login(self.config.user)
            if self._user_token is None:
                cred = Credential(self.unique("probe_user"), "probe123")
                self.auth.register(cred)
                self._user_token = self.auth.login(cred)
        return self._user_token

    def create_book(self, title: str, author: str, isbn: str) -> Optional[int]:
        token = self.admin_token()
        if token is None:
            self._debug("no admin token, cannot create a book")
            return None
        reply = self.request("POST", "/api/books", token=token,
                             json={"title": title, "author": author, "isbn": isbn})
        if not reply.ok:
            self._debug(f"POST /api/books → {reply.status_code or reply.error}")
            return None
        return ApiReply.parse(reply.body).book_id

    def _debug(self, msg: str):
        if self.logger:
            self.logger.debug(msg)


class Engine:
    def __init__(self, ctx: ProbeContext, logger=None,
                 sleep: Callable[[float], None] = time.sleep):
        self.name = "LibProbe"
        self.version = "1.0.0"
        self.ctx = ctx
        self.logger = logger if logger is not None else ctx.logger
        self.sleep = sleep

    def _pause(self, checker):
        delay = checker.delay * self.ctx.config.pacing
        if delay > 0:
            self.sleep(delay)

    def _execute(self, checker, payload: Payload) -> ProbeResult:
        try:
            return checker.execute(self.ctx, payload)
        except Exception as e:
            return ProbeResult.failed(payload, checker.endpoint, f"{e.__class__.__name__}: {e}")

    def run(self, checker, report=None) -> List[ProbeResult]:
        payloads = checker.get_payloads()
        results: List[ProbeResult] = []
        found = 0

        if self.logger:
            self.logger.info(f"Testing {checker.name} ({len(payloads)} probes)")

        try:
            checker.setup(self.ctx)
        except Exception as e:
            if self.logger:
                self.logger.warn(f"{checker.name}: setup failed: {e}")

        try:
            for i, payload in enumerate(payloads):
                if i:
                    self._pause(checker)

                result = self._execute(checker, payload)
                results.append(result)

                if self.logger and self.logger.verbose >= 2:
                    self.logger.debug(
                        f"  {self.logger.PAY}{payload.display[:60]}{Style.RESET_ALL} "
                        f"→ HTTP {result.status_code} len={result.length} "
                        f"{result.describe_elapsed()}")
                if result.error and not result.timed_out and self.logger:
                    self.logger.warn(f"  {payload.display[:60]!r}: error: {result.error}")

                finding = classifier.classify(checker, result, logger=self.logger)
                if finding:
                    found += 1
                    self._record(finding, report)

            for finding in classifier.finalize(checker, self.ctx, results, logger=self.logger):
                found += 1
                self._record(finding, report)
        finally:
            try:
                checker.teardown(self.ctx)
            except Exception as e:
                if self.logger:
                    self.logger.warn(f"{checker.name}: teardown failed: {e}")
            if report is not None:
                report.record_run(checker.category, results)

        if self.logger and not found:
            self.logger.fail(f"No findings for {checker.name}")
        return results

    def _record(self, finding, report):
        if report is not None:
            report.record(finding)
        if self.logger:
            self.logger.finding(finding)

    def scan(self, checkers: Iterable, report):
        config = self.ctx.config
        for checker in checkers:
            if not config.wants(checker.category):
                continue
            if checker.destructive and config.skip_destructive:
                if self.logger:
                    self.logger.info(f"Skipping destructive category {checker.category}")
                continue
            self.run(checker, report)
        return report
