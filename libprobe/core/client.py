"""Thin httpx wrapper: one call in, one HttpReply out, never raises on transport errors."""

import time
from typing import Any, Callable, Dict, Optional

import httpx

from libprobe.core.models import HttpReply


class HttpClient:
    def __init__(self, base_url: str, timeout: float = 8.0, proxy: str | None = None,
                 verify: bool = False, transport: httpx.BaseTransport | None = None,
                 clock: Callable[[], float] = time.perf_counter, logger=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.clock = clock
        self.logger = logger
        self.client = httpx.Client(
            base_url=self.base_url, verify=verify, proxy=proxy,
            follow_redirects=True, timeout=timeout, transport=transport)

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @staticmethod
    def _headers(token: Optional[str], headers: Optional[Dict[str, str]], has_body: bool) -> Dict[str, str]:
        out = {"Accept": "application/json"}
        if has_body:
            out["Content-Type"] = "application/json"
        if token is not None:
            out["Authorization"] = f"Bearer {token}"
        if headers:
            out.update(headers)
        return out

    def send(self, method: str, path: str, *, token: Optional[str] = None,
             params: Optional[Dict[str, Any]] = None, json: Any = None,
             content: Optional[str] = None, headers: Optional[Dict[str, str]] = None,
             timeout: Optional[float] = None) -> HttpReply:
        has_body = json is not None or content is not None
        hdrs = self._headers(token, headers, has_body)
        kwargs: Dict[str, Any] = {"headers": hdrs, "params": params or None}
        if json is not None:
            kwargs["json"] = json
        elif content is not None:
            kwargs["content"] = content.encode("utf-8")
        if timeout is not None:
            kwargs["timeout"] = timeout

        if self.logger and self.logger.verbose >= 3:
            self.logger.debug(f"→ {method} {path} params={params!r}")

        start = self.clock()
        try:
            resp = self.client.request(method, path, **kwargs)
            body = resp.text
        except httpx.TimeoutException as e:
            if self.logger:
                self.logger.debug(f"timeout after {self.clock() - start:.1f}s: {method} {path}")
            return HttpReply(elapsed=float("inf"), timed_out=True,
                             error=f"timeout: {e.__class__.__name__}")
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeDecodeError) as e:
            return HttpReply(elapsed=self.clock() - start, error=f"{e.__class__.__name__}: {e}")

        return HttpReply(status_code=resp.status_code, body=body,
                         elapsed=self.clock() - start)
