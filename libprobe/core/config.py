"""Run configuration, built from the command line."""

import argparse
from dataclasses import dataclass, field
from typing import List, Optional

from libprobe.core.models import Credential


@dataclass
class Config:
    base_url: str = "http://localhost:8080"
    admin: Credential = Credential("admin", "password123")
    user: Credential = Credential("alice", "password123")
    fallback: Credential = Credential("tester", "test123")
    timeout: float = 8.0
    time_timeout: float = 10.0       # time-based probes induce server-side delay
    time_threshold: float = 2.5
    pacing: float = 1.0              # multiplier on every checker's delay, 0 disables
    proxy: Optional[str] = None
    verify: bool = False
    only: List[str] = field(default_factory=list)
    skip: List[str] = field(default_factory=list)
    skip_destructive: bool = False
    baseline_rows: Optional[int] = None
    output: str = "text"
    verbose: int = 1

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Config":
        return cls(
            base_url=args.url.rstrip("/"),
            admin=Credential(args.admin_user, args.admin_pass),
            user=Credential(args.user, args.user_pass),
            fallback=Credential(args.fallback_user, args.fallback_pass),
            timeout=args.timeout,
            time_timeout=args.time_timeout,
            time_threshold=args.time_threshold,
            pacing=args.pacing,
            proxy=args.proxy,
            verify=args.verify,
            only=_split(args.only),
            skip=_split(args.skip),
            skip_destructive=args.skip_destructive,
            baseline_rows=args.baseline_rows,
            output=args.format,
            verbose=args.verbose,
        )

    def wants(self, category: str) -> bool:
        if self.only and category not in self.only:
            return False
        return category not in self.skip


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Security test driver for the library management API")
    p.add_argument("--url", default="http://localhost:8080",
                   help="Base URL of the target (without /api)")
    p.add_argument("--admin-user", default="admin")
    p.add_argument("--admin-pass", default="password123")
    p.add_argument("--user", default="alice",
                   help="Non-privileged account used for authorization checks")
    p.add_argument("--user-pass", default="password123")
    p.add_argument("--fallback-user", default="tester",
                   help="Account registered when the admin login fails")
    p.add_argument("--fallback-pass", default="test123")
    p.add_argument("--timeout", type=float, default=8.0,
                   help="Per-request timeout in seconds")
    p.add_argument("--time-timeout", type=float, default=10.0,
                   help="Timeout for time-based injection probes")
    p.add_argument("--time-threshold", type=float, default=2.5,
                   help="Delay over baseline that counts as time-based injection")
    p.add_argument("--pacing", type=float, default=1.0,
                   help="Multiplier for the delay between requests (0 = none)")
    p.add_argument("--proxy", help="Proxy (ej: http://127.0.0.1:8080)")
    p.add_argument("--verify", action="store_true",
                   help="Verify TLS certificates")
    p.add_argument("--only", help="Comma separated categories to run")
    p.add_argument("--skip", help="Comma separated categories to skip")
    p.add_argument("--skip-destructive", action="store_true",
                   help="Skip categories that modify or drop target data")
    p.add_argument("--baseline-rows", type=int,
                   help="Row count of a benign search (measured when omitted)")
    p.add_argument("--format", default="text", choices=["text", "json"])
    p.add_argument("-v", "--verbose", action="count", default=1,
                   help="-v, -vv")
    return p
