import json
import sys

from libprobe.checkers.registry import default_checkers
from libprobe.core.client import HttpClient
from libprobe.core.config import Config, build_parser
from libprobe.core.engine import Engine, ProbeContext
from libprobe.core.session import AuthError, SessionManager
from libprobe.reporters.console import Log
from libprobe.reporters.report import Report


def run(config: Config, transport=None, log: Log | None = None, sleep=None) -> tuple[int, Report]:
    """Authenticate, run every selected category, return (exit status, report)."""
    log = log or Log(verbose=config.verbose)
    report = Report(target=config.base_url)

    with HttpClient(config.base_url, timeout=config.timeout, proxy=config.proxy,
                    verify=config.verify, transport=transport, logger=log) as client:
        try:
            session = SessionManager(client, logger=log).authenticate(
                config.admin, config.fallback)
            ctx = ProbeContext(client, session, config, logger=log)
            engine = Engine(ctx) if sleep is None else Engine(ctx, sleep=sleep)
            log.info(f"{engine.name} {engine.version}: testing {config.base_url} as {session.username}")
            engine.scan(default_checkers(), report)
        except AuthError as e:
            log.error(f"All authentication attempts failed: {e}")
            return 2, report
        except KeyboardInterrupt:
            log.warn("Interrupted, reporting what ran so far")
            return 130, report
    return 0, report


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = Config.from_args(args)
    status, report = run(config)
    if config.output == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(report.render())
    return status


if __name__ == "__main__":
    sys.exit(main())
