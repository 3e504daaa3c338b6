from colorama import init as colorama_init, Fore, Style
from datetime import datetime
colorama_init(autoreset=True)


class Log:
    def __init__(self, verbose: int = 1, stream=None):
        self.verbose = verbose
        self.stream = stream
        self.PAY = Fore.MAGENTA

    def _time(self):
        return datetime.now().strftime("[%H:%M:%S]")

    def _fmt(self, level: str, color: str):
        return f"{self._time()} {color}[{level}]{Style.RESET_ALL}"

    def _out(self, line: str):
        print(line, file=self.stream)

    def info(self, msg: str):
        if self.verbose >= 1:
            self._out(f"{self._fmt('INFO', Fore.CYAN)} {msg}")

    def warn(self, msg: str):
        if self.verbose >= 0:
            self._out(f"{self._fmt('WARNING', Fore.YELLOW)} {msg}")

    def ok(self, msg: str):
        self._out(f"{self._fmt('SUCCESS', Fore.GREEN)} {msg}")

    def fail(self, msg: str):
        if self.verbose >= 1:
            self._out(f"{self._fmt('DONE', Fore.WHITE)} {msg}")

    def error(self, msg: str):
        self._out(f"{self._fmt('ERROR', Fore.RED)} {msg}")

    def debug(self, msg: str):
        if self.verbose >= 2:
            self._out(f"{self._fmt('DEBUG', Fore.MAGENTA)} {msg}")

    def finding(self, f):
        sev_col = {"critical": Fore.RED, "high": Fore.RED, "medium": Fore.YELLOW,
                   "info-disclosure": Fore.YELLOW, "low": Fore.GREEN}.get(f.severity, Fore.WHITE)
        marker = "⚠ possible " if f.possible else ""
        self._out(f"{self._fmt(f.severity.upper(), sev_col)} {marker}{f.category} "
                  f"{Fore.MAGENTA}{f.payload[:70]}{Style.RESET_ALL} "
                  f"{Style.DIM}(HTTP {f.status_code}) {f.evidence[:100]}{Style.RESET_ALL}")
