from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, TextIO

from colorama import Fore, Style
from tqdm import tqdm

from reflectscan.console import log_plain

logger = logging.getLogger(__name__)

PROGRESS_FORMAT = "[PROGRESS] {n}/{total} ({percentage:.1f}%)"


@dataclass(frozen=True)
class Result:
    url: str
    method: str
    parameter: str
    payload_value: str
    reflected: bool
    status_code: int = 0
    error: Optional[str] = None


# --------------------------------------------------------------------------------------
# Counting mode
# --------------------------------------------------------------------------------------

class ProgressReporter:
    """Counts completed jobs and redraws one progress line every `interval` seconds.

    Workers only ever call inc(); the tqdm bar is touched by the ticker thread
    and by close(), never by workers directly.
    """

    def __init__(self, total: int, interval: float = 1.0, file: Optional[TextIO] = None, enabled: bool = True):
        self.total = total
        self.interval = interval
        self._completed = 0
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._bar = tqdm(total=total, bar_format=PROGRESS_FORMAT, file=file, disable=not enabled, leave=True)
        self._thread = threading.Thread(target=self._loop, name="progress", daemon=True)
        self._thread.start()

    def inc(self, n: int = 1):
        with self._lock:
            self._completed += n

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def snapshot(self):
        with self._lock:
            return self._completed, self.total

    def _draw(self):
        completed, _ = self.snapshot()
        self._bar.n = completed
        self._bar.refresh()

    def _loop(self):
        while not self._done.wait(self.interval):
            self._draw()

    def close(self):
        if self._done.is_set():
            return
        self._done.set()
        self._thread.join()
        # final state
        self._draw()
        self._bar.close()

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, *exc):
        self.close()


# --------------------------------------------------------------------------------------
# Collecting mode
# --------------------------------------------------------------------------------------

class ResultCollector:
    def __init__(self):
        self._lock = threading.Lock()
        self._results: List[Result] = []

    def add(self, result: Result):
        with self._lock:
            self._results.append(result)

    def results(self) -> List[Result]:
        # copy so callers never see the live list
        with self._lock:
            return list(self._results)

    def reflected(self) -> List[Result]:
        return [r for r in self.results() if r.reflected]

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


# --------------------------------------------------------------------------------------
# Summary
# --------------------------------------------------------------------------------------

def write_console_report(results: List[Result]) -> int:
    """Print reflected results grouped by URL; returns how many were found."""
    hits = sorted((r for r in results if r.reflected), key=lambda r: (r.url, r.parameter))
    if not hits:
        log_plain(Fore.YELLOW + "[!] No XSS reflections found" + Style.RESET_ALL)
        return 0

    log_plain(f"\n{Fore.CYAN}REFLECTION SUMMARY{Style.RESET_ALL}")
    log_plain(f"{Fore.CYAN}=================={Style.RESET_ALL}")

    groups: Dict[str, List[Result]] = {}
    for r in hits:
        groups.setdefault(r.url, []).append(r)

    for url, group in groups.items():
        log_plain(f"\n{Fore.BLUE}{url}{Style.RESET_ALL} ({len(group)} reflections)")
        for r in group:
            log_plain(f"  └─ {Fore.YELLOW}{r.parameter}{Style.RESET_ALL}: {r.payload_value} [{r.method}]")

    log_plain(f"\n{Fore.RED}Total reflections found: {len(hits)}{Style.RESET_ALL}")
    log_plain("Please verify these findings manually.")
    logger.info("scan finished with %d reflections", len(hits))
    return len(hits)
