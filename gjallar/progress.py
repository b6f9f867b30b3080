# ᚷᛃᚨᛚᛚᚨᚱᚺᛟᚱᚾ • Gjallarhorn - Scan Progress
"""Once-per-second status line over the shared scan counters."""

import logging
import threading
from typing import Optional

from rich.console import Console
from rich.text import Text

logger = logging.getLogger(__name__)

STATUS_PREFIX = "[resource-trusts]"


def format_status(complete: int, total: int, errors: int, log_path: str) -> str:
    return (
        f"{STATUS_PREFIX} Status: {complete}/{total} tasks complete "
        f"({errors} errors -- For details check {log_path})"
    )


class ProgressReporter:
    """
    Renders the counters of a running scan on a rich status line.

    Args:
        counters: ScanCounters of the scan being watched
        log_path: Error log the user is pointed at
        console: rich Console (injectable for tests)
        interval: Seconds between ticks
    """

    def __init__(self, counters, log_path: str, console: Optional[Console] = None, interval: float = 1.0):
        self.counters = counters
        self.log_path = log_path
        self.console = console or Console(stderr=True)
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._status = None

    def current_line(self) -> str:
        snap = self.counters.snapshot()
        return format_status(snap.complete, snap.total, snap.error, self.log_path)

    def start(self) -> None:
        self._status = self.console.status(Text(self.current_line()))
        self._status.start()
        self._thread = threading.Thread(target=self._run, name="gjallar-progress", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self._status.update(Text(self.current_line()))

    def stop(self) -> None:
        """Stop ticking and print the final status line."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
        if self._status is not None:
            self._status.stop()
        snap = self.counters.snapshot()
        self.console.print(Text(format_status(snap.complete, snap.complete, snap.error, self.log_path)))
