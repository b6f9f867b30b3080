# ᛗᚢᚾᛁᚾᚾ • Muninn - Gatherer of Findings
"""
Single-owner result collector.

Scan tasks only ``send`` findings; one consumer thread drains the queue and
is the sole writer of the result list. ``close`` stops the consumer and
hands back the ranked list.
"""

import logging
import queue
import threading
from typing import List, Optional

from gjallar.models import Finding

logger = logging.getLogger(__name__)

_CLOSE = object()


def rank_findings(findings: List[Finding]) -> List[Finding]:
    """Interesting findings first, then by ARN ascending."""
    return sorted(findings, key=lambda f: (not f.interesting, f.arn))


class ResultAggregator:

    def __init__(self):
        self._queue: "queue.Queue" = queue.Queue()
        self._results: List[Finding] = []
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("aggregator already started")
        self._thread = threading.Thread(target=self._consume, name="gjallar-aggregator", daemon=True)
        self._thread.start()

    def send(self, finding: Finding) -> None:
        if self._closed:
            raise RuntimeError("aggregator is closed")
        self._queue.put(finding)

    def _consume(self) -> None:
        while True:
            item = self._queue.get()
            if item is _CLOSE:
                break
            self._results.append(item)
        logger.debug("Aggregator drained %d findings", len(self._results))

    def close(self) -> List[Finding]:
        """
        Stop accepting findings, wait for the consumer to drain the queue
        and return the ranked result list.
        """
        if self._thread is None:
            raise RuntimeError("aggregator was never started")
        if not self._closed:
            self._closed = True
            self._queue.put(_CLOSE)
            self._thread.join()
        return rank_findings(self._results)
