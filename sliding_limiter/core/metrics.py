"""Rate limit outcome counters with Prometheus text exposition.

The recorder is created by the app factory and handed to the middleware, so
each application instance owns its counters.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Protocol

ALLOWED = "allowed"
BLOCKED = "blocked"


class OutcomeRecorder(Protocol):
    """Anything that can count rate limit decisions."""

    def record(self, status: str) -> None:
        ...


class InMemoryOutcomeRecorder:
    """Per-process counters of admitted and blocked requests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = defaultdict(int)

    def record(self, status: str) -> None:
        with self._lock:
            self._counts[status] += 1

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def format_prometheus(self) -> str:
        """Render counters in Prometheus text exposition format."""
        counts = self.snapshot()
        lines = [
            "# HELP ratelimiter_requests_total Total number of requests processed by the rate limiter",
            "# TYPE ratelimiter_requests_total counter",
        ]
        for status in sorted({ALLOWED, BLOCKED} | counts.keys()):
            lines.append(f'ratelimiter_requests_total{{status="{status}"}} {counts.get(status, 0)}')
        return "\n".join(lines) + "\n"
