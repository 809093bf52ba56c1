"""In-process counters and timers for the KR engine, store and CLI runs.

Counters may carry a label (usually a KR type) and are reported as
``name[label]``. Nothing is exported: log_run_summary() writes a snapshot to
the structured log at API shutdown and at the end of batch CLI commands.
"""

import time
from collections import Counter, defaultdict
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger().bind(source="observability")


def _key(name: str, label: str | None) -> str:
    return f"{name}[{label}]" if label else name


class Metrics:
    def __init__(self):
        self._counters: Counter[str] = Counter()
        self._timers: defaultdict[str, list[float]] = defaultdict(list)

    def counter(self, name: str, value: int = 1, label: str | None = None):
        self._counters[_key(name, label)] += value

    def get(self, name: str, label: str | None = None) -> int:
        return self._counters[_key(name, label)]

    @contextmanager
    def timer(self, name: str):
        """Record the wall time of the wrapped block, in milliseconds."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self._timers[name].append((time.perf_counter() - start) * 1000)

    def summary(self) -> dict[str, Any]:
        return {
            "counters": dict(sorted(self._counters.items())),
            "timers_ms": {
                name: {
                    "count": len(samples),
                    "total": round(sum(samples), 3),
                    "max": round(max(samples), 3),
                }
                for name, samples in self._timers.items()
                if samples
            },
        }

    def reset(self):
        self._counters.clear()
        self._timers.clear()


metrics = Metrics()


def log_run_summary(event: str = "run_summary"):
    logger.info(event, **metrics.summary())
