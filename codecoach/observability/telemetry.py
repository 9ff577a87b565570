"""
In-process telemetry for LLM calls, retries and persistence writes.

Nothing is shipped to an external collector. Events go to the log;
counters and latency samples stay in memory for tests and /debug/stats.
Request threads and the vision monitor thread update them concurrently.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections import defaultdict
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("codecoach.telemetry")

_lock = threading.Lock()
_counters: defaultdict[str, int] = defaultdict(int)
_latencies: defaultdict[str, list[float]] = defaultdict(list)


def log_event(event_name: str, **fields: Any) -> None:
    """Structured info log. Never pass prompts, learner code or API keys."""
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """Increment ``name`` and return its new value."""
    with _lock:
        _counters[name] += increment
        value = _counters[name]
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counters(prefix: str = "") -> dict[str, int]:
    with _lock:
        return {name: value for name, value in _counters.items() if name.startswith(prefix)}


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """Record how long the block takes, in seconds, under ``metric_name``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        with _lock:
            _latencies[metric_name].append(elapsed)
        logger.debug("timing=%s seconds=%.6f", metric_name, elapsed)


def _percentile(ordered: list[float], fraction: float) -> float:
    return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """count/min/max/avg/p50/p95 for one metric; zeros when nothing was recorded."""
    with _lock:
        ordered = sorted(_latencies.get(metric_name, ()))
    if not ordered:
        return dict.fromkeys(("count", "min", "max", "avg", "p50", "p95"), 0.0)

    return {
        "count": len(ordered),
        "min": ordered[0],
        "max": ordered[-1],
        "avg": sum(ordered) / len(ordered),
        "p50": _percentile(ordered, 0.50),
        "p95": _percentile(ordered, 0.95),
    }


def reset_telemetry() -> None:
    with _lock:
        _counters.clear()
        _latencies.clear()
