"""Performance monitoring utilities for SiteCost calculations."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("sitecost-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures a synchronous calculation and records it in the
    module-level ``tracker``.

    Calls that raise are counted as rejections and the exception propagates
    unchanged.

    Usage::

        @timed
        def calculate_something(...):
            ...
    """
    operation = func.__name__

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception:
            tracker.record_rejection(operation)
            raise
        duration_ms = round((time.perf_counter() - start) * 1000, 3)
        tracker.record_calculation(operation, duration_ms)
        logger.debug(
            "calculation timed",
            extra={
                "operation": operation,
                "duration_ms": duration_ms,
            },
        )
        return result
    return wrapper


class CalculationTracker:
    """
    Thread-safe in-memory tracker for calculation metrics.

    Tracks:
    - Calls per operation
    - Average and slowest duration per operation
    - Rejected calls (invalid input or configuration) per operation
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[str, int] = {}
        self._total_duration_ms: Dict[str, float] = {}
        self._rejections: Dict[str, int] = {}
        self._slowest_operation: Optional[str] = None
        self._slowest_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_calculation(self, operation: str, duration_ms: float) -> None:
        with self._lock:
            self._calls[operation] = self._calls.get(operation, 0) + 1
            self._total_duration_ms[operation] = (
                self._total_duration_ms.get(operation, 0.0) + duration_ms
            )
            if duration_ms > self._slowest_ms:
                self._slowest_ms = duration_ms
                self._slowest_operation = operation

    def record_rejection(self, operation: str) -> None:
        with self._lock:
            self._rejections[operation] = self._rejections.get(operation, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            calculations              : int   (total successful calls)
            calls_by_operation        : dict  {operation: count}
            avg_duration_ms           : dict  {operation: avg_ms}
            slowest_operation         : str | None
            slowest_ms                : float
            rejections                : int
            rejections_by_operation   : dict  {operation: count}
        """
        with self._lock:
            avgs = {
                op: round(self._total_duration_ms[op] / count, 3)
                for op, count in self._calls.items()
                if count
            }
            return {
                "calculations": sum(self._calls.values()),
                "calls_by_operation": dict(self._calls),
                "avg_duration_ms": avgs,
                "slowest_operation": self._slowest_operation,
                "slowest_ms": round(self._slowest_ms, 3),
                "rejections": sum(self._rejections.values()),
                "rejections_by_operation": dict(self._rejections),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._calls.clear()
            self._total_duration_ms.clear()
            self._rejections.clear()
            self._slowest_operation = None
            self._slowest_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = CalculationTracker()
