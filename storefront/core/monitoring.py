"""
Monitoring utilities

In-process metrics collection:
- Request metrics (latency, error rates) via RequestMetricsMiddleware
- Business counters (cart adds, checkouts)
- Database pool gauges

Exposed as JSON at /metrics.
"""
import logging
import re
import time
from collections import deque
from datetime import datetime, timezone, timedelta
from threading import Lock
from typing import Dict, Optional

logger = logging.getLogger(__name__)

_ID_SEGMENT = re.compile(r"/\d+")


class MetricsCollector:
    """
    In-memory metrics collector with rolling windows.

    Collects:
    - Counters (monotonically increasing values)
    - Gauges (point-in-time values)
    - Histograms (distribution of values)
    """

    def __init__(self, max_observations: int = 10000):
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._histograms: Dict[str, deque] = {}
        self._max_observations = max_observations
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)

    def increment(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """Increment a counter metric."""
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Set a gauge metric (point-in-time value)."""
        key = self._make_key(name, labels)
        with self._lock:
            self._gauges[key] = value

    def observe(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a histogram observation (e.g., latency)."""
        key = self._make_key(name, labels)
        now = datetime.now(timezone.utc)
        with self._lock:
            if key not in self._histograms:
                self._histograms[key] = deque(maxlen=self._max_observations)
            self._histograms[key].append((now, value))

    def _make_key(self, name: str, labels: Optional[Dict[str, str]]) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        return self._counters.get(self._make_key(name, labels), 0)

    def get_gauge(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        return self._gauges.get(self._make_key(name, labels))

    def get_histogram_stats(self, name: str, window_seconds: int = 300) -> Dict:
        """Statistics over every labelled series of a histogram within the window."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=window_seconds)
        with self._lock:
            values = [
                v
                for key, series in self._histograms.items()
                if key == name or key.startswith(name + "{")
                for ts, v in series
                if ts > cutoff
            ]

        if not values:
            return {"count": 0, "avg": 0, "min": 0, "max": 0, "p95": 0}

        values.sort()
        p95_idx = min(int(len(values) * 0.95), len(values) - 1)
        return {
            "count": len(values),
            "avg": sum(values) / len(values),
            "min": values[0],
            "max": values[-1],
            "p95": values[p95_idx],
        }

    def get_all_metrics(self) -> Dict:
        """Get all metrics for export/display."""
        now = datetime.now(timezone.utc)
        with self._lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
        return {
            "uptime_seconds": (now - self._start_time).total_seconds(),
            "counters": counters,
            "gauges": gauges,
            "request_latency": self.get_histogram_stats("http_request_duration_seconds"),
            "collected_at": now.isoformat(),
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()


# Process-wide collector
metrics = MetricsCollector()


class RequestMetricsMiddleware:
    """
    ASGI middleware recording latency and status per normalized path.

    Usage:
        app.add_middleware(RequestMetricsMiddleware)
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.perf_counter() - start_time
            labels = {
                "method": scope.get("method", "UNKNOWN"),
                "path": normalize_path(scope.get("path", "/")),
                "status": str(status_code),
            }
            metrics.observe("http_request_duration_seconds", duration, labels)
            metrics.increment("http_requests_total", labels=labels)

            if status_code >= 400:
                metrics.increment("http_errors_total", labels={"status": str(status_code)})


def normalize_path(path: str) -> str:
    """Replace numeric ids so /products/7 and /products/8 aggregate together."""
    return _ID_SEGMENT.sub("/:id", path)


def record_db_metrics(pool) -> None:
    """Record connection pool gauges; pools without counters are skipped."""
    try:
        metrics.gauge("db_pool_size", pool.size())
        metrics.gauge("db_pool_checked_in", pool.checkedin())
        metrics.gauge("db_pool_checked_out", pool.checkedout())
        metrics.gauge("db_pool_overflow", pool.overflow())
    except AttributeError as e:
        logger.debug(f"Pool does not expose metrics: {e}")
