"""In-process counters for cache, validation and endpoint activity.

The cache layer, the content service and the HTTP middleware record events
here so that ``/metrics/*`` endpoints can report them. Nothing is exported to
an external backend; summaries are primitive-only dictionaries ready for JSON.

Example::

        from tiptap_content.monitoring import get_monitor
        monitor = get_monitor()
        monitor.record_cache_hit(response_time=0.001)
        monitor.record_validation(valid=False, failed_rules=["max_length"])
        monitor.get_cache_analytics()["performance"]["hit_rate_percent"]  # 100.0
"""

from __future__ import annotations

import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional


@dataclass
class CacheMetrics:
    """Aggregate cache counters.

    Attributes:
        hits: Lookups answered from the cache.
        misses: Lookups that had to compute the value.
        evictions: Entries dropped on TTL expiry.
        total_requests: hits + misses.
        hit_rate: hits / total_requests (0..1).
        average_response_time: Mean lookup latency in seconds.
        cache_size: Entry count reported by the cache.
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    total_requests: int = 0
    hit_rate: float = 0.0
    average_response_time: float = 0.0
    cache_size: int = 0


@dataclass
class EndpointMetrics:
    total_requests: int = 0
    total_response_time: float = 0.0
    average_response_time: float = 0.0
    error_count: int = 0
    last_accessed: Optional[datetime] = None
    response_times: deque = field(default_factory=lambda: deque(maxlen=100))


@dataclass
class ValidationMetrics:
    passed: int = 0
    failed: int = 0
    failed_rules: Counter = field(default_factory=Counter)


class PerformanceMonitor:
    """Thread-safe registry of counters, shared as a process singleton."""

    def __init__(self) -> None:
        self.start_time = datetime.now()
        self._lock = threading.RLock()
        self.cache_metrics = CacheMetrics()
        self.validation_metrics = ValidationMetrics()
        self.endpoint_metrics: Dict[str, EndpointMetrics] = defaultdict(EndpointMetrics)

    def record_cache_hit(self, response_time: float = 0.0) -> None:
        with self._lock:
            self.cache_metrics.hits += 1
            self.cache_metrics.total_requests += 1
            self._update_cache_metrics(response_time)

    def record_cache_miss(self, response_time: float = 0.0) -> None:
        with self._lock:
            self.cache_metrics.misses += 1
            self.cache_metrics.total_requests += 1
            self._update_cache_metrics(response_time)

    def record_cache_eviction(self) -> None:
        with self._lock:
            self.cache_metrics.evictions += 1

    def update_cache_size(self, cache_size: int) -> None:
        with self._lock:
            self.cache_metrics.cache_size = cache_size

    def _update_cache_metrics(self, response_time: float) -> None:
        total = self.cache_metrics.total_requests
        self.cache_metrics.hit_rate = self.cache_metrics.hits / total
        if response_time > 0:
            current_avg = self.cache_metrics.average_response_time
            self.cache_metrics.average_response_time = (
                current_avg * (total - 1) + response_time
            ) / total

    def record_validation(self, valid: bool, failed_rules: Iterable[str] = ()) -> None:
        """Count a validation outcome and the rules that failed."""
        with self._lock:
            if valid:
                self.validation_metrics.passed += 1
            else:
                self.validation_metrics.failed += 1
                self.validation_metrics.failed_rules.update(failed_rules)

    def record_endpoint_request(
        self, endpoint: str, response_time: float, status_code: int = 200
    ) -> None:
        """Record an HTTP request (status >= 400 counts as an error)."""
        with self._lock:
            metrics = self.endpoint_metrics[endpoint]
            metrics.total_requests += 1
            metrics.total_response_time += response_time
            metrics.average_response_time = metrics.total_response_time / metrics.total_requests
            metrics.last_accessed = datetime.now()
            metrics.response_times.append(response_time)
            if status_code >= 400:
                metrics.error_count += 1

    def get_cache_analytics(self) -> Dict[str, Any]:
        with self._lock:
            hit_rate = self.cache_metrics.hit_rate
            return {
                "performance": {
                    "hit_rate_percent": round(hit_rate * 100, 2),
                    "miss_rate_percent": round((1 - hit_rate) * 100, 2)
                    if self.cache_metrics.total_requests
                    else 0.0,
                    "average_response_time_ms": round(
                        self.cache_metrics.average_response_time * 1000, 2
                    ),
                },
                "usage": {
                    "total_requests": self.cache_metrics.total_requests,
                    "cache_hits": self.cache_metrics.hits,
                    "cache_misses": self.cache_metrics.misses,
                    "evictions": self.cache_metrics.evictions,
                    "cache_size_entries": self.cache_metrics.cache_size,
                },
            }

    def get_performance_summary(self) -> Dict[str, Any]:
        """Return a consolidated snapshot of every metric domain."""
        with self._lock:
            top_endpoints = sorted(
                self.endpoint_metrics.items(),
                key=lambda x: x[1].total_requests,
                reverse=True,
            )[:10]
            return {
                "timestamp": datetime.now().isoformat(),
                "uptime_seconds": round((datetime.now() - self.start_time).total_seconds(), 2),
                "cache": self.get_cache_analytics()["usage"],
                "validation": {
                    "passed": self.validation_metrics.passed,
                    "failed": self.validation_metrics.failed,
                    "failed_rules": dict(self.validation_metrics.failed_rules),
                },
                "api": {
                    "total_requests": sum(m.total_requests for m in self.endpoint_metrics.values()),
                    "top_endpoints": [
                        {
                            "endpoint": endpoint,
                            "requests": metrics.total_requests,
                            "avg_response_time_ms": round(metrics.average_response_time * 1000, 2),
                            "errors": metrics.error_count,
                        }
                        for endpoint, metrics in top_endpoints
                    ],
                },
            }

    def reset_metrics(self) -> None:
        """Reset all counters (primarily for tests)."""
        with self._lock:
            self.cache_metrics = CacheMetrics()
            self.validation_metrics = ValidationMetrics()
            self.endpoint_metrics.clear()
            self.start_time = datetime.now()


_monitor: Optional[PerformanceMonitor] = None


def get_monitor() -> PerformanceMonitor:
    """Return (and lazily initialize) the process-wide monitor."""
    global _monitor
    if _monitor is None:
        _monitor = PerformanceMonitor()
    return _monitor
