"""
Shared metrics configuration for the cache-aside client.
"""

from typing import Dict, Any, Optional
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, CollectorRegistry


class CacheMetrics:
    """Prometheus metrics for cache-aside traffic.

    Metrics are left unregistered unless a registry is supplied, so several
    engines can live in the same process without name collisions.
    """

    def __init__(self, cache_name: str = "default", registry: Optional[CollectorRegistry] = None):
        self.cache_name = cache_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""
        self._metrics["cache_hits_total"] = Counter(
            "cache_hits_total",
            "Total cache hits",
            ["cache"],
            registry=self.registry
        )

        self._metrics["cache_misses_total"] = Counter(
            "cache_misses_total",
            "Total cache misses",
            ["cache"],
            registry=self.registry
        )

        self._metrics["cache_fallback_calls_total"] = Counter(
            "cache_fallback_calls_total",
            "Total fallback invocations",
            ["cache", "mode"],
            registry=self.registry
        )

        self._metrics["cache_errors_total"] = Counter(
            "cache_errors_total",
            "Total handled cache errors",
            ["cache", "kind"],
            registry=self.registry
        )

        self._metrics["cache_fallback_duration_seconds"] = Histogram(
            "cache_fallback_duration_seconds",
            "Fallback duration in seconds",
            ["cache", "mode"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_hits(self, count: int = 1):
        if count:
            self._metrics["cache_hits_total"].labels(cache=self.cache_name).inc(count)

    def record_misses(self, count: int = 1):
        if count:
            self._metrics["cache_misses_total"].labels(cache=self.cache_name).inc(count)

    def record_error(self, kind: str):
        """Record a handled error by kind."""
        self._metrics["cache_errors_total"].labels(cache=self.cache_name, kind=kind).inc()

    @contextmanager
    def time_fallback(self, mode: str):
        """Count and time one fallback invocation."""
        self._metrics["cache_fallback_calls_total"].labels(cache=self.cache_name, mode=mode).inc()
        start_time = time.time()
        try:
            yield
        finally:
            duration = time.time() - start_time
            self._metrics["cache_fallback_duration_seconds"].labels(
                cache=self.cache_name,
                mode=mode
            ).observe(duration)
