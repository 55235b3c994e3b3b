"""
Metrics for the JWKS signing-key client.
"""

from typing import Any, Dict, Optional
import time
import threading
from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram


class MetricsCollector:
    """Centralized metrics collector for a client instance.

    Each collector owns its own registry unless one is passed in, so several
    clients can live in one process without duplicate-registration errors.
    """

    def __init__(self, service_name: str = "jwks", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up the client metrics."""
        self._metrics["jwks_fetch_total"] = Counter(
            "jwks_fetch_total",
            "Total JWKS endpoint fetches",
            ["status"],
            registry=self.registry
        )

        self._metrics["jwks_fetch_duration_seconds"] = Histogram(
            "jwks_fetch_duration_seconds",
            "JWKS fetch duration in seconds",
            registry=self.registry
        )

        self._metrics["signing_key_cache_hits_total"] = Counter(
            "signing_key_cache_hits_total",
            "Total signing key cache hits",
            registry=self.registry
        )

        self._metrics["signing_key_cache_misses_total"] = Counter(
            "signing_key_cache_misses_total",
            "Total signing key cache misses",
            registry=self.registry
        )

        self._metrics["rate_limit_rejections_total"] = Counter(
            "rate_limit_rejections_total",
            "Total signing key lookups rejected by the rate limiter",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read the current value of a sample, 0.0 when never observed."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    @contextmanager
    def time_operation(self, metric_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            self.observe_histogram(metric_name, time.perf_counter() - start_time, **labels)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        with self._lock:
            if labels:
                metric.labels(**labels).inc()
            else:
                metric.inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return
        with self._lock:
            if labels:
                metric.labels(**labels).observe(value)
            else:
                metric.observe(value)


def get_metrics_collector(service_name: str = "jwks", registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a client."""
    return MetricsCollector(service_name, registry)
