# core/metrics.py - in-process metrics for catalog builds, resolutions and checks

import threading
from typing import Dict, Any, Optional, List, Sequence, Tuple
from dataclasses import dataclass, field

# Histogram bucket presets; values above the last bound land in the last bucket.
LATENCY_BUCKETS_MS: Tuple[float, ...] = (0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0)
COUNT_BUCKETS: Tuple[float, ...] = (0, 1, 5, 10, 25, 50, 100, 250, 500, 1000, 5000)

# Label used for permission keys that are not in the catalog.
UNKNOWN_PERMISSION_LABEL = "unknown"


@dataclass
class MetricCounter:
    """A counter metric that can only increase."""
    name: str
    value: int = 0
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class MetricGauge:
    """A gauge metric holding the last value set."""
    name: str
    value: float = 0.0
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class MetricHistogram:
    """A histogram metric with fixed upper bounds."""
    name: str
    buckets: Tuple[float, ...] = LATENCY_BUCKETS_MS
    counts: List[int] = field(default_factory=list)
    sum: float = 0.0
    count: int = 0
    labels: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.counts:
            self.counts = [0] * len(self.buckets)

    def observe(self, value: float):
        self.sum += value
        self.count += 1
        for i, bound in enumerate(self.buckets):
            if value <= bound:
                self.counts[i] += 1
                return
        self.counts[-1] += 1

    def stats(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "sum": self.sum,
            "avg": self.sum / self.count if self.count else 0.0,
            "buckets": dict(zip(self.buckets, self.counts)),
        }


def _series_key(name: str, labels: Optional[Dict[str, str]]) -> str:
    if not labels:
        return name
    label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{label_str}}}"


class MetricsCollector:
    """Thread-safe metrics collector. Recording is a no-op while disabled."""

    def __init__(self, enabled: bool = True):
        self._lock = threading.RLock()
        self._counters: Dict[str, MetricCounter] = {}
        self._gauges: Dict[str, MetricGauge] = {}
        self._histograms: Dict[str, MetricHistogram] = {}
        self.enabled = enabled

    def increment_counter(self, name: str, value: int = 1, labels: Dict[str, str] = None):
        if not self.enabled:
            return
        with self._lock:
            key = _series_key(name, labels)
            counter = self._counters.get(key)
            if counter is None:
                counter = self._counters[key] = MetricCounter(name=name, labels=dict(labels or {}))
            counter.value += value

    def set_gauge(self, name: str, value: float, labels: Dict[str, str] = None):
        if not self.enabled:
            return
        with self._lock:
            key = _series_key(name, labels)
            gauge = self._gauges.get(key)
            if gauge is None:
                gauge = self._gauges[key] = MetricGauge(name=name, labels=dict(labels or {}))
            gauge.value = value

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: Dict[str, str] = None,
        buckets: Optional[Sequence[float]] = None,
    ):
        """
        Observe a value. ``buckets`` only applies when the series is created.
        """
        if not self.enabled:
            return
        with self._lock:
            key = _series_key(name, labels)
            histogram = self._histograms.get(key)
            if histogram is None:
                histogram = self._histograms[key] = MetricHistogram(
                    name=name,
                    buckets=tuple(buckets) if buckets else LATENCY_BUCKETS_MS,
                    labels=dict(labels or {}),
                )
            histogram.observe(value)

    def get_counter(self, name: str, labels: Dict[str, str] = None) -> int:
        with self._lock:
            counter = self._counters.get(_series_key(name, labels))
            return counter.value if counter else 0

    def get_gauge(self, name: str, labels: Dict[str, str] = None) -> float:
        with self._lock:
            gauge = self._gauges.get(_series_key(name, labels))
            return gauge.value if gauge else 0.0

    def get_histogram_stats(self, name: str, labels: Dict[str, str] = None) -> Dict[str, Any]:
        with self._lock:
            histogram = self._histograms.get(_series_key(name, labels))
            if histogram is None:
                histogram = MetricHistogram(name=name)
            return histogram.stats()

    def get_all_metrics(self) -> Dict[str, Any]:
        """Snapshot of every series, grouped by metric name."""
        with self._lock:
            metrics = {"counters": {}, "gauges": {}, "histograms": {}}
            for counter in self._counters.values():
                metrics["counters"].setdefault(counter.name, []).append(
                    {"value": counter.value, "labels": dict(counter.labels)}
                )
            for gauge in self._gauges.values():
                metrics["gauges"].setdefault(gauge.name, []).append(
                    {"value": gauge.value, "labels": dict(gauge.labels)}
                )
            for histogram in self._histograms.values():
                metrics["histograms"].setdefault(histogram.name, []).append(
                    {"stats": histogram.stats(), "labels": dict(histogram.labels)}
                )
            return metrics

    def reset_metrics(self):
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()


# Global metrics collector instance
_metrics = MetricsCollector()

def increment_counter(name: str, value: int = 1, labels: Dict[str, str] = None):
    _metrics.increment_counter(name, value, labels)

def set_gauge(name: str, value: float, labels: Dict[str, str] = None):
    _metrics.set_gauge(name, value, labels)

def observe_histogram(
    name: str,
    value: float,
    labels: Dict[str, str] = None,
    buckets: Optional[Sequence[float]] = None,
):
    _metrics.observe_histogram(name, value, labels, buckets)

def get_counter(name: str, labels: Dict[str, str] = None) -> int:
    return _metrics.get_counter(name, labels)

def get_gauge(name: str, labels: Dict[str, str] = None) -> float:
    return _metrics.get_gauge(name, labels)

def get_histogram_stats(name: str, labels: Dict[str, str] = None) -> Dict[str, Any]:
    return _metrics.get_histogram_stats(name, labels)

def get_all_metrics() -> Dict[str, Any]:
    return _metrics.get_all_metrics()

def reset_metrics():
    """Reset all metrics (useful for testing)."""
    _metrics.reset_metrics()

def set_metrics_enabled(enabled: bool):
    """Turn recording on or off; reads are unaffected."""
    _metrics.enabled = bool(enabled)


# ============================================================================
# Access-Specific Metrics
# ============================================================================

def record_catalog_build(version: Optional[str], permission_count: int, membership_count: int):
    """
    Record a catalog index build.

    Args:
        version: Catalog version (None when the catalog is unversioned)
        permission_count: Registered permissions
        membership_count: Registered memberships
    """
    increment_counter("access.catalog.builds")
    set_gauge("access.catalog.permissions", permission_count)
    set_gauge("access.catalog.memberships", membership_count)
    increment_counter("access.catalog.builds.by_version", labels={"version": version or "unversioned"})


def record_resolution(membership_count: int, permission_count: int, latency_ms: float):
    """
    Record an authorization state resolution.

    Args:
        membership_count: Memberships matched from caller input
        permission_count: Size of the closed permission set
        latency_ms: Resolution time in milliseconds
    """
    increment_counter("access.resolutions")
    if membership_count == 0:
        increment_counter("access.resolutions.no_membership")
    observe_histogram("access.resolution.latency_ms", latency_ms, buckets=LATENCY_BUCKETS_MS)
    observe_histogram("access.resolution.permissions", permission_count, buckets=COUNT_BUCKETS)


def record_permission_check(allowed: bool, permission: str, via_override: bool = False):
    """
    Record a permission check.

    Args:
        allowed: Whether the permission was held
        permission: Permission label; callers pass UNKNOWN_PERMISSION_LABEL
            for keys outside the catalog so the label set stays bounded
        via_override: Whether a grant-all membership decided the check
    """
    if allowed:
        increment_counter("access.allowed")
        increment_counter("access.allowed.by_permission", labels={"permission": permission})
        if via_override:
            increment_counter("access.allowed.override")
    else:
        increment_counter("access.denied")
        increment_counter("access.denied.by_permission", labels={"permission": permission})


def get_access_metrics() -> Dict[str, Any]:
    """
    Get access-related metrics grouped by area.

    Returns:
        Dictionary with ``catalog``, ``resolutions`` and ``checks`` groups; each
        maps metric names (counters, gauges and histograms) to their series
    """
    all_metrics = _metrics.get_all_metrics()

    access_metrics = {
        "catalog": {},
        "resolutions": {},
        "checks": {},
    }

    for kind in ("counters", "gauges", "histograms"):
        for metric_name, metric_data in all_metrics[kind].items():
            if metric_name.startswith("access.catalog."):
                access_metrics["catalog"][metric_name] = metric_data
            elif metric_name.startswith(("access.resolutions", "access.resolution.")):
                access_metrics["resolutions"][metric_name] = metric_data
            elif metric_name.startswith(("access.allowed", "access.denied")):
                access_metrics["checks"][metric_name] = metric_data

    return access_metrics


__all__ = [
    'MetricsCollector', 'MetricCounter', 'MetricGauge', 'MetricHistogram',
    'LATENCY_BUCKETS_MS', 'COUNT_BUCKETS', 'UNKNOWN_PERMISSION_LABEL',
    'increment_counter', 'set_gauge', 'observe_histogram', 'get_counter',
    'get_gauge', 'get_histogram_stats', 'get_all_metrics', 'reset_metrics',
    'set_metrics_enabled',
    # Access metrics
    'record_catalog_build', 'record_resolution', 'record_permission_check',
    'get_access_metrics',
]
