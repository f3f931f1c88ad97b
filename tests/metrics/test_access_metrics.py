"""
Tests for the metrics collector and access engine instrumentation.
"""

import threading

import pytest

from core.metrics import (
    COUNT_BUCKETS,
    LATENCY_BUCKETS_MS,
    MetricsCollector,
    get_access_metrics,
    get_counter,
    get_gauge,
    get_histogram_stats,
    increment_counter,
    record_catalog_build,
    record_permission_check,
    record_resolution,
    reset_metrics,
    set_metrics_enabled,
)


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    set_metrics_enabled(True)
    yield
    set_metrics_enabled(True)
    reset_metrics()


class TestMetricsCollector:
    """Test the collector primitives."""

    def test_counter_with_labels(self):
        collector = MetricsCollector()
        collector.increment_counter("checks", labels={"permission": "a"})
        collector.increment_counter("checks", labels={"permission": "a"})
        collector.increment_counter("checks", labels={"permission": "b"})
        assert collector.get_counter("checks", {"permission": "a"}) == 2
        assert collector.get_counter("checks", {"permission": "b"}) == 1
        assert collector.get_counter("checks") == 0

    def test_gauge_overwrites(self):
        collector = MetricsCollector()
        collector.set_gauge("size", 3)
        collector.set_gauge("size", 5)
        assert collector.get_gauge("size") == 5

    def test_histogram_buckets(self):
        collector = MetricsCollector()
        for value in (0.05, 0.3, 7.0, 500.0):
            collector.observe_histogram("latency", value)
        stats = collector.get_histogram_stats("latency")
        assert stats["count"] == 4
        assert stats["buckets"][0.1] == 1
        assert stats["buckets"][0.5] == 1
        assert stats["buckets"][10.0] == 1
        assert stats["buckets"][100.0] == 1

    def test_disabled_collector_records_nothing(self):
        collector = MetricsCollector(enabled=False)
        collector.increment_counter("checks")
        collector.set_gauge("size", 1)
        collector.observe_histogram("latency", 1.0)
        assert collector.get_counter("checks") == 0
        assert collector.get_all_metrics()["histograms"] == {}

    def test_thread_safety(self):
        collector = MetricsCollector()

        def worker():
            for _ in range(1000):
                collector.increment_counter("hits")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert collector.get_counter("hits") == 8000


class TestAccessMetrics:
    """Test access engine recording helpers."""

    def test_record_catalog_build(self):
        record_catalog_build("2024.10.1", permission_count=8, membership_count=5)
        record_catalog_build(None, permission_count=2, membership_count=1)

        assert get_counter("access.catalog.builds") == 2
        assert get_counter("access.catalog.builds.by_version", {"version": "2024.10.1"}) == 1
        assert get_counter("access.catalog.builds.by_version", {"version": "unversioned"}) == 1
        assert get_gauge("access.catalog.permissions") == 2
        assert get_gauge("access.catalog.memberships") == 1

    def test_record_resolution(self):
        record_resolution(membership_count=2, permission_count=6, latency_ms=1.5)
        record_resolution(membership_count=0, permission_count=0, latency_ms=0.2)

        assert get_counter("access.resolutions") == 2
        assert get_counter("access.resolutions.no_membership") == 1
        assert get_histogram_stats("access.resolution.permissions")["avg"] == 3.0

    def test_record_permission_check(self):
        record_permission_check(True, "clients.read")
        record_permission_check(True, "reports.export", via_override=True)
        record_permission_check(False, "finance.payouts")

        assert get_counter("access.allowed") == 2
        assert get_counter("access.allowed.override") == 1
        assert get_counter("access.allowed.by_permission", {"permission": "clients.read"}) == 1
        assert get_counter("access.denied") == 1
        assert get_counter("access.denied.by_permission", {"permission": "finance.payouts"}) == 1

    def test_permission_count_uses_count_buckets(self):
        record_resolution(membership_count=1, permission_count=180, latency_ms=0.3)
        record_resolution(membership_count=1, permission_count=3, latency_ms=0.3)

        buckets = get_histogram_stats("access.resolution.permissions")["buckets"]
        assert tuple(buckets) == COUNT_BUCKETS
        assert buckets[250] == 1
        assert buckets[5] == 1
        assert buckets[COUNT_BUCKETS[-1]] == 0

        latency = get_histogram_stats("access.resolution.latency_ms")["buckets"]
        assert tuple(latency) == LATENCY_BUCKETS_MS
        assert latency[0.5] == 2

    def test_get_access_metrics_includes_gauges_and_histograms(self):
        record_catalog_build("1", permission_count=8, membership_count=5)
        record_resolution(1, 4, 0.1)

        grouped = get_access_metrics()
        assert grouped["catalog"]["access.catalog.permissions"][0]["value"] == 8
        assert grouped["catalog"]["access.catalog.memberships"][0]["value"] == 5
        stats = grouped["resolutions"]["access.resolution.permissions"][0]["stats"]
        assert stats["count"] == 1
        assert "access.resolution.latency_ms" in grouped["resolutions"]

    def test_get_access_metrics_groups_counters(self):
        record_catalog_build("1", 1, 1)
        record_resolution(1, 1, 0.1)
        record_permission_check(False, "x")
        increment_counter("unrelated.counter")

        grouped = get_access_metrics()
        assert "access.catalog.builds" in grouped["catalog"]
        assert "access.resolutions" in grouped["resolutions"]
        assert "access.denied" in grouped["checks"]
        assert all("unrelated.counter" not in group for group in grouped.values())

    def test_set_metrics_enabled(self):
        set_metrics_enabled(False)
        record_permission_check(True, "clients.read")
        assert get_counter("access.allowed") == 0

        set_metrics_enabled(True)
        record_permission_check(True, "clients.read")
        assert get_counter("access.allowed") == 1
