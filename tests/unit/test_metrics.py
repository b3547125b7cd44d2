"""Tests for the metrics collection module."""

import time

import pytest

from change_review.utils.metrics import (
    Counter,
    Histogram,
    MetricsRegistry,
    MetricType,
    Timer,
    get_metrics,
)


class TestCounter:
    """Tests for Counter metric."""

    def test_counter_initial_value(self) -> None:
        counter = Counter("test_counter")
        assert counter.get() == 0

    def test_counter_increment(self) -> None:
        counter = Counter("test_counter")
        counter.inc()
        counter.inc(5)
        assert counter.get() == 6

    def test_counter_with_labels(self) -> None:
        """Test that label sets are counted separately and in total."""
        counter = Counter("test_counter")
        counter.inc(labels={"pass": "deps", "risk": "medium"})
        counter.inc(labels={"risk": "medium", "pass": "deps"})
        counter.inc(labels={"pass": "security", "risk": "high"})

        assert counter.get(labels={"pass": "deps", "risk": "medium"}) == 2
        assert counter.get(labels={"pass": "security", "risk": "high"}) == 1
        assert counter.get() == 0
        assert counter.total() == 3

    def test_counter_cannot_decrease(self) -> None:
        counter = Counter("test_counter")
        with pytest.raises(ValueError, match="Counter can only increase"):
            counter.inc(-1)

    def test_counter_get_all(self) -> None:
        counter = Counter("test_counter")
        counter.inc(labels={"decision": "approved"})

        (value,) = counter.get_all()
        assert value.type == MetricType.COUNTER
        assert value.labels == {"decision": "approved"}
        assert value.value == 1


class TestHistogram:
    """Tests for Histogram metric."""

    def test_histogram_observe(self) -> None:
        histogram = Histogram("test_histogram")
        histogram.observe(0.5)
        histogram.observe(1.0)
        histogram.observe(1.5)

        stats = histogram.get_stats()
        assert stats["count"] == 3
        assert stats["sum"] == 3.0
        assert stats["min"] == 0.5
        assert stats["max"] == 1.5
        assert stats["mean"] == 1.0

    def test_histogram_empty(self) -> None:
        stats = Histogram("test_histogram").get_stats()
        assert stats["count"] == 0
        assert stats["sum"] == 0

    def test_histogram_buckets_are_cumulative(self) -> None:
        histogram = Histogram("test_histogram", buckets=(1.0, 5.0, 10.0, float("inf")))
        for value in (0.5, 3.0, 7.0, 15.0):
            histogram.observe(value)

        assert histogram.get_buckets() == {1.0: 1, 5.0: 2, 10.0: 3, float("inf"): 4}

    def test_histogram_with_labels(self) -> None:
        histogram = Histogram("test_histogram")
        histogram.observe(1.0, labels={"pass": "schema"})
        histogram.observe(2.0, labels={"pass": "deps"})

        assert histogram.get_stats(labels={"pass": "schema"})["sum"] == 1.0
        assert {"pass": "deps"} in histogram.label_sets()


class TestMetricsRegistry:
    """Tests for MetricsRegistry singleton."""

    def test_singleton_instance(self) -> None:
        assert MetricsRegistry.get_instance() is get_metrics()

    def test_registry_has_expected_metrics(self) -> None:
        registry = get_metrics()
        assert {c.name for c in registry.counters} == {
            "change_review_diffs_parsed_total",
            "change_review_parse_errors_total",
            "change_review_passes_run_total",
            "change_review_passes_degraded_total",
            "change_review_findings_total",
            "change_review_decisions_total",
            "change_review_patches_generated_total",
        }

    def test_registry_get_all_metrics(self) -> None:
        registry = get_metrics()
        registry.findings.inc(labels={"pass": "deps", "risk": "medium"})
        registry.findings.inc(labels={"pass": "schema", "risk": "high"})

        metrics = registry.get_all_metrics()
        assert metrics["uptime_seconds"] >= 0
        assert metrics["analysis"]["findings"] == 2
        assert set(metrics) == {"uptime_seconds", "parsing", "analysis", "review"}

    def test_registry_prometheus_format(self) -> None:
        registry = get_metrics()
        registry.passes_run.inc(labels={"pass": "deps"})
        registry.pass_duration.observe(0.002, labels={"pass": "deps"})

        output = registry.to_prometheus_format()

        assert "# TYPE change_review_passes_run_total counter" in output
        assert 'change_review_passes_run_total{pass="deps"} 1' in output
        assert 'change_review_pass_duration_seconds_bucket{pass="deps",le="+Inf"} 1' in output
        assert 'change_review_pass_duration_seconds_count{pass="deps"} 1' in output
        assert "change_review_uptime_seconds" in output

    def test_reset(self) -> None:
        registry = get_metrics()
        registry.diffs_parsed.inc()
        registry.parse_duration.observe(0.1)
        registry.reset()

        assert registry.diffs_parsed.get() == 0
        assert registry.parse_duration.get_stats()["count"] == 0


class TestTimer:
    """Tests for Timer context manager."""

    def test_timer_records_duration(self) -> None:
        histogram = Histogram("test_timer")

        with Timer(histogram) as timer:
            time.sleep(0.01)

        stats = histogram.get_stats()
        assert stats["count"] == 1
        assert stats["sum"] >= 0.01
        assert timer.elapsed == stats["sum"]

    def test_timer_with_labels(self) -> None:
        histogram = Histogram("test_timer")

        with Timer(histogram, labels={"pass": "blast_radius"}):
            pass

        assert histogram.get_stats(labels={"pass": "blast_radius"})["count"] == 1

    def test_timer_records_on_exception(self) -> None:
        """Test that timer records even if exception is raised."""
        histogram = Histogram("test_timer")

        with pytest.raises(ValueError), Timer(histogram):
            raise ValueError("test error")

        assert histogram.get_stats()["count"] == 1
