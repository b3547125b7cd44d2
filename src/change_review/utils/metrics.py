"""Metrics collection for observability.

This module provides in-process metrics for parsing, analysis and review:
- Diff parse counters and durations
- Per-pass run counts, durations and findings by risk
- Decision and patch counters

Metrics are exported in Prometheus text format.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from threading import Lock
from typing import Any


LabelKey = tuple[tuple[str, str], ...]


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted(labels.items())) if labels else ()


def _format_labels(labels: dict[str, str]) -> str:
    return ",".join(f'{k}="{v}"' for k, v in labels.items())


class MetricType(StrEnum):
    """Types of metrics."""

    COUNTER = "counter"
    HISTOGRAM = "histogram"


@dataclass
class MetricValue:
    """A single metric value with its labels."""

    name: str
    type: MetricType
    value: float
    labels: dict[str, str] = field(default_factory=dict)


class Counter:
    """A monotonically increasing counter.

    Example:
        counter = Counter("findings_total", "Findings emitted")
        counter.inc()
        counter.inc(labels={"pass": "security", "risk": "high"})
    """

    def __init__(self, name: str, help_text: str = "") -> None:
        self.name = name
        self.help_text = help_text
        self._values: dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        """Increment the counter.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter can only increase")

        with self._lock:
            self._values[_label_key(labels)] += value

    def get(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def total(self) -> float:
        """Sum across all label combinations."""
        with self._lock:
            return sum(self._values.values())

    def get_all(self) -> list[MetricValue]:
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=MetricType.COUNTER,
                    value=value,
                    labels=dict(label_key),
                )
                for label_key, value in self._values.items()
            ]

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


class Histogram:
    """A histogram for tracking value distributions.

    Example:
        histogram = Histogram("pass_duration_seconds", "Analysis pass duration")
        histogram.observe(0.02, labels={"pass": "deps"})
    """

    DEFAULT_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, float("inf"))

    def __init__(
        self,
        name: str,
        help_text: str = "",
        buckets: tuple[float, ...] | None = None,
    ) -> None:
        self.name = name
        self.help_text = help_text
        self._buckets = buckets or self.DEFAULT_BUCKETS
        self._observations: dict[LabelKey, list[float]] = defaultdict(list)
        self._lock = Lock()

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._observations[_label_key(labels)].append(value)

    def get_stats(self, labels: dict[str, str] | None = None) -> dict[str, float]:
        """Get count, sum, min, max and mean for one label combination."""
        with self._lock:
            values = list(self._observations.get(_label_key(labels), []))

        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "mean": 0}

        return {
            "count": len(values),
            "sum": sum(values),
            "min": min(values),
            "max": max(values),
            "mean": sum(values) / len(values),
        }

    def get_buckets(self, labels: dict[str, str] | None = None) -> dict[float, int]:
        """Get cumulative bucket counts."""
        with self._lock:
            values = list(self._observations.get(_label_key(labels), []))

        return {bucket: sum(1 for v in values if v <= bucket) for bucket in self._buckets}

    def label_sets(self) -> list[dict[str, str]]:
        with self._lock:
            return [dict(key) for key in self._observations]

    def reset(self) -> None:
        with self._lock:
            self._observations.clear()


class MetricsRegistry:
    """Registry for all application metrics.

    A process-wide singleton; use ``get_metrics()``.
    """

    _instance: MetricsRegistry | None = None
    _lock = Lock()

    def __init__(self) -> None:
        # Parsing
        self.diffs_parsed = Counter(
            "change_review_diffs_parsed_total",
            "Total diffs parsed successfully",
        )
        self.parse_errors = Counter(
            "change_review_parse_errors_total",
            "Total diffs rejected as malformed",
        )
        self.parse_duration = Histogram(
            "change_review_parse_duration_seconds",
            "Diff parse duration in seconds",
        )

        # Analysis
        self.passes_run = Counter(
            "change_review_passes_run_total",
            "Total analysis pass executions",
        )
        self.passes_degraded = Counter(
            "change_review_passes_degraded_total",
            "Analysis passes that could not read the repository",
        )
        self.findings = Counter(
            "change_review_findings_total",
            "Findings emitted by analysis passes",
        )
        self.pass_duration = Histogram(
            "change_review_pass_duration_seconds",
            "Analysis pass duration in seconds",
        )

        # Review
        self.decisions = Counter(
            "change_review_decisions_total",
            "Review decisions recorded",
        )
        self.patches_generated = Counter(
            "change_review_patches_generated_total",
            "Filtered patches generated from review sessions",
        )

        self._start_time = time.time()

    @classmethod
    def get_instance(cls) -> MetricsRegistry:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @property
    def counters(self) -> list[Counter]:
        return [
            self.diffs_parsed,
            self.parse_errors,
            self.passes_run,
            self.passes_degraded,
            self.findings,
            self.decisions,
            self.patches_generated,
        ]

    @property
    def histograms(self) -> list[Histogram]:
        return [self.parse_duration, self.pass_duration]

    def get_uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def get_all_metrics(self) -> dict[str, Any]:
        """Get a summary of all metrics as a dictionary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "parsing": {
                "parsed": self.diffs_parsed.get(),
                "errors": self.parse_errors.get(),
                "duration_stats": self.parse_duration.get_stats(),
            },
            "analysis": {
                "passes_run": self.passes_run.total(),
                "passes_degraded": self.passes_degraded.total(),
                "findings": self.findings.total(),
            },
            "review": {
                "decisions": self.decisions.total(),
                "patches_generated": self.patches_generated.get(),
            },
        }

    def to_prometheus_format(self) -> str:
        """Export metrics in Prometheus text format."""
        lines: list[str] = []

        for counter in self.counters:
            if counter.help_text:
                lines.append(f"# HELP {counter.name} {counter.help_text}")
            lines.append(f"# TYPE {counter.name} counter")
            for metric in counter.get_all():
                if metric.labels:
                    labels = _format_labels(metric.labels)
                    lines.append(f"{counter.name}{{{labels}}} {metric.value}")
                else:
                    lines.append(f"{counter.name} {metric.value}")

        for histogram in self.histograms:
            if histogram.help_text:
                lines.append(f"# HELP {histogram.name} {histogram.help_text}")
            lines.append(f"# TYPE {histogram.name} histogram")
            for labels in histogram.label_sets():
                for bucket, count in histogram.get_buckets(labels).items():
                    le = "+Inf" if bucket == float("inf") else str(bucket)
                    bucket_labels = _format_labels({**labels, "le": le})
                    lines.append(f"{histogram.name}_bucket{{{bucket_labels}}} {count}")
                stats = histogram.get_stats(labels)
                suffix = f"{{{_format_labels(labels)}}}" if labels else ""
                lines.append(f"{histogram.name}_sum{suffix} {stats['sum']}")
                lines.append(f"{histogram.name}_count{suffix} {stats['count']}")

        lines.append("# HELP change_review_uptime_seconds Process uptime in seconds")
        lines.append("# TYPE change_review_uptime_seconds gauge")
        lines.append(f"change_review_uptime_seconds {self.get_uptime_seconds()}")

        return "\n".join(lines)

    def reset(self) -> None:
        """Reset all metrics (for tests)."""
        for counter in self.counters:
            counter.reset()
        for histogram in self.histograms:
            histogram.reset()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    return MetricsRegistry.get_instance()


class Timer:
    """Context manager for timing operations.

    Example:
        with Timer(metrics.pass_duration, labels={"pass": "schema"}):
            run_pass()
    """

    def __init__(
        self,
        histogram: Histogram,
        labels: dict[str, str] | None = None,
    ) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start: float | None = None
        self.elapsed: float = 0.0

    def __enter__(self) -> Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        if self._start is not None:
            self.elapsed = time.perf_counter() - self._start
            self._histogram.observe(self.elapsed, labels=self._labels)
