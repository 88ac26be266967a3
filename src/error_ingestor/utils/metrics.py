"""Metrics collection for the parsing and resolution pipeline.

Counters and gauges are Prometheus-style (name, help text, optional labels)
and thread-safe. A ``MetricsRegistry`` is owned by the process context and
handed to the parser, cache and resolver; there is no module-level instance.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from threading import Lock
from typing import Any

LabelKey = tuple[tuple[str, str], ...]


class MetricType(StrEnum):
    """Types of metrics."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass
class MetricValue:
    """A single metric value with metadata."""

    name: str
    type: MetricType
    value: float
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    help_text: str = ""


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted(labels.items())) if labels else ()


class _Metric:
    type: MetricType

    def __init__(self, name: str, help_text: str = "") -> None:
        self.name = name
        self.help_text = help_text
        self._values: dict[LabelKey, float] = defaultdict(float)
        self._lock = Lock()

    def get(self, labels: dict[str, str] | None = None) -> float:
        """Get the current value for a label set."""
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def get_all(self) -> list[MetricValue]:
        """Get all values with their labels."""
        with self._lock:
            return [
                MetricValue(
                    name=self.name,
                    type=self.type,
                    value=value,
                    labels=dict(label_key),
                    help_text=self.help_text,
                )
                for label_key, value in self._values.items()
            ]


class Counter(_Metric):
    """A monotonically increasing counter.

    Example:
        counter = Counter("frames_parsed_total", "Frames parsed")
        counter.inc()
        counter.inc(5, labels={"platform": "web"})
    """

    type = MetricType.COUNTER

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        if value < 0:
            raise ValueError("Counter can only increase")
        with self._lock:
            self._values[_label_key(labels)] += value


class Gauge(_Metric):
    """A metric that can go up or down."""

    type = MetricType.GAUGE

    def set(self, value: float, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] = value

    def inc(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] += value

    def dec(self, value: float = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._values[_label_key(labels)] -= value


class MetricsRegistry:
    """All metrics emitted by the stack trace core.

    Example:
        metrics = MetricsRegistry()
        metrics.frames_parsed.inc()
        snapshot = metrics.get_all_metrics()
    """

    def __init__(self) -> None:
        # Parsing
        self.traces_parsed = Counter(
            "error_ingestor_traces_parsed_total",
            "Total stack traces parsed",
        )
        self.frames_parsed = Counter(
            "error_ingestor_frames_parsed_total",
            "Total frames matched by a dialect pattern",
        )
        self.frames_unparsed = Counter(
            "error_ingestor_frames_unparsed_total",
            "Total lines that fell back to a raw-only frame",
        )

        # Resolution
        self.frames_resolved = Counter(
            "error_ingestor_frames_resolved_total",
            "Total frames mapped back to original source",
        )
        self.frames_unresolved = Counter(
            "error_ingestor_frames_unresolved_total",
            "Total frames returned without an original location",
        )

        # Source map cache
        self.source_map_cache_hits = Counter(
            "error_ingestor_source_map_cache_hits_total",
            "Total source map cache hits",
        )
        self.source_map_cache_misses = Counter(
            "error_ingestor_source_map_cache_misses_total",
            "Total source map cache misses (absent or stale)",
        )
        self.source_map_cache_evictions = Counter(
            "error_ingestor_source_map_cache_evictions_total",
            "Total entries evicted for capacity",
        )
        self.source_map_load_failures = Counter(
            "error_ingestor_source_map_load_failures_total",
            "Total source map documents that failed to load or parse",
        )
        self.source_map_cache_size = Gauge(
            "error_ingestor_source_map_cache_size",
            "Number of source maps currently cached",
        )

        self._start_time = time.time()

    def get_uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def get_all_metrics(self) -> dict[str, Any]:
        """Get a snapshot of all metrics as a dictionary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "parsing": {
                "traces": self.traces_parsed.get(),
                "frames": self.frames_parsed.get(),
                "unparsed_frames": self.frames_unparsed.get(),
            },
            "resolution": {
                "resolved": self.frames_resolved.get(),
                "unresolved": self.frames_unresolved.get(),
            },
            "source_map_cache": {
                "hits": self.source_map_cache_hits.get(),
                "misses": self.source_map_cache_misses.get(),
                "evictions": self.source_map_cache_evictions.get(),
                "load_failures": self.source_map_load_failures.get(),
                "size": self.source_map_cache_size.get(),
            },
        }

    def to_prometheus_format(self) -> str:
        """Export all metrics in Prometheus text exposition format."""
        lines: list[str] = []
        for metric in vars(self).values():
            if not isinstance(metric, _Metric):
                continue
            lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.type.value}")
            values = metric.get_all() or [
                MetricValue(name=metric.name, type=metric.type, value=0)
            ]
            for value in values:
                if value.labels:
                    labels = ",".join(f'{k}="{v}"' for k, v in value.labels.items())
                    lines.append(f"{metric.name}{{{labels}}} {value.value}")
                else:
                    lines.append(f"{metric.name} {value.value}")
        return "\n".join(lines) + "\n"
