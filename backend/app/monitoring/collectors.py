"""Default process and runtime metrics backed by prometheus_client collectors."""

from __future__ import annotations

import time
from typing import Iterable, Sequence

from prometheus_client import CollectorRegistry, GCCollector, PlatformCollector, ProcessCollector
from prometheus_client.metrics_core import Metric

from .registry import MetricFamily, MetricSample


class RuntimeMetricsCollector:
    """Process-level metrics source polled by the registry on every scrape.

    Wraps the stock prometheus_client collectors for CPU, memory, file
    descriptors, start time, platform info and garbage collection. Each runs
    against a private ``CollectorRegistry`` so the library's global registry
    never sees them. ``process_*`` families are only present where ``/proc``
    is readable; ``python_gc_*`` only on CPython.
    """

    def __init__(self, *, prefix: str = "", proc: str = "/proc") -> None:
        self.prefix = prefix
        self._started = time.monotonic()
        self._registry = CollectorRegistry()
        ProcessCollector(proc=proc, registry=self._registry)
        PlatformCollector(registry=self._registry)
        GCCollector(registry=self._registry)

    def describe(self) -> Sequence[str]:
        return [family.name for family in self.collect()]

    def collect(self) -> Iterable[MetricFamily]:
        families = [self._convert(metric) for metric in self._registry.collect()]
        uptime = time.monotonic() - self._started
        families.append(
            MetricFamily(
                name=f"{self.prefix}process_uptime_seconds",
                description="Seconds elapsed since the metrics collector started.",
                metric_type="gauge",
                samples=[MetricSample(name=f"{self.prefix}process_uptime_seconds", labels={}, value=uptime)],
            )
        )
        return families

    def _convert(self, metric: Metric) -> MetricFamily:
        name = metric.name
        # prometheus_client strips the _total suffix from counter family names.
        if metric.type == "counter" and not name.endswith("_total"):
            name += "_total"
        return MetricFamily(
            name=self.prefix + name,
            description=metric.documentation,
            metric_type=metric.type,
            samples=[
                MetricSample(name=self.prefix + sample.name, labels=dict(sample.labels), value=sample.value)
                for sample in metric.samples
            ],
        )
