"""Lightweight metrics registry for Prometheus compatible exports."""

from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Iterable, Mapping, Protocol, Sequence


logger = logging.getLogger(__name__)

CONTENT_TYPE_LATEST = "text/plain; version=0.0.4; charset=utf-8"

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class DuplicateMetricName(ValueError):
    """Raised when a metric name is registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Metric '{name}' already registered")
        self.name = name


class SnapshotFailure(RuntimeError):
    """Raised when the registry cannot produce a snapshot."""


def _format_value(value: float) -> str:
    """Format floating point values using Prometheus conventions."""

    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return str(int(value)) if value.is_integer() else repr(value)


def _escape_label_value(value: str) -> str:
    return value.replace("\\", r"\\").replace("\n", r"\n").replace('"', r"\"")


def _format_labels(labels: Mapping[str, str]) -> str:
    if not labels:
        return ""

    pairs = [f'{name}="{_escape_label_value(value)}"' for name, value in labels.items()]
    return "{" + ",".join(pairs) + "}"


def _escape_help(text: str) -> str:
    return text.replace("\\", r"\\").replace("\n", r"\n")


@dataclass(frozen=True, slots=True)
class MetricSample:
    name: str
    labels: dict[str, str]
    value: float


@dataclass(frozen=True, slots=True)
class MetricFamily:
    """Point-in-time view of one metric and all of its samples."""

    name: str
    description: str
    metric_type: str
    samples: list[MetricSample] = field(default_factory=list)


class ProcessMetricsSource(Protocol):
    """Anything the registry polls for extra metric families at scrape time."""

    def describe(self) -> Sequence[str]:
        """Return the family names this source produces."""

    def collect(self) -> Iterable[MetricFamily]:
        """Return fresh metric families."""


class MetricsRegistry:
    """In-memory registry that collects metric samples."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self) -> None:
        self._metrics: dict[str, _MetricBase] = {}
        self._sources: list[ProcessMetricsSource] = []
        self._source_names: set[str] = set()
        self._default_labels: dict[str, str] = {}
        self._lock = Lock()

    def register(self, metric: "_MetricBase") -> None:
        with self._lock:
            if metric.name in self._metrics or metric.name in self._source_names:
                logger.error("Refusing to register duplicate metric %s", metric.name)
                raise DuplicateMetricName(metric.name)
            self._metrics[metric.name] = metric

    def register_source(self, source: ProcessMetricsSource) -> None:
        names = set(source.describe())
        with self._lock:
            taken = names & (set(self._metrics) | self._source_names)
            if taken:
                name = sorted(taken)[0]
                logger.error("Refusing to register source with duplicate metric %s", name)
                raise DuplicateMetricName(name)
            self._sources.append(source)
            self._source_names.update(names)

    def unregister(self, name: str) -> None:
        with self._lock:
            if name not in self._metrics:
                raise KeyError(f"Metric '{name}' is not registered")
            del self._metrics[name]

    def get(self, name: str) -> "_MetricBase | None":
        with self._lock:
            return self._metrics.get(name)

    def counter(self, name: str, description: str, *, label_names: Sequence[str] = ()) -> "CounterMetric":
        metric = CounterMetric(name=name, description=description, label_names=tuple(label_names))
        self.register(metric)
        return metric

    def gauge(self, name: str, description: str, *, label_names: Sequence[str] = ()) -> "GaugeMetric":
        metric = GaugeMetric(name=name, description=description, label_names=tuple(label_names))
        self.register(metric)
        return metric

    def set_default_labels(self, labels: Mapping[str, object]) -> None:
        for label in labels:
            _validate_label_name(label)
        with self._lock:
            self._default_labels = {name: str(value) for name, value in labels.items()}

    def reset_metrics(self) -> None:
        """Drop every recorded sample; registrations stay in place."""

        with self._lock:
            metrics = list(self._metrics.values())
        for metric in metrics:
            metric.reset()

    def collect(self) -> list[MetricFamily]:
        with self._lock:
            metrics = list(self._metrics.values())
            sources = list(self._sources)

        try:
            families = [metric.collect() for metric in metrics]
            names = {family.name for family in families}
            for source in sources:
                for family in source.collect():
                    if family.name in names:
                        logger.warning("Dropping duplicate metric family %s from %r", family.name, source)
                        continue
                    names.add(family.name)
                    families.append(family)
        except Exception as exc:
            raise SnapshotFailure(f"Failed to collect metrics: {exc}") from exc
        return families

    def snapshot(self) -> str:
        """Render all registered metrics using the Prometheus text format."""

        families = self.collect()
        with self._lock:
            default_labels = dict(self._default_labels)

        lines: list[str] = []
        try:
            for family in sorted(families, key=lambda item: item.name):
                lines.extend(_render_family(family, default_labels))
        except Exception as exc:
            raise SnapshotFailure(f"Failed to render metrics: {exc}") from exc
        return "\n".join(lines) + "\n"


def _render_family(family: MetricFamily, default_labels: Mapping[str, str]) -> list[str]:
    lines = [
        f"# HELP {family.name} {_escape_help(family.description)}",
        f"# TYPE {family.name} {family.metric_type}",
    ]
    for sample in family.samples:
        labels = dict(sample.labels)
        for name, value in default_labels.items():
            labels.setdefault(name, value)
        lines.append(f"{sample.name}{_format_labels(labels)} {_format_value(float(sample.value))}")
    return lines


def _validate_metric_name(name: str) -> None:
    if not _METRIC_NAME_RE.match(name):
        raise ValueError(f"Invalid metric name '{name}'")


def _validate_label_name(name: str) -> None:
    if not _LABEL_NAME_RE.match(name) or name.startswith("__"):
        raise ValueError(f"Invalid label name '{name}'")


class _MetricBase:
    """Shared base for metric implementations."""

    metric_type: str = "untyped"

    def __init__(self, *, name: str, description: str, label_names: Sequence[str]) -> None:
        _validate_metric_name(name)
        for label in label_names:
            _validate_label_name(label)
        if len(set(label_names)) != len(label_names):
            raise ValueError(f"Metric '{name}' has duplicate label names")

        self.name = name
        self.description = description
        self.label_names = tuple(label_names)
        self._samples: dict[tuple[str, ...], float] = {}
        self._lock = Lock()

    def collect(self) -> MetricFamily:
        with self._lock:
            samples = list(self._samples.items())

        if not samples and not self.label_names:
            # Prometheus expects at least one sample; expose zero value without labels.
            samples = [((), 0.0)]

        samples.sort(key=lambda item: item[0])
        return MetricFamily(
            name=self.name,
            description=self.description,
            metric_type=self.metric_type,
            samples=[
                MetricSample(name=self.name, labels=dict(zip(self.label_names, labels, strict=True)), value=value)
                for labels, value in samples
            ],
        )

    def get(self, **labels: object) -> float:
        """Return the current value for a label combination (0 when unseen)."""

        label_values = self._normalize_labels(labels)
        with self._lock:
            return self._samples.get(label_values, 0.0)

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()

    def _add(self, amount: float, labels: tuple[str, ...]) -> None:
        with self._lock:
            self._samples[labels] = self._samples.get(labels, 0.0) + amount

    def _normalize_labels(self, provided: Mapping[str, object]) -> tuple[str, ...]:
        if set(provided) != set(self.label_names):
            expected = ", ".join(self.label_names) or "<none>"
            received = ", ".join(sorted(provided)) or "<none>"
            raise ValueError(
                f"Metric '{self.name}' expected labels [{expected}] but received [{received}]"
            )
        return tuple(str(provided[label]) for label in self.label_names)

    # Prometheus-style helper returning a labeled metric proxy used like: metric.labels("foo").inc()
    def labels(self, *values: object, **named: object) -> "_LabeledMetricProxy":
        if values and named:
            raise ValueError("Pass label values either positionally or by name, not both")
        if named:
            return _LabeledMetricProxy(self, self._normalize_labels(named))
        if len(values) != len(self.label_names):
            expected = ", ".join(self.label_names) or "<none>"
            raise ValueError(
                f"Metric '{self.name}' expected {len(self.label_names)} label values [{expected}] but received {len(values)}"
            )
        return _LabeledMetricProxy(self, tuple(str(v) for v in values))


class CounterMetric(_MetricBase):
    metric_type = "counter"

    def inc(self, *, amount: float = 1.0, **labels: object) -> None:
        self._inc(amount, self._normalize_labels(labels))

    def _inc(self, amount: float, labels: tuple[str, ...]) -> None:
        if amount < 0:
            raise ValueError("Counters cannot be incremented by negative values")
        self._add(amount, labels)


class GaugeMetric(_MetricBase):
    metric_type = "gauge"

    def set(self, value: float, **labels: object) -> None:
        self._set(float(value), self._normalize_labels(labels))

    def inc(self, *, amount: float = 1.0, **labels: object) -> None:
        self._add(amount, self._normalize_labels(labels))

    def dec(self, *, amount: float = 1.0, **labels: object) -> None:
        self._add(-amount, self._normalize_labels(labels))

    def set_to_current_time(self, **labels: object) -> None:
        self._set(time.time(), self._normalize_labels(labels))

    def _set(self, value: float, labels: tuple[str, ...]) -> None:
        with self._lock:
            self._samples[labels] = value


class _LabeledMetricProxy:
    """Proxy for a metric bound to a concrete label value tuple.

    Allows Prometheus-style usage: `metric.labels("foo", "bar").inc()` or
    `metric.labels(method="GET", route="/").inc()`.
    Supported methods:
      - Counter: inc(amount=1.0), get()
      - Gauge: inc(amount=1.0), dec(amount=1.0), set(value), get()
    """

    def __init__(self, metric: _MetricBase, label_values: tuple[str, ...]) -> None:
        self._metric = metric
        self._label_values = label_values

    def inc(self, amount: float = 1.0) -> None:
        if isinstance(self._metric, CounterMetric):
            self._metric._inc(amount, self._label_values)
        else:
            self._metric._add(amount, self._label_values)

    def dec(self, amount: float = 1.0) -> None:
        if not isinstance(self._metric, GaugeMetric):
            raise AttributeError("Only gauges support dec()")
        self._metric._add(-amount, self._label_values)

    def set(self, value: float) -> None:
        if not isinstance(self._metric, GaugeMetric):
            raise AttributeError("Only gauges support set()")
        self._metric._set(float(value), self._label_values)

    def get(self) -> float:
        with self._metric._lock:
            return self._metric._samples.get(self._label_values, 0.0)
