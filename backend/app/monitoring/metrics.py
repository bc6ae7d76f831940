"""Metric definitions and process-wide metrics initialization."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock

from app.config import Settings, get_settings

from .collectors import RuntimeMetricsCollector
from .registry import CounterMetric, MetricsRegistry


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppMetrics:
    """Handle to the registry and the instruments the application records into."""

    registry: MetricsRegistry
    http_requests_total: CounterMetric


def build_metrics(settings: Settings) -> AppMetrics:
    """Create a fresh registry with the default collectors and application instruments."""

    registry = MetricsRegistry()
    if settings.metrics_default_labels:
        registry.set_default_labels(settings.metrics_default_labels)
    if settings.metrics_collect_defaults:
        registry.register_source(RuntimeMetricsCollector(prefix=settings.metrics_prefix))

    http_requests_total = registry.counter(
        "http_requests_total",
        "Total number of HTTP requests",
        label_names=("method", "route", "status"),
    )
    return AppMetrics(registry=registry, http_requests_total=http_requests_total)


_init_lock = Lock()
_app_metrics: AppMetrics | None = None


def initialize(settings: Settings | None = None) -> AppMetrics:
    """Build the process metrics exactly once and return the shared handle."""

    global _app_metrics

    with _init_lock:
        if _app_metrics is not None:
            logger.debug("Metrics registry already initialized; reusing it")
            return _app_metrics

        settings = settings or get_settings()
        _app_metrics = build_metrics(settings)
        logger.info(
            "Metrics registry initialized",
            extra={"default_collectors": settings.metrics_collect_defaults},
        )
        return _app_metrics
