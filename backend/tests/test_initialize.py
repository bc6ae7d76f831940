from __future__ import annotations

import pytest

from app.config import Settings
from app.main import app as asgi_app
from app.monitoring import metrics as metrics_module
from app.monitoring.registry import DuplicateMetricName, MetricsRegistry


def test_initialize_runs_once_per_process() -> None:
    first = metrics_module.initialize()
    second = metrics_module.initialize(Settings(_env_file=None, metrics_prefix="ignored_"))

    assert first is second
    assert asgi_app.state.metrics is first


def test_build_metrics_registers_request_counter(settings: Settings) -> None:
    built = metrics_module.build_metrics(settings)

    assert built.registry.get("http_requests_total") is built.http_requests_total
    assert built.http_requests_total.label_names == ("method", "route", "status")


def test_duplicate_registration_aborts_startup(monkeypatch: pytest.MonkeyPatch, settings: Settings) -> None:
    class _PreloadedRegistry(MetricsRegistry):
        def __init__(self) -> None:
            super().__init__()
            self.counter("http_requests_total", "Registered by someone else")

    monkeypatch.setattr(metrics_module, "MetricsRegistry", _PreloadedRegistry)

    with pytest.raises(DuplicateMetricName):
        metrics_module.build_metrics(settings)


def test_settings_normalize_values() -> None:
    settings = Settings(_env_file=None, metrics_path=" /scrape/ ", log_level="debug")

    assert settings.metrics_path == "/scrape"
    assert settings.log_level == "DEBUG"
    assert Settings(_env_file=None, metrics_path="").metrics_path == "/metrics"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_DEFAULT_LABELS", '{"service": "beacon"}')
    monkeypatch.setenv("METRICS_EXPOSE_ERROR_DETAILS", "true")
    monkeypatch.setenv("METRICS_PREFIX", "beacon_")

    settings = Settings(_env_file=None)

    assert settings.metrics_default_labels == {"service": "beacon"}
    assert settings.metrics_expose_error_details is True
    assert settings.metrics_prefix == "beacon_"
