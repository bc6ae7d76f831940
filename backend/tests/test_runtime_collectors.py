from __future__ import annotations

import os
import platform

import pytest

from app.monitoring.collectors import RuntimeMetricsCollector
from app.monitoring.registry import DuplicateMetricName, MetricsRegistry

HAS_PROC = os.path.exists("/proc/self/stat")


def test_platform_info_and_uptime_are_always_present() -> None:
    families = {family.name: family for family in RuntimeMetricsCollector().collect()}

    info = families["python_info"]
    assert info.metric_type == "gauge"
    assert info.samples[0].labels["version"] == platform.python_version()
    assert info.samples[0].value == 1
    assert families["process_uptime_seconds"].samples[0].value >= 0


@pytest.mark.skipif(not HAS_PROC, reason="process metrics need a readable /proc")
def test_process_metrics_are_exported() -> None:
    registry = MetricsRegistry()
    registry.register_source(RuntimeMetricsCollector())

    output = registry.snapshot()

    assert "# TYPE process_cpu_seconds_total counter" in output
    assert "process_resident_memory_bytes " in output
    assert "process_start_time_seconds " in output
    assert "process_open_fds " in output


@pytest.mark.skipif(platform.python_implementation() != "CPython", reason="gc stats are CPython only")
def test_gc_counters_keep_total_suffix() -> None:
    families = {family.name: family for family in RuntimeMetricsCollector().collect()}

    collected = families["python_gc_objects_collected_total"]
    assert collected.metric_type == "counter"
    assert {sample.labels["generation"] for sample in collected.samples} >= {"0", "1", "2"}
    assert all(sample.name == "python_gc_objects_collected_total" for sample in collected.samples)


def test_prefix_is_applied_to_families_and_samples() -> None:
    families = RuntimeMetricsCollector(prefix="beacon_").collect()

    assert families
    for family in families:
        assert family.name.startswith("beacon_")
        assert all(sample.name.startswith("beacon_") for sample in family.samples)


def test_missing_proc_only_drops_process_families(tmp_path) -> None:
    names = set(RuntimeMetricsCollector(proc=str(tmp_path)).describe())

    assert "python_info" in names
    assert "process_uptime_seconds" in names
    assert "process_resident_memory_bytes" not in names


def test_collector_names_conflict_with_instruments() -> None:
    registry = MetricsRegistry()
    registry.register_source(RuntimeMetricsCollector())

    with pytest.raises(DuplicateMetricName):
        registry.gauge("python_info", "Shadowing the platform info")
