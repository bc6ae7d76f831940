"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.config import Settings
from app.main import create_app
from app.monitoring.metrics import AppMetrics, build_metrics
from app.monitoring.registry import MetricsRegistry


@pytest.fixture()
def registry() -> MetricsRegistry:
    """Return an empty registry without default collectors."""

    return MetricsRegistry()


@pytest.fixture()
def settings() -> Settings:
    """Settings isolated from the process environment and any .env file."""

    return Settings(_env_file=None)


@pytest.fixture()
def app_metrics(settings: Settings) -> AppMetrics:
    """Provide a fresh registry with default collectors and the request counter."""

    return build_metrics(settings)


@pytest.fixture()
def api(settings: Settings, app_metrics: AppMetrics) -> FastAPI:
    return create_app(settings, metrics=app_metrics)


@pytest.fixture()
def client(api: FastAPI) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient bound to an isolated registry."""

    with TestClient(api) as test_client:
        yield test_client


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"
