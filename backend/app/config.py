from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Beacon Metrics", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logger level")

    metrics_path: str = Field(default="/metrics", description="Path the exposition endpoint is served on")
    metrics_prefix: str = Field(
        default="",
        description="Prefix prepended to the default process and runtime metric names",
    )
    metrics_default_labels: dict[str, str] = Field(
        default_factory=dict,
        description="Labels attached to every exported sample (JSON object)",
    )
    metrics_collect_defaults: bool = Field(
        default=True,
        description="Export process, platform and garbage collector metrics.",
    )
    metrics_expose_error_details: bool = Field(
        default=False,
        description="Return the underlying error message when a scrape fails.",
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("metrics_path", mode="before")
    @classmethod
    def normalize_metrics_path(cls, value: Any) -> str:
        path = str(value).strip().strip("/")
        return "/" + path if path else "/metrics"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> str:
        return str(value).strip().upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
