"""Monitoring helpers and metric registry for the backend services."""

from . import collectors, metrics, registry

__all__ = ["collectors", "metrics", "registry"]
