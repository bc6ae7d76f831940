"""Prometheus-compatible metrics endpoint."""

import logging

from fastapi import APIRouter, Request, Response

from app.monitoring.registry import SnapshotFailure


logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Failed to collect metrics"

# Mounted by the application factory under the configured metrics path.
router = APIRouter(tags=["metrics"])


@router.get("", response_class=Response)
def export_metrics(request: Request) -> Response:
    """Expose collected metrics for Prometheus scraping."""

    registry = request.app.state.metrics.registry
    try:
        payload = registry.snapshot()
    except SnapshotFailure as exc:
        # Not retried; the scraper comes back on its own schedule.
        logger.exception("Metrics error")
        if request.app.state.settings.metrics_expose_error_details:
            detail = str(exc) or GENERIC_ERROR_MESSAGE
        else:
            detail = GENERIC_ERROR_MESSAGE
        return Response(content=detail, status_code=500, media_type="text/plain")

    return Response(content=payload, media_type=registry.content_type)
