import copy
import logging.config

from fastapi import FastAPI

from app.api.metrics import router as metrics_router
from app.api.middleware import RequestMetricsMiddleware
from app.config import Settings, get_settings
from app.monitoring.metrics import AppMetrics, initialize


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        }
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "handlers": ["default"],
        "level": "INFO",
    },
}


def configure_logging(level: str) -> None:
    config = copy.deepcopy(LOGGING_CONFIG)
    config["root"]["level"] = level
    logging.config.dictConfig(config)


def create_app(settings: Settings | None = None, metrics: AppMetrics | None = None) -> FastAPI:
    """Build the API application.

    Metric registration happens here, before the application serves its first
    request. Passing ``metrics`` skips the process-wide initialization, which
    is how tests get an isolated registry.
    """

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, debug=settings.debug)
    app.state.settings = settings
    app.state.metrics = metrics or initialize(settings)

    app.add_middleware(RequestMetricsMiddleware)

    @app.get("/health", tags=["system"])
    def health_check() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok", "environment": settings.environment}

    app.include_router(metrics_router, prefix=settings.metrics_path)
    return app


app = create_app()
