from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Route label shared by every request that matched no route.
UNMATCHED_ROUTE = "<unmatched>"


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Count every handled request in ``http_requests_total``."""

    async def dispatch(self, request: Request, call_next):
        counter = request.app.state.metrics.http_requests_total
        try:
            response: Response = await call_next(request)
        except Exception:
            counter.labels(request.method.upper(), _route_label(request), "500").inc()
            raise

        counter.labels(request.method.upper(), _route_label(request), str(response.status_code)).inc()
        return response
