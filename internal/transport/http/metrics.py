"""
Request metrics middleware.

Every request is counted and timed under the route template it matched,
so session, product and preset ids never end up as label values.
"""

import time
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from internal.infrastructure.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION,
)

# Label for requests that matched no route (unknown paths, 404s).
UNMATCHED_ROUTE = "unmatched"


def route_label(request: Request) -> str:
    """Route template of the matched endpoint, e.g. /api/v1/sessions/{session_id}."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Records http_requests_total and http_request_duration_seconds.

    A handler that raises is recorded as a 500 before the error
    propagates.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self._observe(request, status_code, time.perf_counter() - start_time)

    @staticmethod
    def _observe(request: Request, status_code: int, duration: float) -> None:
        endpoint = route_label(request)
        HTTP_REQUESTS_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=status_code,
        ).inc()
        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)
