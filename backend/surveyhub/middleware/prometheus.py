"""Per-request Prometheus instrumentation for the survey API.

Requests are labelled by route template (``/api/v1/survey/{survey_id}/invite``)
when the router matched one, otherwise by the raw path with id segments
folded to ``{id}``.
"""

from __future__ import annotations

import re
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from surveyhub.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

_UNLABELLED = frozenset({"/api/health", "/metrics"})

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-?([0-9a-fA-F]{4}-?){3}[0-9a-fA-F]{12}$")


def _normalise_path(path: str) -> str:
    """``/api/v1/category/<uuid>`` -> ``/api/v1/category/{id}``."""
    segments = path.rstrip("/").split("/")
    return "/".join("{id}" if _UUID_RE.match(s) else s for s in segments) or "/"


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or _normalise_path(request.url.path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _UNLABELLED:
            return await call_next(request)

        method = request.method
        in_progress = http_requests_in_progress.labels(method=method)
        in_progress.inc()
        started = time.perf_counter()
        status = "500"  # kept when the endpoint raises
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            endpoint = _endpoint_label(request)
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - started
            )
            in_progress.dec()
