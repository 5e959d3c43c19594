"""Prometheus metrics middleware: instruments every HTTP request.

For each request this records the in-flight gauge, the request counter
(by method, path and status) and the duration histogram.  The URL path is
used as the endpoint label; unmatched paths are collapsed into one label
so scanners probing random URLs cannot blow up label cardinality.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from oauth_relay.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

_KNOWN_PATHS = frozenset({"/health", "/oauth/callback"})


def _endpoint_label(path: str) -> str:
    return path if path in _KNOWN_PATHS else "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Don't let Prometheus scrapes inflate the request count.
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = _endpoint_label(request.url.path)
        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code: str | None = None

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code if status_code is not None else "500",
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

        return response
