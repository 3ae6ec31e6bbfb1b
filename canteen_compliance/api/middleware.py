"""Request tracing and HTTP metrics middleware"""

import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from canteen_compliance.infrastructure.observability.metrics import request_duration_histogram

logger = logging.getLogger(__name__)

# Scrapes and probes are not recorded
UNTRACKED_PATHS = frozenset({"/metrics", "/health"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an ID, reusing the caller's X-Request-ID when present"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Per-route latency histogram, labelled by route template rather than raw path"""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        request_duration_histogram.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).observe(elapsed)

        logger.debug(
            "Request handled",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "endpoint": endpoint,
                "status": response.status_code,
                "duration_ms": round(elapsed * 1000, 1),
            },
        )
        return response
