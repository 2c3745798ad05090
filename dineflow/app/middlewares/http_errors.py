from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..routes_metrics import http_errors_total

logger = logging.getLogger("dineflow")


class HttpErrorCounterMiddleware(BaseHTTPMiddleware):
    """Count 4xx/5xx responses by status and log server-side failures."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        status = response.status_code
        if 400 <= status < 600:
            http_errors_total.labels(status=str(status)).inc()
        if status >= 500:
            logger.warning(
                "http.error %s %s -> %d",
                request.method,
                request.url.path,
                status,
                extra={
                    "event": "http.error",
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                },
            )
        return response
