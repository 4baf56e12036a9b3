# backend/app/middleware/structured_logging.py
from __future__ import annotations

import json
import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .request_id import get_request_id

log = logging.getLogger("tenantdesk.request")


def _json_log(payload: dict) -> None:
    # one JSON line per request
    try:
        log.info(json.dumps(payload, default=str))
    except (TypeError, ValueError):
        log.info(str(payload))


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one structured log line per request with:
      request_id, client_slug, user_email, method, path, status_code, latency_ms

    Must run inside RequestIDMiddleware so the request id ContextVar is set.
    Cron routes are tagged so job runs can be filtered from user traffic.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.time()

        client_slug = request.headers.get("X-Client-Slug")
        user_email = request.headers.get("X-User-Email")

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.time() - t0) * 1000)

            _json_log(
                {
                    "event": "http_request",
                    "request_id": get_request_id(),
                    "method": request.method,
                    "path": request.url.path,
                    "query": str(request.url.query) if request.url.query else "",
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                    "client_slug": client_slug,
                    "user_email": user_email,
                    "cron": request.url.path.startswith("/api/cron/"),
                }
            )
