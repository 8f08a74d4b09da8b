"""
Request timing middleware.

Records request duration, logs slow requests and tags every API log line
with the request id and acting user.
Adds X-Request-Duration-Ms and X-Request-ID headers to all responses.
"""

import logging
import time
import uuid

from flask import Flask, g, request

from obraqms.core.identity import get_acting_user

logger = logging.getLogger(__name__)

_SKIP_LOG = frozenset({"/api/v1/health/ready"})

# Slow request threshold (ms)
SLOW_THRESHOLD_MS = 1000


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:12])

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")

        if request.path.startswith("/api/") and request.path not in _SKIP_LOG:
            user = get_acting_user()
            extra = {
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "request_id": getattr(g, "request_id", None),
                "user_id": user.id if user else None,
            }
            if duration_ms >= SLOW_THRESHOLD_MS:
                logger.warning("Slow request %s %s", request.method, request.path, extra=extra)
            else:
                logger.info("%s %s %s", request.method, request.path, response.status_code, extra=extra)

        return response
