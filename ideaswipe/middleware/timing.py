"""
Request timing middleware.

Every API response carries ``X-Request-ID`` (echoed from the client when
supplied) and ``X-Request-Duration-Ms``. Requests are logged with the idea
they touched and the acting user so a sweep or a like can be traced in the
JSON log stream.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Load balancer probes, never logged
_QUIET_PATHS = frozenset({"/api/v1/health/live", "/api/v1/health/ready"})

SLOW_REQUEST_MS = 1000


def _request_subject() -> tuple[str | None, str | None]:
    """(acting user id, idea id from the URL) for log enrichment."""
    view_args = request.view_args or {}
    return getattr(g, "acting_user_id", None), view_args.get("idea_id")


def init_request_timing(app: Flask):

    @app.before_request
    def _stamp_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_request(response):
        started = getattr(g, "request_started", None)
        if started is None:
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"
        if request.path in _QUIET_PATHS:
            return response

        user_id, idea_id = _request_subject()
        fields = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "request_id": g.request_id,
            "user_id": user_id,
            "idea_id": idea_id,
        }
        summary = "%s %s -> %d in %.0fms"
        args = (request.method, request.path, response.status_code, elapsed_ms)
        if response.status_code >= 500:
            logger.error("Failed request: " + summary, *args, extra=fields)
        elif elapsed_ms > SLOW_REQUEST_MS:
            logger.warning("Slow request: " + summary, *args, extra=fields)
        else:
            logger.debug(summary, *args, extra=fields)
        return response
