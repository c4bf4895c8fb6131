"""Request correlation and access logging middleware."""

import logging
import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .config import settings
from .observability import metrics_collector

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation ID to every request.

    An incoming ``X-Request-ID`` is reused, otherwise one is generated. The ID
    is echoed on the response and bound to the structlog context for the
    lifetime of the request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log plus the request counters exposed on ``/metrics``."""

    QUIET_PATHS = frozenset({"/health", "/ready", "/metrics", "/favicon.ico"})

    def __init__(self, app: ASGIApp, log_request_body: bool = False):
        super().__init__(app)
        self.log_request_body = log_request_body

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        fields = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": self._client_ip(request),
        }
        if self.log_request_body and request.method == "POST":
            body = await request.body()
            if body:
                # RPC bodies are small JSON documents; cap anyway
                fields["request_body"] = body[:1000].decode("utf-8", errors="replace")

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        metrics_collector.record_request(request.method, request.url.path, response.status_code, elapsed)

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round(elapsed * 1000, 2)
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, "HTTP request handled", extra=fields)

        return response


def setup_middleware(app: FastAPI, enable_logging: bool = True) -> None:
    """Install the middleware stack. The request ID middleware runs outermost."""
    if enable_logging:
        app.add_middleware(LoggingMiddleware, log_request_body=settings.debug)
    app.add_middleware(RequestIDMiddleware)
