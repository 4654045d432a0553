import time
import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

log = structlog.get_logger()


class StructlogMiddleware(BaseHTTPMiddleware):
    """Bind request identifiers to the structlog context for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        correlation_id = request.headers.get("X-Correlation-ID") or request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        if settings.ENVIRONMENT in ["local", "dev"]:
            log.info("request_started")

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("request_failed", duration=time.perf_counter() - started)
            raise

        log.info(
            "request_finished",
            status_code=response.status_code,
            duration=time.perf_counter() - started,
        )
        response.headers["X-Request-ID"] = request_id
        return response
