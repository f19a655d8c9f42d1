"""
RequestContext Middleware - Adds a request id to every request.

The id is taken from an incoming X-Request-ID header or generated, stored
on request.state.request_id, bound into structlog contextvars so every log
line emitted while handling the request carries it, and echoed back in the
X-Request-ID response header.

Research tasks dispatched during a request copy the context at creation,
so their log lines keep the originating request_id.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request id to request.state, the log context and the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
