"""
Request correlation for log lines and problem responses.

Every request gets a request id (``X-Request-ID``) and a correlation id
(``X-Correlation-ID``), either taken from the incoming headers or generated.
Both are stored in context variables so the quote services, the storage
chain and the exception handlers can attach them to what they log or return.
"""

import uuid
import logging
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def generate_id() -> str:
    """Generate a short unique ID suitable for logging."""
    return uuid.uuid4().hex[:12]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagate request/correlation ids into context and response headers."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or generate_id()
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_id()

        correlation_token = correlation_id_ctx.set(correlation_id)
        request_token = request_id_ctx.set(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        finally:
            correlation_id_ctx.reset(correlation_token)
            request_id_ctx.reset(request_token)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_correlation_id() -> str:
    return correlation_id_ctx.get() or "unknown"


def get_request_id() -> str:
    return request_id_ctx.get() or "unknown"


class CorrelationLogFilter(logging.Filter):
    """Inject ``correlation_id`` and ``request_id`` into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.request_id = get_request_id()
        return True
