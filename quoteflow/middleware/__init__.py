"""
Middleware modules for the quote API.

- Correlation ID tracking for log lines and problem responses
"""

from .correlation import CorrelationIdMiddleware, CorrelationLogFilter, correlation_id_ctx, request_id_ctx

__all__ = [
    "CorrelationIdMiddleware",
    "CorrelationLogFilter",
    "correlation_id_ctx",
    "request_id_ctx",
]
