"""
RFC 7807 Problem Details exception handling.

Provides standardized error responses for the quote API following the
"Problem Details for HTTP APIs" specification.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import traceback
import uuid
from datetime import datetime

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://quoteflow.dev/problems"


def _get_trace_id() -> str:
    """Get trace ID from correlation context or generate a new one."""
    from quoteflow.middleware.correlation import get_request_id
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return str(uuid.uuid4())[:12]


class ErrorCode(str, Enum):
    """Standardized error codes for the quote API."""

    # Validation
    VALIDATION_ERROR = "VAL_001"
    PAYLOAD_TOO_LARGE = "VAL_005"

    # Resource
    NOT_FOUND = "RES_001"
    CONFLICT = "RES_003"

    # Business Logic
    EMPTY_SELECTION = "BIZ_004"

    # External Services
    EXTERNAL_SERVICE_ERROR = "EXT_001"

    # Server
    INTERNAL_ERROR = "SRV_001"
    TIMEOUT = "SRV_003"
    RENDER_FAILED = "SRV_004"


class ProblemDetail(BaseModel):
    """
    RFC 7807 Problem Details response schema.

    Attributes:
        type: URI reference identifying the problem type
        title: Short, human-readable summary
        status: HTTP status code
        detail: Human-readable explanation specific to this occurrence
        instance: URI reference identifying this specific occurrence
        code: Machine-readable error code for client handling
        timestamp: ISO 8601 timestamp of when the error occurred
        trace_id: Unique identifier for tracing in logs
        errors: List of field-level validation errors (for 422)
    """

    type: str = Field(
        default="about:blank",
        description="URI reference identifying the problem type"
    )
    title: str = Field(description="Short, human-readable summary of the problem")
    status: int = Field(description="HTTP status code")
    detail: str = Field(description="Human-readable explanation specific to this occurrence")
    instance: Optional[str] = Field(default=None, description="URI reference for this specific occurrence")
    code: str = Field(description="Machine-readable error code")
    timestamp: str = Field(description="ISO 8601 timestamp")
    trace_id: str = Field(description="Unique trace ID for debugging")
    errors: Optional[List[Dict[str, Any]]] = Field(
        default=None,
        description="Field-level validation errors"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": f"{PROBLEM_TYPE_BASE}/res-001",
                "title": "Not Found",
                "status": 404,
                "detail": "Quote with ID 5f0c... was not found",
                "instance": "/api/v2/quotes/5f0c...",
                "code": "RES_001",
                "timestamp": "2026-01-29T10:30:00Z",
                "trace_id": "abc123def456"
            }
        }
    }


def _problem_type(code: ErrorCode) -> str:
    return f"{PROBLEM_TYPE_BASE}/{code.value.lower().replace('_', '-')}"


class QuoteFlowException(HTTPException):
    """
    Base exception for the quote pipeline with RFC 7807 support.

    Usage:
        raise QuoteFlowException(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail="Quote not found",
        )
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        title: Optional[str] = None,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.errors = errors
        self.trace_id = _get_trace_id()
        self.timestamp = datetime.utcnow().isoformat() + "Z"

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title based on status code."""
        titles = {
            400: "Bad Request",
            404: "Not Found",
            409: "Conflict",
            413: "Payload Too Large",
            422: "Validation Error",
            500: "Internal Server Error",
            502: "Bad Gateway",
            504: "Gateway Timeout",
        }
        return titles.get(status_code, "Error")

    def to_problem_detail(self) -> ProblemDetail:
        """Convert to RFC 7807 ProblemDetail."""
        return ProblemDetail(
            type=_problem_type(self.code),
            title=self.title,
            status=self.status_code,
            detail=self.detail,
            instance=self.instance,
            code=self.code.value,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            errors=self.errors,
        )


# Convenience exception classes

class NotFoundError(QuoteFlowException):
    """Referenced client, project or quote does not exist (404)."""

    def __init__(self, resource: str, resource_id: str, instance: Optional[str] = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            detail=f"{resource} with ID {resource_id} was not found",
            instance=instance,
        )


class ValidationError(QuoteFlowException):
    """Malformed input (422)."""

    def __init__(self, detail: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            detail=detail,
            errors=errors,
        )


class EmptySelectionError(QuoteFlowException):
    """Requirement selection resolved to zero line items (422)."""

    def __init__(self, detail: str = "No requirements selected for the quote"):
        super().__init__(
            status_code=422,
            code=ErrorCode.EMPTY_SELECTION,
            detail=detail,
        )


class ConflictError(QuoteFlowException):
    """Resource conflict (409)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=409,
            code=ErrorCode.CONFLICT,
            detail=detail,
        )


class PayloadTooLargeError(QuoteFlowException):
    """Uploaded artifact exceeds the size limit (413)."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            status_code=413,
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            detail=f"File of {size} bytes exceeds the {limit} byte limit",
        )


class RenderTimeoutError(QuoteFlowException):
    """Artifact rendering exceeded its time budget (504)."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            status_code=504,
            code=ErrorCode.TIMEOUT,
            detail=f"PDF rendering did not finish within {timeout:g} seconds",
        )


class RenderFailureError(QuoteFlowException):
    """Artifact rendering failed (500)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=500,
            code=ErrorCode.RENDER_FAILED,
            detail=f"PDF rendering failed: {detail}",
        )


# Exception handlers for FastAPI

def create_problem_response(
    status_code: int,
    code: ErrorCode,
    detail: str,
    request: Request,
    errors: Optional[List[Dict[str, Any]]] = None,
    trace_id: Optional[str] = None,
    allowed_origins: Optional[List[str]] = None,
) -> JSONResponse:
    """Create a RFC 7807 compliant JSON response with CORS headers."""
    problem = ProblemDetail(
        type=_problem_type(code),
        title=QuoteFlowException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        code=code.value,
        timestamp=datetime.utcnow().isoformat() + "Z",
        trace_id=trace_id or _get_trace_id(),
        errors=errors,
    )

    response = JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )
    _add_cors_headers(response, request, allowed_origins)
    return response


def _add_cors_headers(response: JSONResponse, request: Request, allowed_origins: Optional[List[str]]):
    if allowed_origins:
        origin = request.headers.get("origin", "")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"


async def quoteflow_exception_handler(
    request: Request,
    exc: QuoteFlowException,
    allowed_origins: Optional[List[str]] = None,
) -> JSONResponse:
    """Handle QuoteFlowException with RFC 7807 response."""
    logger.warning(
        "QuoteFlowException: %s - %s",
        exc.code.value,
        exc.detail,
        extra={
            "trace_id": exc.trace_id,
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    problem = exc.to_problem_detail()
    if problem.instance is None:
        problem.instance = str(request.url.path)

    response = JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=exc.headers,
    )
    _add_cors_headers(response, request, allowed_origins)
    return response


def create_exception_handlers(allowed_origins: List[str]):
    """
    Create exception handlers with configured allowed origins for CORS.

    Usage in main.py:
        handlers = create_exception_handlers(allowed_origins)
        app.add_exception_handler(QuoteFlowException, handlers["quoteflow"])
        app.add_exception_handler(RequestValidationError, handlers["validation"])
        app.add_exception_handler(Exception, handlers["generic"])
    """

    async def handle_quoteflow_exception(request: Request, exc: QuoteFlowException) -> JSONResponse:
        return await quoteflow_exception_handler(request, exc, allowed_origins)

    async def handle_http_exception(
        request: Request,
        exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle standard HTTPException with RFC 7807 response."""
        code_map = {
            400: ErrorCode.VALIDATION_ERROR,
            404: ErrorCode.NOT_FOUND,
            409: ErrorCode.CONFLICT,
            413: ErrorCode.PAYLOAD_TOO_LARGE,
            422: ErrorCode.VALIDATION_ERROR,
            500: ErrorCode.INTERNAL_ERROR,
            502: ErrorCode.EXTERNAL_SERVICE_ERROR,
            504: ErrorCode.TIMEOUT,
        }

        code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)

        return create_problem_response(
            status_code=exc.status_code,
            code=code,
            detail=str(exc.detail),
            request=request,
            allowed_origins=allowed_origins,
        )

    async def handle_validation_exception(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors with field-level details."""
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            })

        return create_problem_response(
            status_code=422,
            code=ErrorCode.VALIDATION_ERROR,
            detail="Request validation failed",
            request=request,
            errors=errors,
            allowed_origins=allowed_origins,
        )

    async def handle_generic_exception(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions with RFC 7807 response."""
        trace_id = str(uuid.uuid4())[:12]

        logger.error(
            "Unhandled exception: %s",
            exc,
            extra={"trace_id": trace_id, "path": request.url.path},
        )
        logger.error(traceback.format_exc())

        # Don't expose internal details in production
        from quoteflow.config import settings
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"

        return create_problem_response(
            status_code=500,
            code=ErrorCode.INTERNAL_ERROR,
            detail=detail,
            request=request,
            trace_id=trace_id,
            allowed_origins=allowed_origins,
        )

    return {
        "quoteflow": handle_quoteflow_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "generic": handle_generic_exception,
    }
