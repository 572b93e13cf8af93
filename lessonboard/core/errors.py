"""Centralized error handling for the application.

This module provides standardized error codes, exception-to-response mapping,
and a global exception handler for FastAPI. API clients get a JSON error body,
browsers get the rendered error page with the same fields.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from lessonboard.core.logging import get_request_id
from lessonboard.core.metrics import MetricsCollector
from lessonboard.core.rendering import render
from lessonboard.providers.exceptions import (
    AuthenticationError,
    CallbackError,
    ConfigurationError,
    IdentityError,
    TokenExchangeError,
)
from lessonboard.services.chat import ChatError, TransientSendError

logger = structlog.get_logger(__name__)


class ErrorCode:
    """Standardized error codes for responses.

    These codes provide machine-readable identifiers for error conditions
    that clients can use to implement error handling logic.
    """

    # Client Errors (4xx)
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_FAILED = "AUTH_FAILED"
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    # Server Errors (5xx)
    IDENTITY_PROVIDER_ERROR = "IDENTITY_PROVIDER_ERROR"
    SEND_FAILED = "SEND_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Service Unavailable (503)
    AUTH_NOT_CONFIGURED = "AUTH_NOT_CONFIGURED"
    COMPONENT_UNAVAILABLE = "COMPONENT_UNAVAILABLE"


# Error code to HTTP status code mapping
ERROR_CODE_TO_STATUS: Dict[str, int] = {
    ErrorCode.INVALID_PARAMETERS: HTTP_400_BAD_REQUEST,
    ErrorCode.AUTH_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
    ErrorCode.VIDEO_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.IDENTITY_PROVIDER_ERROR: HTTP_502_BAD_GATEWAY,
    ErrorCode.SEND_FAILED: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.INTERNAL_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.AUTH_NOT_CONFIGURED: HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.COMPONENT_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
}


# User-friendly suggestions for error resolution
ERROR_SUGGESTIONS: Dict[str, str] = {
    ErrorCode.INVALID_PARAMETERS: "Check the video BV id and page number",
    ErrorCode.AUTH_REQUIRED: "Sign in at /login and retry",
    ErrorCode.AUTH_FAILED: "Start the sign-in again from /login",
    ErrorCode.VIDEO_NOT_FOUND: "The video does not exist in the catalog. Go back to the video list",
    ErrorCode.NOT_FOUND: "Check the address or go back to the dashboard",
    ErrorCode.IDENTITY_PROVIDER_ERROR: "The sign-in service did not respond correctly. Try again later",
    ErrorCode.SEND_FAILED: "The message was not sent. Retry",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred. Contact administrator if the issue persists",
    ErrorCode.AUTH_NOT_CONFIGURED: "Sign-in is not configured. Contact administrator",
    ErrorCode.COMPONENT_UNAVAILABLE: "A required component is unavailable. Check /health for status",
}


# Exception type to error code mapping
# Order matters: subclasses must come before their base classes
EXCEPTION_TO_ERROR_CODE: Dict[Type[Exception], str] = {
    CallbackError: ErrorCode.AUTH_FAILED,
    AuthenticationError: ErrorCode.AUTH_FAILED,
    TokenExchangeError: ErrorCode.IDENTITY_PROVIDER_ERROR,
    ConfigurationError: ErrorCode.AUTH_NOT_CONFIGURED,
    TransientSendError: ErrorCode.SEND_FAILED,
    # Base classes last
    IdentityError: ErrorCode.IDENTITY_PROVIDER_ERROR,
    ChatError: ErrorCode.SEND_FAILED,
}


class APIError(Exception):
    """Structured error that the global handler turns into an error response."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        """Initialize an API error.

        Args:
            error_code: Machine-readable error code from ErrorCode class.
            message: Human-readable error message.
            details: Optional additional details about the error.
            suggestion: Optional suggestion for resolution. If not provided,
                        the default suggestion for the error code is used.
        """
        self.error_code = error_code
        self.message = message
        self.details = details
        self.suggestion = suggestion or ERROR_SUGGESTIONS.get(error_code)
        super().__init__(message)


def map_exception_to_api_error(exc: Exception) -> APIError:
    """Map identity and chat exceptions to APIError.

    Dictionary order ensures subclasses are checked before their base classes.
    """
    for exc_type, error_code in EXCEPTION_TO_ERROR_CODE.items():
        if isinstance(exc, exc_type):
            return APIError(error_code, str(exc))
    return APIError(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


def _build_error_response(
    error_code: str,
    message: str,
    details: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a standardized error response dictionary."""
    request_id = get_request_id()
    timestamp = datetime.now(timezone.utc).isoformat()

    response: Dict[str, Any] = {
        "error_code": error_code,
        "message": message,
        "timestamp": timestamp,
    }

    if details:
        response["details"] = details
    if request_id:
        response["request_id"] = request_id
    if suggestion:
        response["suggestion"] = suggestion

    return response


def wants_json(request: Request) -> bool:
    """Whether the client should get a JSON error body instead of a page."""
    if request.url.path.startswith("/api/"):
        return True
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def _error_response(
    request: Request, status_code: int, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None
) -> Response:
    if wants_json(request):
        return JSONResponse(status_code=status_code, content=body, headers=headers)
    template = "not_found.html" if status_code == HTTP_404_NOT_FOUND else "error.html"
    response = render(request, template, {"error": body, "status_code": status_code}, status_code)
    if headers:
        response.headers.update(headers)
    return response


async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Global exception handler for FastAPI.

    Converts all exceptions to standardized error responses with consistent
    structure, proper HTTP status codes, and request tracing.
    """
    headers: Optional[Dict[str, str]] = None

    if isinstance(exc, APIError):
        status_code = ERROR_CODE_TO_STATUS.get(exc.error_code, HTTP_500_INTERNAL_SERVER_ERROR)
        response = _build_error_response(
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            suggestion=exc.suggestion,
        )
        logger.warning(
            "api_error",
            error_code=exc.error_code,
            message=exc.message,
            path=request.url.path,
        )

    elif isinstance(exc, StarletteHTTPException):
        status_code = exc.status_code
        headers = getattr(exc, "headers", None)

        if isinstance(exc.detail, dict) and "error_code" in exc.detail:
            error_code = exc.detail["error_code"]
            message = exc.detail.get("message", str(exc.detail))
            details = exc.detail.get("details")
        else:
            error_code = _status_to_error_code(status_code)
            message = str(exc.detail) if exc.detail else "An error occurred"
            details = None

        response = _build_error_response(
            error_code=error_code,
            message=message,
            details=details,
            suggestion=ERROR_SUGGESTIONS.get(error_code),
        )
        logger.warning(
            "http_exception",
            status_code=status_code,
            error_code=error_code,
            path=request.url.path,
        )

    elif isinstance(exc, RequestValidationError):
        status_code = 422
        response = _build_error_response(
            error_code=ErrorCode.INVALID_PARAMETERS,
            message="Request parameters are invalid",
            details="; ".join(str(err.get("msg")) for err in exc.errors()),
            suggestion=ERROR_SUGGESTIONS.get(ErrorCode.INVALID_PARAMETERS),
        )
        logger.warning("request_validation_failed", path=request.url.path)

    elif isinstance(exc, (IdentityError, ChatError)):
        api_error = map_exception_to_api_error(exc)
        status_code = ERROR_CODE_TO_STATUS.get(api_error.error_code, HTTP_500_INTERNAL_SERVER_ERROR)
        response = _build_error_response(
            error_code=api_error.error_code,
            message=api_error.message,
            details=api_error.details,
            suggestion=api_error.suggestion,
        )
        logger.warning(
            "service_error",
            error_code=api_error.error_code,
            error_type=type(exc).__name__,
            message=str(exc),
            path=request.url.path,
        )

    else:
        # Unexpected error - log with full traceback
        status_code = HTTP_500_INTERNAL_SERVER_ERROR
        response = _build_error_response(
            error_code=ErrorCode.INTERNAL_ERROR,
            message="An unexpected error occurred",
            suggestion=ERROR_SUGGESTIONS.get(ErrorCode.INTERNAL_ERROR),
        )
        logger.error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )

    route = request.scope.get("route")
    MetricsCollector.record_error(response["error_code"], route.path if route else "/unmatched")
    return _error_response(request, status_code, response, headers)


def _status_to_error_code(status_code: int) -> str:
    """Infer error code from HTTP status code."""
    if status_code == HTTP_400_BAD_REQUEST:
        return ErrorCode.INVALID_PARAMETERS
    elif status_code == HTTP_401_UNAUTHORIZED:
        return ErrorCode.AUTH_REQUIRED
    elif status_code == HTTP_404_NOT_FOUND:
        return ErrorCode.NOT_FOUND
    elif status_code == HTTP_503_SERVICE_UNAVAILABLE:
        return ErrorCode.COMPONENT_UNAVAILABLE
    else:
        return ErrorCode.INTERNAL_ERROR
