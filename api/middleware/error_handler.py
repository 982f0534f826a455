"""
Global Error Handler Middleware - API Layer

Provides centralized error handling with sanitized error responses and logging.

@.architecture
Incoming: app.py (middleware registration), Exception objects from endpoints --- {FastAPI Request objects, CacheError subclasses, Python exceptions}
Processing: dispatch(), _handle_error(), _classify_error(), _build_error_response(), _log_error() --- {5 jobs: exception_catching, error_classification, response_formatting, sanitization, logging}
Outgoing: monitoring/logging.py, HTTP clients --- {structured error logs, JSONResponse with standardized error format: code/message/type/hint}
"""

import logging
import traceback
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.cache.errors import (
    AlreadyExists,
    CacheError,
    InvalidArgument,
    NotFound,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

# Checked in order; any other CacheError is a 500
CACHE_ERROR_STATUS = (
    (InvalidArgument, 400),
    (NotFound, 404),
    (AlreadyExists, 409),
    (StoreUnavailable, 503),
)


class ErrorHandlerConfig:
    """Configuration for error handler."""

    def __init__(
        self,
        include_traceback: bool = False,
        sanitize_errors: bool = True,
        log_errors: bool = True,
        custom_error_messages: Optional[Dict[int, str]] = None
    ):
        """
        Initialize error handler configuration.

        Args:
            include_traceback: Include traceback in response (dev only)
            sanitize_errors: Hide messages of unexpected exceptions
            log_errors: Log errors to logger
            custom_error_messages: Hints for HTTP status codes
        """
        self.include_traceback = include_traceback
        self.sanitize_errors = sanitize_errors
        self.log_errors = log_errors
        self.custom_error_messages = custom_error_messages or self._default_messages()

    @staticmethod
    def _default_messages() -> Dict[int, str]:
        return {
            400: "Invalid request",
            404: "Resource not found",
            405: "Method not allowed",
            409: "Conflict",
            422: "Validation error",
            500: "Internal server error",
            503: "Cache store unavailable",
        }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for global error handling.

    Features:
    - Maps cache errors onto HTTP status codes
    - Sanitizes unexpected error messages
    - Logs errors with request context
    """

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[ErrorHandlerConfig] = None
    ):
        super().__init__(app)
        self.config = config or ErrorHandlerConfig()
        logger.info("Error handler middleware initialized")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return await self._handle_error(request, e)

    async def _handle_error(self, request: Request, error: Exception) -> JSONResponse:
        """
        Handle exception and return formatted error response.

        Args:
            request: Request that caused the error
            error: Exception that was raised

        Returns:
            JSONResponse with error details
        """
        status_code, error_message, error_type = self._classify_error(error)

        if self.config.log_errors:
            self._log_error(request, error, status_code)

        error_response = self._build_error_response(
            status_code=status_code,
            error_message=error_message,
            error_type=error_type,
            error=error if self.config.include_traceback else None
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response
        )

    def _classify_error(self, error: Exception) -> Tuple[int, str, str]:
        """
        Classify error and determine status code and message.

        Returns:
            Tuple of (status_code, message, error_type)
        """
        error_type = type(error).__name__

        for error_class, status_code in CACHE_ERROR_STATUS:
            if isinstance(error, error_class):
                return status_code, str(error), error_type

        if isinstance(error, CacheError):
            return 500, str(error), error_type
        if hasattr(error, 'status_code'):
            # HTTPException or similar
            return error.status_code, str(error), error_type

        if self.config.sanitize_errors:
            message = "An error occurred processing your request"
        else:
            message = str(error)
        return 500, message, error_type

    def _build_error_response(
        self,
        status_code: int,
        error_message: str,
        error_type: str,
        error: Optional[Exception] = None
    ) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "error": {
                "code": status_code,
                "message": error_message,
                "type": error_type
            }
        }

        if status_code in self.config.custom_error_messages:
            response["error"]["hint"] = self.config.custom_error_messages[status_code]

        if self.config.include_traceback and error:
            response["error"]["traceback"] = traceback.format_exception(
                type(error), error, error.__traceback__
            )

        return response

    def _log_error(
        self,
        request: Request,
        error: Exception,
        status_code: int
    ) -> None:
        context = {
            "method": request.method,
            "path": str(request.url.path),
            "status_code": status_code,
            "error_type": type(error).__name__,
            "client": request.client.host if request.client else "unknown"
        }

        if status_code >= 500:
            logger.error(
                f"Server error: {error}",
                extra=context,
                exc_info=True
            )
        else:
            logger.warning(
                f"Client error: {error}",
                extra=context
            )


def create_error_handler_middleware(
    development: bool = False
):
    """
    Create error handler middleware with environment-appropriate config.

    Args:
        development: Whether running in development mode

    Returns:
        Middleware class and kwargs for FastAPI
    """
    if development:
        config = ErrorHandlerConfig(
            include_traceback=True,
            sanitize_errors=False,
            log_errors=True
        )
    else:
        config = ErrorHandlerConfig(
            include_traceback=False,
            sanitize_errors=True,
            log_errors=True
        )

    return (ErrorHandlerMiddleware, {"config": config})
