"""
API Middleware Layer

Provides middleware components for request/response processing:
- Error handling (cache errors mapped to HTTP status codes)
- CORS (via FastAPI)
"""

from .error_handler import (
    ErrorHandlerMiddleware,
    ErrorHandlerConfig,
    create_error_handler_middleware,
)

__all__ = [
    'ErrorHandlerMiddleware',
    'ErrorHandlerConfig',
    'create_error_handler_middleware',
]
