"""
Error handling for the HTTP surface.

Domain errors carry their own status code and are rendered by
``ranch_error_handler``. Anything else becomes a 500 in
``ErrorHandlerMiddleware``.
"""
import logging
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ranch_service.domain.errors import RanchServiceError, ValidationError


logger = logging.getLogger(__name__)


async def ranch_error_handler(request: Request, error: RanchServiceError) -> JSONResponse:
    log = logger.error if error.status_code >= 500 else logger.warning
    log(
        f"{request.method} {request.url.path} -> {error.status_code} "
        f"{type(error).__name__}: {error.message}"
    )
    content = {"error": error.kind, "detail": error.message}
    if isinstance(error, ValidationError):
        content["errors"] = error.errors
    return JSONResponse(status_code=error.status_code, content=content)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into a generic 500 response."""

    async def dispatch(self, request: Request, call_next: Callable):
        try:
            return await call_next(request)
        except Exception:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "internal_error",
                    "detail": "An unexpected error occurred",
                },
            )
