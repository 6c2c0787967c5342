"""Catch-all for exceptions that escape the route handlers."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from mfa_guard.config import settings
from mfa_guard.services.error_logging_service import error_logging_service

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Turn uncaught exceptions into a 500 response.

    The full error is logged with secrets redacted; clients only see the
    exception type when DEBUG is on.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            context = {
                "method": request.method,
                "path": request.url.path,
                "request_id": getattr(request.state, "request_id", None),
            }
            error_logging_service.log_error(logger=logger, error=exc, context=context)

            if settings.DEBUG:
                content = {
                    "detail": "An error occurred processing your request",
                    "type": type(exc).__name__,
                }
            else:
                content = {"detail": "Internal server error"}

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content
            )
