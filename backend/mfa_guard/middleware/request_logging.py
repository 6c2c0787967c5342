"""Request logging middleware."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from mfa_guard.core.security import decode_token
from mfa_guard.utils.logging_utils import redact_email, redact_ip

logger = logging.getLogger(__name__)


class UserContextMiddleware(BaseHTTPMiddleware):
    """
    Put the caller's email on ``request.state`` for request logs.

    The token is only read here; ``get_current_user`` is what enforces it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        auth_header = request.headers.get("Authorization", "")

        if auth_header.startswith("Bearer "):
            try:
                payload = decode_token(auth_header[len("Bearer "):])
            except JWTError:
                payload = {}
            if payload.get("email"):
                request.state.user_email = payload["email"]

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with a request id, status and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        user = redact_email(getattr(request.state, "user_email", None))
        client_ip = redact_ip(request.client.host if request.client else None)

        logger.info(
            f"Request started | id={request_id} | method={method} | path={path} | "
            f"user={user} | ip={client_ip}"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.error(
                f"Request failed | id={request_id} | method={method} | path={path} | "
                f"duration={duration_ms}ms | user={user} | error={type(e).__name__}"
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            f"Request completed | id={request_id} | method={method} | path={path} | "
            f"status={response.status_code} | duration={duration_ms}ms | user={user}"
        )

        response.headers["X-Request-ID"] = request_id
        return response
