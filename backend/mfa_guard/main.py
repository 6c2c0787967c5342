"""FastAPI main application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mfa_guard.api.v1 import auth, mfa
from mfa_guard.config import settings
from mfa_guard.core.database import close_db, init_db
from mfa_guard.core.exceptions import MFAError, SecurityFaultError
from mfa_guard.core.logging_config import setup_logging
from mfa_guard.middleware.error_handler import ErrorHandlerMiddleware
from mfa_guard.middleware.request_logging import RequestLoggingMiddleware, UserContextMiddleware
from mfa_guard.services.error_logging_service import error_logging_service

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    _logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    await init_db()

    yield

    _logger.info("Shutting down %s", settings.APP_NAME)
    await close_db()


# Interactive API docs only in debug
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(ErrorHandlerMiddleware)

# Added last so it runs first: user context must be set before request logging reads it
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(UserContextMiddleware)


@app.exception_handler(MFAError)
async def mfa_exception_handler(request: Request, exc: MFAError):
    if isinstance(exc, SecurityFaultError):
        error_logging_service.log_error(
            logger=_logger,
            error=exc,
            context={"method": request.method, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    _logger.debug("Validation error on %s: %d error(s)", request.url.path, len(exc.errors()))
    # Echoed input may contain a password or code
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"detail": errors})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(mfa.router, prefix="/api/v1/users/me/2fa", tags=["Two-Factor Authentication"])
