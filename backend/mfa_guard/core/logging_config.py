"""
Structured logging configuration.

JSON output in production (or with LOG_FORMAT=json) for log aggregation,
human-readable console output in development.

Usage:
    from mfa_guard.core.logging_config import setup_logging, get_logger

    setup_logging()  # once, at application startup

    logger = get_logger(__name__)
    logger.info("totp_enabled", user_id=str(user.id))

Never pass TOTP secrets, ciphertexts, one-time codes or backup codes as log
fields. Fields with those names are dropped before rendering regardless.
"""

import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger

from mfa_guard.config import settings

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "secret",
        "totp_secret",
        "ciphertext",
        "code",
        "token",
        "access_token",
        "backup_code",
        "backup_codes",
        "provisioning_uri",
    }
)


def drop_sensitive_fields(logger, method_name, event_dict):
    """structlog processor that replaces credential-bearing fields."""
    for key in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[key] = "[REDACTED]"
    return event_dict


def _use_json() -> bool:
    return settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"


def setup_logging() -> None:
    """Configure stdlib logging and structlog for the application."""
    use_json = _use_json()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    )

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            drop_sensitive_fields,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if use_json:
        _configure_server_logging()

    if settings.ENVIRONMENT == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _configure_server_logging() -> None:
    """Give uvicorn's access and error logs the same JSON shape as ours."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    )

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.addHandler(handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("totp_login_rejected", user_id="...", reason="invalid_code")
    """
    return structlog.get_logger(name)
