"""Error logging with redaction of credentials and secret material."""

import logging
import re
import traceback
from typing import Any, Dict, Optional


class ErrorLoggingService:
    """Logs unexpected errors without leaking PII, tokens or TOTP secrets."""

    # (pattern, replacement, flags) applied in order
    REDACTIONS = [
        # otpauth://totp/...?secret=BASE32 provisioning URIs
        (r'(secret=)[A-Z2-7=]+', r'\1[REDACTED_SECRET]', re.IGNORECASE),
        # Versioned Fernet ciphertext as stored in totp_secret
        (r'\bv\d+:[A-Za-z0-9+/=_-]{20,}', '[REDACTED_CIPHERTEXT]', 0),
        # JWTs
        (r'\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+', '[REDACTED_JWT]', 0),
        # argon2 digests (passwords and backup codes)
        (r'\$argon2[a-z]*\$[^\s"\']+', '[REDACTED_DIGEST]', 0),
        (
            r'(password|passwd|pwd|token|backup_code|code)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)',
            r'\1=[REDACTED]',
            re.IGNORECASE,
        ),
        (r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[REDACTED_EMAIL]', 0),
    ]

    @staticmethod
    def redact(text: str) -> str:
        """
        Strip credentials and PII from a log message.

        Args:
            text: Text potentially containing sensitive data

        Returns:
            Text with sensitive values replaced by placeholders
        """
        if not text:
            return text

        redacted = text
        for pattern, replacement, flags in ErrorLoggingService.REDACTIONS:
            redacted = re.sub(pattern, replacement, redacted, flags=flags)
        return redacted

    @staticmethod
    def log_error(
        logger: logging.Logger,
        error: Exception,
        context: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """
        Log an exception with its traceback, redacted.

        Args:
            logger: Logger instance
            error: Exception to log
            context: Additional context (will be redacted)
            user_id: User ID (not PII, safe to log)
        """
        error_traceback = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

        log_parts = [
            f"Error: {ErrorLoggingService.redact(str(error))}",
            f"Type: {type(error).__name__}",
        ]

        if user_id:
            log_parts.append(f"User ID: {user_id}")

        if context:
            safe_context = {k: ErrorLoggingService.redact(str(v)) for k, v in context.items()}
            log_parts.append(f"Context: {safe_context}")

        log_parts.append(f"Traceback:\n{ErrorLoggingService.redact(error_traceback)}")

        logger.error("\n".join(log_parts))


# Create singleton instance
error_logging_service = ErrorLoggingService()
