"""Error taxonomy for the two-factor authentication flows.

Every ``MFAError`` carries the HTTP status it maps to and a ``detail`` message
that is safe to return to the client. Security faults keep their diagnostic
context in ``__cause__`` and the log, never in ``detail``.
"""

from typing import ClassVar


class MFAError(Exception):
    """Base class for two-factor authentication errors."""

    status_code: ClassVar[int] = 400
    default_detail: ClassVar[str] = "Two-factor authentication request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UserNotFoundError(MFAError):
    """Referenced user does not exist."""

    status_code = 404
    default_detail = "User not found"


class InvalidCredentialError(MFAError):
    """A password, TOTP code or backup code did not match."""

    status_code = 401
    default_detail = "Invalid credentials"


class InvalidPasswordError(InvalidCredentialError):
    default_detail = "Invalid password"


class InvalidTOTPCodeError(InvalidCredentialError):
    default_detail = "Invalid TOTP token"


class PreconditionFailedError(MFAError):
    """Operation attempted while the account is in the wrong MFA state."""

    status_code = 400
    default_detail = "Operation not allowed in the current two-factor state"


class TOTPNotProvisionedError(PreconditionFailedError):
    default_detail = "TOTP not set up for this user. Please set up TOTP first."


class TOTPNotEnabledError(PreconditionFailedError):
    default_detail = "TOTP is not currently enabled for this account."


class SecurityFaultError(MFAError):
    """Server-side fault around secret material; never echoed to the client."""

    status_code = 500
    default_detail = "Failed to process two-factor credentials"


class SecretCorruptedError(SecurityFaultError):
    default_detail = "Failed to process TOTP secret"


class BackupCodeStorageError(SecurityFaultError):
    default_detail = "Failed to process stored backup codes"


class ConcurrentUpdateError(MFAError):
    """The user record changed between read and write."""

    status_code = 409
    default_detail = "The account was modified by another request. Please retry."


class SecretDecryptionError(ValueError):
    """Ciphertext could not be decrypted (corrupt data, wrong or unknown key)."""
