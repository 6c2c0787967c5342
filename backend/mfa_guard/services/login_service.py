"""Password login with an optional TOTP or backup-code second factor."""

import enum
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from mfa_guard.core.exceptions import (
    ConcurrentUpdateError,
    SecretCorruptedError,
    SecretDecryptionError,
)
from mfa_guard.core.logging_config import get_logger
from mfa_guard.core.security import DUMMY_PASSWORD_HASH
from mfa_guard.models.user import NoSecret, User
from mfa_guard.services.backup_code_service import BackupCodeService
from mfa_guard.services.ports import (
    PasswordHasher,
    SecretCodec,
    SessionIssuer,
    UserStore,
)
from mfa_guard.services.totp_service import TOTPService
from mfa_guard.utils.logging_utils import redact_email

logger = get_logger(__name__)

INVALID_LOGIN = "Invalid email or password"
INVALID_STATE = "User not found or invalid state"
ACCOUNT_INACTIVE = "User account is inactive"
TOTP_NOT_ENABLED = "TOTP is not enabled for this user"
BACKUP_CODES_UNAVAILABLE = "2FA/backup codes not enabled or not generated"
INVALID_TOTP = "Invalid TOTP token"
INVALID_BACKUP_CODE = "Invalid backup code"


class RejectionKind(str, enum.Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_STATE = "invalid_state"
    ACCOUNT_INACTIVE = "account_inactive"
    NOT_ENABLED = "not_enabled"
    INVALID_SECOND_FACTOR = "invalid_second_factor"


@dataclass(frozen=True)
class Authenticated:
    user_id: UUID
    access_token: str


@dataclass(frozen=True)
class SecondFactorRequired:
    """Password accepted; carries nothing about the secret."""

    user_id: UUID


@dataclass(frozen=True)
class Rejected:
    reason: str
    kind: RejectionKind


LoginOutcome = Union[Authenticated, SecondFactorRequired, Rejected]


class LoginService:
    """Runs the login state machine.

    AWAITING_PASSWORD -> AUTHENTICATED, or
    AWAITING_PASSWORD -> AWAITING_SECOND_FACTOR -> AUTHENTICATED.

    Each ``submit_*`` call re-reads the user, so a second-factor step never
    trusts state captured during the password step.
    """

    def __init__(
        self,
        store: UserStore,
        codec: SecretCodec,
        hasher: PasswordHasher,
        sessions: SessionIssuer,
        totp: Optional[TOTPService] = None,
        backup_codes: Optional[BackupCodeService] = None,
        dummy_password_hash: str = DUMMY_PASSWORD_HASH,
    ):
        self._store = store
        self._codec = codec
        self._hasher = hasher
        self._sessions = sessions
        self._totp = totp or TOTPService()
        self._backup_codes = backup_codes or BackupCodeService(hasher)
        self._dummy_password_hash = dummy_password_hash

    async def submit_password(self, email: str, password: str) -> LoginOutcome:
        """
        First login step.

        Unknown email and wrong password produce the same rejection.
        """
        user = await self._store.get_by_email(email)
        if user is None:
            # Keep response time independent of whether the account exists
            self._hasher.verify(self._dummy_password_hash, password)
            logger.info("login_rejected", email=redact_email(email), reason="unknown_email")
            return Rejected(INVALID_LOGIN, RejectionKind.INVALID_CREDENTIALS)

        if not self._hasher.verify(user.password_hash, password):
            logger.info("login_rejected", user_id=str(user.id), reason="invalid_password")
            return Rejected(INVALID_LOGIN, RejectionKind.INVALID_CREDENTIALS)

        if not user.is_active:
            logger.info("login_rejected", user_id=str(user.id), reason="inactive")
            return Rejected(ACCOUNT_INACTIVE, RejectionKind.ACCOUNT_INACTIVE)

        if user.is_totp_enabled:
            logger.info("login_second_factor_required", user_id=str(user.id))
            return SecondFactorRequired(user_id=user.id)

        return await self._complete_login(user)

    async def _load_for_second_factor(self, user_id: UUID) -> Union[User, Rejected]:
        user = await self._store.get_by_id(user_id)
        if user is None:
            return Rejected(INVALID_STATE, RejectionKind.INVALID_STATE)
        if not user.is_active:
            return Rejected(ACCOUNT_INACTIVE, RejectionKind.ACCOUNT_INACTIVE)
        return user

    async def submit_totp(self, user_id: UUID, code: str) -> LoginOutcome:
        """Second login step with a code from the authenticator app."""
        loaded = await self._load_for_second_factor(user_id)
        if isinstance(loaded, Rejected):
            logger.info("totp_login_rejected", user_id=str(user_id), reason=loaded.kind.value)
            return loaded
        user = loaded

        if not user.is_totp_enabled or isinstance(user.totp_secret_state, NoSecret):
            logger.warning("totp_login_rejected", user_id=str(user_id), reason="not_enabled")
            return Rejected(TOTP_NOT_ENABLED, RejectionKind.NOT_ENABLED)

        try:
            secret = self._codec.decrypt(user.totp_secret)
        except SecretDecryptionError as e:
            logger.error("totp_secret_decrypt_failed", user_id=str(user_id), error=str(e))
            raise SecretCorruptedError("Failed to process TOTP secret during login") from e

        if not self._totp.validate_code(code, secret):
            logger.info("totp_login_rejected", user_id=str(user_id), reason="invalid_code")
            return Rejected(INVALID_TOTP, RejectionKind.INVALID_SECOND_FACTOR)

        return await self._complete_login(user)

    async def submit_backup_code(self, user_id: UUID, code: str) -> LoginOutcome:
        """
        Second login step with a single-use backup code.

        The reduced code set is written with the same version guard as every
        other MFA update, so of two concurrent attempts with one code only
        the first commit wins; the other is rejected.
        """
        loaded = await self._load_for_second_factor(user_id)
        if isinstance(loaded, Rejected):
            logger.info("backup_code_login_rejected", user_id=str(user_id), reason=loaded.kind.value)
            return loaded
        user = loaded

        if not user.is_totp_enabled:
            logger.warning("backup_code_login_rejected", user_id=str(user_id), reason="not_enabled")
            return Rejected(BACKUP_CODES_UNAVAILABLE, RejectionKind.NOT_ENABLED)

        stored_hashes = self._backup_codes.deserialize(user.totp_backup_codes)
        if not stored_hashes:
            logger.warning("backup_code_login_rejected", user_id=str(user_id), reason="not_enabled")
            return Rejected(BACKUP_CODES_UNAVAILABLE, RejectionKind.NOT_ENABLED)

        remaining, matched = self._backup_codes.consume(code, stored_hashes)
        if not matched:
            logger.info("backup_code_login_rejected", user_id=str(user_id), reason="invalid_code")
            return Rejected(INVALID_BACKUP_CODE, RejectionKind.INVALID_SECOND_FACTOR)

        # Issue before persisting: the code is spent only if a session exists for it
        access_token = self._sessions.issue(user)
        user.totp_backup_codes = self._backup_codes.serialize(remaining)
        try:
            await self._store.save(user)
        except ConcurrentUpdateError:
            logger.warning("backup_code_login_rejected", user_id=str(user_id), reason="lost_race")
            return Rejected(INVALID_BACKUP_CODE, RejectionKind.INVALID_SECOND_FACTOR)

        logger.info(
            "backup_code_consumed", user_id=str(user_id), backup_codes_remaining=len(remaining)
        )
        await self._store.record_login(user_id)
        return Authenticated(user_id=user_id, access_token=access_token)

    async def _complete_login(self, user: User) -> Authenticated:
        user_id = user.id
        access_token = self._sessions.issue(user)
        await self._store.record_login(user_id)
        logger.info("login_succeeded", user_id=str(user_id))
        return Authenticated(user_id=user_id, access_token=access_token)
