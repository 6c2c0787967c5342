"""TOTP enrollment: setup, verification, disablement and backup codes."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from mfa_guard.core.exceptions import (
    InvalidPasswordError,
    InvalidTOTPCodeError,
    SecretCorruptedError,
    SecretDecryptionError,
    TOTPNotEnabledError,
    TOTPNotProvisionedError,
    UserNotFoundError,
)
from mfa_guard.core.logging_config import get_logger
from mfa_guard.models.user import MFAState, NoSecret, User
from mfa_guard.services.backup_code_service import (
    DEFAULT_CODE_COUNT,
    DEFAULT_CODE_LENGTH,
    BackupCodeService,
)
from mfa_guard.services.ports import PasswordHasher, SecretCodec, UserStore
from mfa_guard.services.totp_service import TOTPService
from mfa_guard.utils.datetime_utils import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class SetupResult:
    """Plaintext secret and provisioning URI, shown to the user exactly once."""

    secret: str
    provisioning_uri: str
    account: str
    issuer: str


@dataclass(frozen=True)
class VerifyResult:
    already_enabled: bool


@dataclass(frozen=True)
class MFAStatus:
    state: MFAState
    backup_codes_remaining: int
    enabled_at: Optional[datetime] = None


class MFAEnrollmentService:
    """Drives a user through NO_SECRET -> PENDING_VERIFICATION -> ENABLED.

    Runs in an authenticated context: the caller already knows its own user
    id, so a missing user is reported as ``UserNotFoundError``.
    """

    def __init__(
        self,
        store: UserStore,
        codec: SecretCodec,
        hasher: PasswordHasher,
        totp: Optional[TOTPService] = None,
        backup_codes: Optional[BackupCodeService] = None,
        issuer: str = "PhoenixGRC",
        backup_code_count: int = DEFAULT_CODE_COUNT,
        backup_code_length: int = DEFAULT_CODE_LENGTH,
    ):
        self._store = store
        self._codec = codec
        self._hasher = hasher
        self._totp = totp or TOTPService()
        self._backup_codes = backup_codes or BackupCodeService(hasher)
        self._issuer = issuer
        self._backup_code_count = backup_code_count
        self._backup_code_length = backup_code_length

    async def _load(self, user_id: UUID) -> User:
        user = await self._store.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def setup(self, user_id: UUID) -> SetupResult:
        """
        Provision a fresh secret for the user.

        Any previous secret is replaced and enablement is reset, so the account
        is only protected by a secret the user has confirmed via ``verify``.
        """
        user = await self._load(user_id)

        secret, uri = self._totp.generate_secret(user.email, self._issuer)
        was_enabled = user.is_totp_enabled

        user.totp_secret = self._codec.encrypt(secret)
        user.is_totp_enabled = False
        user.totp_enabled_at = None
        await self._store.save(user)

        logger.info("totp_setup_started", user_id=str(user_id), was_enabled=was_enabled)
        return SetupResult(secret=secret, provisioning_uri=uri, account=user.email, issuer=self._issuer)

    def _decrypt_secret(self, user: User) -> str:
        try:
            return self._codec.decrypt(user.totp_secret)
        except SecretDecryptionError as e:
            logger.error("totp_secret_decrypt_failed", user_id=str(user.id), error=str(e))
            raise SecretCorruptedError() from e

    async def verify(self, user_id: UUID, code: str, at=None) -> VerifyResult:
        """
        Confirm the provisioned secret with a code from the authenticator.

        The first success enables TOTP; later successes change nothing.
        """
        user = await self._load(user_id)
        if isinstance(user.totp_secret_state, NoSecret):
            raise TOTPNotProvisionedError()

        secret = self._decrypt_secret(user)
        if not self._totp.validate_code(code, secret, at=at):
            logger.info("totp_verify_rejected", user_id=str(user_id))
            raise InvalidTOTPCodeError()

        if user.is_totp_enabled:
            return VerifyResult(already_enabled=True)

        user.is_totp_enabled = True
        user.totp_enabled_at = utc_now()
        await self._store.save(user)

        logger.info("totp_enabled", user_id=str(user_id))
        return VerifyResult(already_enabled=False)

    async def disable(self, user_id: UUID, password: str) -> None:
        """Turn TOTP off after re-checking the account password."""
        user = await self._load(user_id)

        if not self._hasher.verify(user.password_hash, password):
            logger.info("totp_disable_rejected", user_id=str(user_id), reason="invalid_password")
            raise InvalidPasswordError()

        if not user.is_totp_enabled:
            raise TOTPNotEnabledError()

        user.is_totp_enabled = False
        user.totp_enabled_at = None
        user.totp_secret = None
        user.totp_backup_codes = None
        await self._store.save(user)

        logger.info("totp_disabled", user_id=str(user_id))

    async def generate_backup_codes(self, user_id: UUID) -> List[str]:
        """
        Replace the user's backup codes with a fresh batch.

        Every call invalidates codes shown previously.
        """
        user = await self._load(user_id)
        if not user.is_totp_enabled:
            raise TOTPNotEnabledError("TOTP must be enabled to generate backup codes.")

        plain_codes, hashes = self._backup_codes.generate_codes(
            self._backup_code_count, self._backup_code_length
        )
        user.totp_backup_codes = self._backup_codes.serialize(hashes)
        await self._store.save(user)

        logger.info("backup_codes_generated", user_id=str(user_id), count=len(plain_codes))
        return plain_codes

    async def status(self, user_id: UUID) -> MFAStatus:
        """Summarize the enrollment state for display."""
        user = await self._load(user_id)
        return MFAStatus(
            state=user.mfa_state,
            backup_codes_remaining=len(self._backup_codes.deserialize(user.totp_backup_codes)),
            enabled_at=user.totp_enabled_at,
        )
