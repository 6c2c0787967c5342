"""User model and its two-factor authentication state."""

import enum
import uuid
from dataclasses import dataclass
from typing import Union

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid

from mfa_guard.core.database import Base
from mfa_guard.utils.datetime_utils import utc_now


class MFAState(str, enum.Enum):
    """Enrollment state machine: NO_SECRET -> PENDING_VERIFICATION -> ENABLED -> NO_SECRET."""

    NO_SECRET = "no_secret"
    PENDING_VERIFICATION = "pending_verification"
    ENABLED = "enabled"


@dataclass(frozen=True)
class NoSecret:
    """No TOTP secret has been provisioned."""


@dataclass(frozen=True)
class ProvisionedSecret:
    """An encrypted TOTP secret is stored for the user."""

    ciphertext: str


SecretState = Union[NoSecret, ProvisionedSecret]


class User(Base):
    """User model.

    Only the columns the authentication flows read or write live here; the
    rest of the user profile belongs to the surrounding application.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)

    # Two-factor authentication
    totp_secret = Column(Text, nullable=True)  # Fernet ciphertext, never plaintext
    is_totp_enabled = Column(Boolean, default=False, nullable=False)
    totp_enabled_at = Column(DateTime, nullable=True)
    totp_backup_codes = Column(Text, nullable=True)  # JSON array of argon2 digests

    # Optimistic concurrency: every UPDATE is conditioned on the version it read
    mfa_version = Column(Integer, nullable=False, default=1)

    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __mapper_args__ = {"version_id_col": mfa_version}

    @property
    def totp_secret_state(self) -> SecretState:
        if self.totp_secret:
            return ProvisionedSecret(self.totp_secret)
        return NoSecret()

    @property
    def mfa_state(self) -> MFAState:
        if isinstance(self.totp_secret_state, NoSecret):
            return MFAState.NO_SECRET
        if self.is_totp_enabled:
            return MFAState.ENABLED
        return MFAState.PENDING_VERIFICATION

    def __repr__(self):
        return f"<User {self.id}>"
