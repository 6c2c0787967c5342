"""SQLAlchemy models package."""

from mfa_guard.models.user import MFAState, NoSecret, ProvisionedSecret, SecretState, User

__all__ = [
    "MFAState",
    "NoSecret",
    "ProvisionedSecret",
    "SecretState",
    "User",
]
