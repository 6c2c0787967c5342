"""Security utilities: password hashing and session tokens."""

from datetime import timedelta
from typing import Any, Optional

from jose import jwt
from passlib.context import CryptContext

from mfa_guard.config import settings
from mfa_guard.utils.datetime_utils import utc_now

# Password hashing context using Argon2
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    return pwd_context.hash(password)


# Verified against when the email is unknown so both login failures cost the same
DUMMY_PASSWORD_HASH = hash_password("dummy-password-for-timing-equalization")


class PasswordHasher:
    """Salted one-way hashing used for passwords and backup codes."""

    def __init__(self, context: Optional[CryptContext] = None):
        self._context = context or pwd_context

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, digest: str, plaintext: str) -> bool:
        """Return True when ``plaintext`` matches ``digest``; never raises on bad input."""
        if not digest or not plaintext:
            return False
        try:
            return self._context.verify(plaintext, digest)
        except (ValueError, TypeError):
            return False


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


class JWTSessionIssuer:
    """Issues the bearer access token returned once login completes."""

    def __init__(self, expires_delta: Optional[timedelta] = None):
        self._expires_delta = expires_delta

    def issue(self, user) -> str:
        return create_access_token(
            data={"sub": str(user.id), "email": user.email},
            expires_delta=self._expires_delta,
        )
