"""FastAPI dependencies for authentication and service wiring."""

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from mfa_guard.config import settings
from mfa_guard.core.database import get_db
from mfa_guard.core.security import JWTSessionIssuer, PasswordHasher, decode_token
from mfa_guard.crud.user import SQLAlchemyUserStore, user_crud
from mfa_guard.models.user import User
from mfa_guard.services.encryption_service import EncryptionService, get_encryption_service
from mfa_guard.services.login_service import LoginService
from mfa_guard.services.mfa_service import MFAEnrollmentService
from mfa_guard.services.ports import ProvisioningRenderer
from mfa_guard.services.totp_service import QRCodeRenderer

# HTTP Bearer token scheme
security = HTTPBearer()

_credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        HTTPException: 401 if the token is invalid or the user is gone,
            403 if the account is inactive
    """
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise _credentials_exception

    if payload.get("type") != "access":
        raise _credentials_exception

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise _credentials_exception

    user = await user_crud.get_by_id(db, user_id)
    if user is None:
        raise _credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return user


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


def get_secret_codec() -> EncryptionService:
    return get_encryption_service()


def get_session_issuer() -> JWTSessionIssuer:
    return JWTSessionIssuer()


def get_qr_renderer() -> ProvisioningRenderer:
    return QRCodeRenderer()


def get_enrollment_service(
    db: AsyncSession = Depends(get_db),
    codec: EncryptionService = Depends(get_secret_codec),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> MFAEnrollmentService:
    """Enrollment flow bound to this request's session."""
    return MFAEnrollmentService(
        store=SQLAlchemyUserStore(db),
        codec=codec,
        hasher=hasher,
        issuer=settings.TOTP_ISSUER_NAME,
        backup_code_count=settings.BACKUP_CODE_COUNT,
        backup_code_length=settings.BACKUP_CODE_LENGTH,
    )


def get_login_service(
    db: AsyncSession = Depends(get_db),
    codec: EncryptionService = Depends(get_secret_codec),
    hasher: PasswordHasher = Depends(get_password_hasher),
    sessions: JWTSessionIssuer = Depends(get_session_issuer),
) -> LoginService:
    """Login flow bound to this request's session."""
    return LoginService(
        store=SQLAlchemyUserStore(db),
        codec=codec,
        hasher=hasher,
        sessions=sessions,
    )
