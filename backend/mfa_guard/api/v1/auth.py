"""Authentication API endpoints."""

import logging
from typing import Union

from fastapi import APIRouter, Depends, HTTPException, status

from mfa_guard.dependencies import get_current_user, get_login_service
from mfa_guard.models.user import User
from mfa_guard.schemas.auth import (
    LoginBackupCodeRequest,
    LoginRequest,
    LoginTOTPRequest,
    SecondFactorRequiredResponse,
    TokenResponse,
    UserSummary,
)
from mfa_guard.services.login_service import (
    Authenticated,
    LoginOutcome,
    LoginService,
    Rejected,
    RejectionKind,
    SecondFactorRequired,
)
from mfa_guard.utils.logging_utils import redact_email

router = APIRouter()

logger = logging.getLogger(__name__)

_REJECTION_STATUS = {
    RejectionKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.INVALID_STATE: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.INVALID_SECOND_FACTOR: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.ACCOUNT_INACTIVE: status.HTTP_403_FORBIDDEN,
    RejectionKind.NOT_ENABLED: status.HTTP_403_FORBIDDEN,
}


def _to_response(outcome: LoginOutcome) -> Union[TokenResponse, SecondFactorRequiredResponse]:
    """Translate a login outcome into the HTTP response body or error."""
    if isinstance(outcome, Authenticated):
        return TokenResponse(access_token=outcome.access_token, user_id=outcome.user_id)
    if isinstance(outcome, SecondFactorRequired):
        return SecondFactorRequiredResponse(user_id=outcome.user_id)
    if isinstance(outcome, Rejected):
        raise HTTPException(status_code=_REJECTION_STATUS[outcome.kind], detail=outcome.reason)
    raise TypeError(f"Unexpected login outcome: {outcome!r}")


@router.post("/login", response_model=Union[TokenResponse, SecondFactorRequiredResponse])
async def login(
    data: LoginRequest,
    login_service: LoginService = Depends(get_login_service),
):
    """
    Login with email and password.

    Returns an access token, or ``2fa_required`` with the user id when the
    account has TOTP enabled.
    """
    logger.info(f"Login attempt for email: {redact_email(data.email)}")
    outcome = await login_service.submit_password(data.email, data.password)
    return _to_response(outcome)


@router.post("/login/2fa/verify", response_model=TokenResponse)
async def login_verify_totp(
    data: LoginTOTPRequest,
    login_service: LoginService = Depends(get_login_service),
):
    """Complete a login challenge with a 6-digit TOTP code."""
    outcome = await login_service.submit_totp(data.user_id, data.token)
    return _to_response(outcome)


@router.post("/login/2fa/backup-code/verify", response_model=TokenResponse)
async def login_verify_backup_code(
    data: LoginBackupCodeRequest,
    login_service: LoginService = Depends(get_login_service),
):
    """
    Complete a login challenge with a backup code.

    A matching code is consumed and can never be used again.
    """
    outcome = await login_service.submit_backup_code(data.user_id, data.backup_code)
    return _to_response(outcome)


@router.get("/me", response_model=UserSummary)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user
