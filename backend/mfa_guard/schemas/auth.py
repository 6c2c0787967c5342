"""Authentication Pydantic schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginTOTPRequest(BaseModel):
    """Second login step with an authenticator code."""

    user_id: UUID
    token: str = Field(..., min_length=1, max_length=16)


class LoginBackupCodeRequest(BaseModel):
    """Second login step with a backup code."""

    user_id: UUID
    backup_code: str = Field(..., min_length=1, max_length=64)


class UserSummary(BaseModel):
    """Public view of the authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_totp_enabled: bool


class TokenResponse(BaseModel):
    """Schema for token response."""

    access_token: str
    token_type: str = "bearer"
    user_id: UUID


class SecondFactorRequiredResponse(BaseModel):
    """Returned by /login when the account has TOTP enabled."""

    model_config = ConfigDict(populate_by_name=True)

    two_factor_required: bool = Field(True, alias="2fa_required")
    user_id: UUID
    message: str = "Password verified. Please provide TOTP token."
