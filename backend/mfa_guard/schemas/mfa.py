"""Two-factor enrollment Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from mfa_guard.models.user import MFAState


class SetupTOTPResponse(BaseModel):
    """New secret for one-time display while the user enrolls an authenticator."""

    secret: str  # Base32 encoded secret
    qr_code: str  # data:image/png;base64,...
    provisioning_uri: str
    account: str
    issuer: str


class VerifyTOTPRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=16)


class DisableTOTPRequest(BaseModel):
    password: str = Field(..., min_length=1)


class BackupCodesResponse(BaseModel):
    backup_codes: List[str]


class MFAStatusResponse(BaseModel):
    state: MFAState
    is_totp_enabled: bool
    backup_codes_remaining: int
    enabled_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str
