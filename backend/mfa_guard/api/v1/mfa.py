"""Two-factor enrollment endpoints for the authenticated user."""

from fastapi import APIRouter, Depends

from mfa_guard.dependencies import get_current_user, get_enrollment_service, get_qr_renderer
from mfa_guard.models.user import MFAState, User
from mfa_guard.schemas.mfa import (
    BackupCodesResponse,
    DisableTOTPRequest,
    MessageResponse,
    MFAStatusResponse,
    SetupTOTPResponse,
    VerifyTOTPRequest,
)
from mfa_guard.services.mfa_service import MFAEnrollmentService
from mfa_guard.services.ports import ProvisioningRenderer

router = APIRouter()


@router.post("/totp/setup", response_model=SetupTOTPResponse)
async def setup_totp(
    current_user: User = Depends(get_current_user),
    enrollment: MFAEnrollmentService = Depends(get_enrollment_service),
    renderer: ProvisioningRenderer = Depends(get_qr_renderer),
):
    """
    Start TOTP enrollment.

    Returns the new secret and a QR code for the authenticator app. TOTP is
    not enabled until the user confirms a code via ``/totp/verify``.
    """
    result = await enrollment.setup(current_user.id)
    return SetupTOTPResponse(
        secret=result.secret,
        qr_code=renderer.render(result.provisioning_uri),
        provisioning_uri=result.provisioning_uri,
        account=result.account,
        issuer=result.issuer,
    )


@router.post("/totp/verify", response_model=MessageResponse)
async def verify_totp(
    data: VerifyTOTPRequest,
    current_user: User = Depends(get_current_user),
    enrollment: MFAEnrollmentService = Depends(get_enrollment_service),
):
    """Confirm the provisioned secret; enables TOTP on first success."""
    result = await enrollment.verify(current_user.id, data.token)
    if result.already_enabled:
        return MessageResponse(message="TOTP token verified successfully.")
    return MessageResponse(message="TOTP successfully verified and enabled.")


@router.post("/totp/disable", response_model=MessageResponse)
async def disable_totp(
    data: DisableTOTPRequest,
    current_user: User = Depends(get_current_user),
    enrollment: MFAEnrollmentService = Depends(get_enrollment_service),
):
    """Disable TOTP. Requires the current password; clears the secret and backup codes."""
    await enrollment.disable(current_user.id, data.password)
    return MessageResponse(message="TOTP has been successfully disabled.")


@router.post("/backup-codes/generate", response_model=BackupCodesResponse)
async def generate_backup_codes(
    current_user: User = Depends(get_current_user),
    enrollment: MFAEnrollmentService = Depends(get_enrollment_service),
):
    """
    Generate a new set of backup codes.

    Invalidates any previously generated codes. The plaintext codes are only
    returned here, once.
    """
    codes = await enrollment.generate_backup_codes(current_user.id)
    return BackupCodesResponse(backup_codes=codes)


@router.get("/status", response_model=MFAStatusResponse)
async def get_mfa_status(
    current_user: User = Depends(get_current_user),
    enrollment: MFAEnrollmentService = Depends(get_enrollment_service),
):
    """Current enrollment state and how many backup codes are left."""
    mfa_status = await enrollment.status(current_user.id)
    return MFAStatusResponse(
        state=mfa_status.state,
        is_totp_enabled=mfa_status.state == MFAState.ENABLED,
        backup_codes_remaining=mfa_status.backup_codes_remaining,
        enabled_at=mfa_status.enabled_at,
    )
