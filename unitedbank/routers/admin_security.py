"""
Admin security router — the access gate and two-factor authentication.

Endpoints:
  GET  /admin/access        — Where the caller stands in the gate (never 403s on gate state)
  GET  /admin/2fa/status    — Whether 2FA is on               [IP allowlist]
  POST /admin/2fa/verify    — Exchange a code for a 2FA token [IP allowlist]
  POST /admin/2fa/setup     — New secret + backup codes       [full gate]
  POST /admin/2fa/enable    — Confirm the first TOTP code     [full gate]
  POST /admin/2fa/disable   — Turn 2FA off with a valid code  [full gate]

The token from /admin/2fa/verify goes in the X-Admin-2FA-Token header of
every later admin request. It expires after ADMIN_2FA_SESSION_MINUTES.
"""

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.config import settings
from unitedbank.database import get_db
from unitedbank.dependencies import (
    AdminSession,
    get_admin_ip,
    require_admin,
    require_admin_access,
    require_admin_ip,
)
from unitedbank.models.user import User
from unitedbank.schemas.admin import (
    AdminAccessResponse,
    TwoFactorCodeRequest,
    TwoFactorSetupResponse,
    TwoFactorStatusResponse,
    TwoFactorVerifyResponse,
)
from unitedbank.services import admin_access_service, two_factor_service

router = APIRouter()


@router.get(
    "/access",
    response_model=AdminAccessResponse,
    summary="[Admin] Check admin access state",
)
async def get_access_state(
    admin: User = Depends(require_admin),
    ip_address: str | None = Depends(get_admin_ip),
    x_admin_2fa_token: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    """
    Run the access gate and report the resulting state instead of
    rejecting the request, so the client knows which screen to show:
    blocked, 2FA prompt, or the dashboard.
    """
    decision = await admin_access_service.evaluate(db, admin, ip_address, x_admin_2fa_token)
    return AdminAccessResponse(
        state=decision.state.value,
        ip_address=decision.ip_address,
        ip_allowed=decision.ip_allowed,
        super_admin_bypass=decision.super_admin_bypass,
        two_factor_enabled=decision.two_factor_enabled,
        granted=decision.granted,
    )


@router.get(
    "/2fa/status",
    response_model=TwoFactorStatusResponse,
    summary="[Admin] Two-factor status",
)
async def get_2fa_status(
    session: AdminSession = Depends(require_admin_ip),
    db: AsyncSession = Depends(get_db),
):
    record = await two_factor_service.get_2fa(db, session.user.id)
    if record is None:
        return TwoFactorStatusResponse(is_enabled=False)
    return TwoFactorStatusResponse(
        is_enabled=record.is_enabled,
        verified_at=record.verified_at,
        backup_codes_remaining=len(record.backup_codes or []),
    )


@router.post(
    "/2fa/verify",
    response_model=TwoFactorVerifyResponse,
    summary="[Admin] Verify a 2FA code",
)
async def verify_2fa(
    request: TwoFactorCodeRequest,
    session: AdminSession = Depends(require_admin_ip),
    db: AsyncSession = Depends(get_db),
):
    """
    Check a 6-digit TOTP code or an unused backup code.

    A backup code works once; it is removed when used.
    """
    token = await two_factor_service.validate_code(db, session.user, request.code)
    return TwoFactorVerifyResponse(
        two_factor_token=token,
        expires_in_minutes=settings.ADMIN_2FA_SESSION_MINUTES,
    )


@router.post(
    "/2fa/setup",
    response_model=TwoFactorSetupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Start 2FA setup",
)
async def setup_2fa(
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate a new TOTP secret and 8 backup codes.

    2FA stays off until /admin/2fa/enable confirms a code from the
    authenticator app. The secret and codes are only shown here.
    """
    setup = await two_factor_service.setup_2fa(db, session.user, admin_ip=session.ip_address)
    return TwoFactorSetupResponse(
        secret=setup.secret,
        provisioning_uri=setup.provisioning_uri,
        backup_codes=setup.backup_codes,
    )


@router.post(
    "/2fa/enable",
    response_model=TwoFactorStatusResponse,
    summary="[Admin] Enable 2FA",
)
async def enable_2fa(
    request: TwoFactorCodeRequest,
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    record = await two_factor_service.enable_2fa(
        db, session.user, request.code, admin_ip=session.ip_address
    )
    return TwoFactorStatusResponse(
        is_enabled=record.is_enabled,
        verified_at=record.verified_at,
        backup_codes_remaining=len(record.backup_codes or []),
    )


@router.post(
    "/2fa/disable",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Disable 2FA",
)
async def disable_2fa(
    request: TwoFactorCodeRequest,
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    await two_factor_service.disable_2fa(
        db, session.user, request.code, admin_ip=session.ip_address
    )
