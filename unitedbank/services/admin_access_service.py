"""
Admin access gate — IP allowlist check followed by two-factor verification.

States an admin request moves through:

    LOADING_IP ──► IP_BLOCKED                      (stop, 403)
        │
        └────────► IP_ALLOWED ──► NO_2FA_REQUIRED            (granted)
                        │
                        └───────► REQUIRES_2FA_VERIFICATION  (stop, 403)
                                        │
                                        └──► VERIFIED        (granted)

A super admin whose IP is not on the allowlist is let through the IP step
(and the bypass is logged) but still has to pass 2FA.

When the caller's IP can't be determined, or the allowlist has no active
entries, ADMIN_IP_FAIL_OPEN decides: off (the default) blocks.
"""

import dataclasses
import enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.config import settings
from unitedbank.models.user import User, UserType
from unitedbank.security import two_factor_token_subject
from unitedbank.services import ip_allowlist_service, two_factor_service


logger = logging.getLogger(__name__)


class AdminAccessState(str, enum.Enum):
    LOADING_IP = "loading_ip"
    IP_BLOCKED = "ip_blocked"
    IP_ALLOWED = "ip_allowed"
    REQUIRES_2FA_VERIFICATION = "requires_2fa_verification"
    VERIFIED = "verified"
    NO_2FA_REQUIRED = "no_2fa_required"


@dataclasses.dataclass(frozen=True)
class AdminAccessDecision:
    state: AdminAccessState
    ip_address: str | None = None
    ip_allowed: bool = False
    super_admin_bypass: bool = False
    two_factor_enabled: bool = False

    @property
    def granted(self) -> bool:
        return self.state in (AdminAccessState.VERIFIED, AdminAccessState.NO_2FA_REQUIRED)


async def check_ip(
    db: AsyncSession,
    admin: User,
    ip_address: str | None,
) -> AdminAccessDecision:
    """Run the IP step only. Ends in IP_ALLOWED or IP_BLOCKED."""
    decision = AdminAccessDecision(state=AdminAccessState.LOADING_IP, ip_address=ip_address)

    if ip_address is None:
        logger.warning(
            "Could not determine IP for admin %s; fail_open=%s",
            admin.id, settings.ADMIN_IP_FAIL_OPEN,
        )
        allowed = settings.ADMIN_IP_FAIL_OPEN
    else:
        entries = await ip_allowlist_service.get_active_entries(db)
        if not entries:
            logger.warning(
                "Admin IP allowlist is empty; fail_open=%s", settings.ADMIN_IP_FAIL_OPEN
            )
            allowed = settings.ADMIN_IP_FAIL_OPEN
        else:
            allowed = ip_allowlist_service.is_ip_allowed(ip_address, entries)

    if allowed:
        return dataclasses.replace(decision, state=AdminAccessState.IP_ALLOWED, ip_allowed=True)

    if admin.user_type == UserType.SUPER_ADMIN:
        logger.warning("Super admin %s bypassed IP allowlist from %s", admin.id, ip_address)
        return dataclasses.replace(
            decision, state=AdminAccessState.IP_ALLOWED, super_admin_bypass=True
        )

    logger.warning("Admin %s blocked from IP %s", admin.id, ip_address)
    return dataclasses.replace(decision, state=AdminAccessState.IP_BLOCKED)


async def evaluate(
    db: AsyncSession,
    admin: User,
    ip_address: str | None,
    two_factor_token: str | None = None,
) -> AdminAccessDecision:
    """
    Run the whole gate for one request.

    Args:
        db: Database session.
        admin: The authenticated admin or super admin.
        ip_address: The caller's resolved IP, None if it couldn't be found.
        two_factor_token: The X-Admin-2FA-Token header, if sent.
    """
    decision = await check_ip(db, admin, ip_address)
    if decision.state == AdminAccessState.IP_BLOCKED:
        return decision

    if not await two_factor_service.is_2fa_enabled(db, admin.id):
        return dataclasses.replace(decision, state=AdminAccessState.NO_2FA_REQUIRED)

    decision = dataclasses.replace(decision, two_factor_enabled=True)
    if two_factor_token and two_factor_token_subject(two_factor_token) == str(admin.id):
        return dataclasses.replace(decision, state=AdminAccessState.VERIFIED)

    return dataclasses.replace(decision, state=AdminAccessState.REQUIRES_2FA_VERIFICATION)
