"""
FastAPI dependencies for authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a dependency chain that enforces authentication, role-based
access control and the admin access gate:

  get_current_user (JWT -> User)
      ├── get_current_profile (User -> Profile)             [MEMBER role]
      │       └── get_session_context (-> SessionContext)   [ledger routes]
      └── require_admin (User -> User)                      [any admin role]
              ├── require_admin_ip       (IP allowlist only)
              └── require_admin_access   (IP allowlist + 2FA -> AdminSession)
                      ├── require_admin_writer  [ADMIN / SUPER_ADMIN]
                      └── require_super_admin   [SUPER_ADMIN]

Role-based access control:
  - MEMBER: Can only access their own accounts and data.
  - VIEWER / ADMIN / SUPER_ADMIN: Back-office staff. They are blocked from
    member banking endpoints and cannot move money; the /admin endpoints
    give them read access to everything, and ADMIN and SUPER_ADMIN can
    also manage privileged users. Only SUPER_ADMIN manages the IP allowlist.

FastAPI caches a dependency within one request, so a route that depends
on both require_admin and require_admin_access resolves the user once.
"""

import uuid
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.context import SessionContext
from unitedbank.database import get_db
from unitedbank.exceptions import IPNotAllowedError, TwoFactorRequiredError
from unitedbank.models.profile import Profile
from unitedbank.models.user import User, UserType
from unitedbank.security import decode_access_token
from unitedbank.services import (
    account_service,
    admin_access_service,
    ip_allowlist_service,
    privilege_service,
)
from unitedbank.services.admin_access_service import AdminAccessDecision, AdminAccessState


# The "Authorization: Bearer <token>" header. tokenUrl is used by
# Swagger UI's "Authorize" button.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Tokens that carry a scope (such as admin 2FA session tokens) are not
    login tokens and are rejected here.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None or "scope" in payload:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_current_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Get the Profile for the authenticated member.

    Raises:
        HTTPException 403: If the user holds an admin role.
        HTTPException 404: If the user has no profile.
    """
    if user.user_type.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot access member banking endpoints. "
                   "Use /admin/* endpoints instead.",
        )

    result = await db.execute(select(Profile).where(Profile.user_id == user.id))
    profile = result.scalar_one_or_none()

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    return profile


async def get_session_context(
    user: User = Depends(get_current_user),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """
    Everything the ledger needs to know about the caller: profile, primary
    account and privilege flags.

    Raises:
        HTTPException 404: If the member has no primary account.
    """
    account = await account_service.get_primary_account(db, profile.id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account found",
        )

    privileges = await privilege_service.get_privileges(db, profile.email or user.email)
    return SessionContext(user=user, profile=profile, account=account, privileges=privileges)


# ---------------------------------------------------------------------------
# Admin gate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AdminSession:
    user: User
    access: AdminAccessDecision

    @property
    def ip_address(self) -> str | None:
        return self.access.ip_address


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require one of the back-office roles.

    Raises:
        HTTPException 403: If the user is a member.
    """
    if not user.user_type.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


async def get_admin_ip(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> str | None:
    """The caller's IP as the allowlist sees it; None if it can't be found."""
    return await ip_allowlist_service.resolve_caller_ip(
        request.client.host if request.client else None,
        request.headers.get("x-forwarded-for"),
        allowlist=await ip_allowlist_service.get_active_entries(db),
    )


async def require_admin_ip(
    admin: User = Depends(require_admin),
    ip_address: str | None = Depends(get_admin_ip),
    db: AsyncSession = Depends(get_db),
) -> AdminSession:
    """
    IP allowlist step only. Guards the 2FA verification endpoint, which
    must be reachable before the session has passed 2FA.

    Raises:
        IPNotAllowedError: The caller's IP is not allowed.
    """
    decision = await admin_access_service.check_ip(db, admin, ip_address)
    if decision.state == AdminAccessState.IP_BLOCKED:
        raise IPNotAllowedError(ip_address)
    return AdminSession(user=admin, access=decision)


async def require_admin_access(
    admin: User = Depends(require_admin),
    ip_address: str | None = Depends(get_admin_ip),
    x_admin_2fa_token: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> AdminSession:
    """
    The full admin gate: IP allowlist, then 2FA.

    Raises:
        IPNotAllowedError: The caller's IP is not allowed.
        TwoFactorRequiredError: 2FA is enabled and X-Admin-2FA-Token is
            missing, expired or issued to someone else.
    """
    decision = await admin_access_service.evaluate(db, admin, ip_address, x_admin_2fa_token)
    if decision.state == AdminAccessState.IP_BLOCKED:
        raise IPNotAllowedError(ip_address)
    if decision.state == AdminAccessState.REQUIRES_2FA_VERIFICATION:
        raise TwoFactorRequiredError()
    return AdminSession(user=admin, access=decision)


async def require_admin_writer(
    session: AdminSession = Depends(require_admin_access),
) -> AdminSession:
    """Admin roles that may change back-office data (not VIEWER)."""
    if session.user.user_type not in (UserType.ADMIN, UserType.SUPER_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Read-only admin role",
        )
    return session


async def require_super_admin(
    session: AdminSession = Depends(require_admin_access),
) -> AdminSession:
    if session.user.user_type != UserType.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required",
        )
    return session
