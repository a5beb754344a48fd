"""
Profile router — the member's own customer profile and privileges.

Endpoints:
  GET   /profile/me             — Get current member's profile
  PATCH /profile/me             — Update name or phone
  GET   /profile/me/privileges  — Capability flags (deposit, reversal)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.context import SessionContext
from unitedbank.database import get_db
from unitedbank.dependencies import get_current_profile, get_session_context
from unitedbank.models.profile import Profile
from unitedbank.schemas.profile import PrivilegesResponse, ProfileResponse, ProfileUpdateRequest

router = APIRouter()


@router.get(
    "/me",
    response_model=ProfileResponse,
    summary="Get current member's profile",
)
async def get_my_profile(
    profile: Profile = Depends(get_current_profile),
):
    return profile


@router.patch(
    "/me",
    response_model=ProfileResponse,
    summary="Update profile fields",
)
async def update_my_profile(
    updates: ProfileUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the authenticated member's profile.

    Only fields the client sends are updated (PATCH semantics).
    """
    update_data = updates.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        setattr(profile, field, value)

    await db.flush()
    return profile


@router.get(
    "/me/privileges",
    response_model=PrivilegesResponse,
    summary="Get current member's privileges",
)
async def get_my_privileges(
    ctx: SessionContext = Depends(get_session_context),
):
    """
    What the member is allowed to do beyond ordinary transfers.

    Clients use this to decide whether to show the deposit and reversal
    actions; the ledger enforces the same flags on every request.
    """
    return ctx.privileges
