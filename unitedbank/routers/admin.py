"""
Admin router — back-office endpoints.

Every endpoint sits behind the full admin access gate (IP allowlist, then
2FA). Admins can view any account, balance or transaction but cannot move
money.

Read-only (any admin role):
  GET    /admin/accounts                           — List ALL accounts
  GET    /admin/accounts/{account_id}              — Get any account's details
  GET    /admin/accounts/{account_id}/balance      — Get any account's balance
  GET    /admin/accounts/{account_id}/transactions — List any account's transactions
  GET    /admin/transactions                       — List ALL transactions
  GET    /admin/transactions/{transaction_id}      — Get any transaction by ID
  GET    /admin/reversal-requests                  — Reversal requests
  GET    /admin/users                              — List ALL users
  GET    /admin/users/{user_id}/profile            — Get any user's profile
  GET    /admin/privileged-users                   — Privileged users
  GET    /admin/audit-logs                         — Admin activity, newest first

Privileged users (ADMIN / SUPER_ADMIN):
  POST   /admin/privileged-users
  PATCH  /admin/privileged-users/{id}
  DELETE /admin/privileged-users/{id}

IP allowlist (SUPER_ADMIN):
  GET    /admin/ip-whitelist
  POST   /admin/ip-whitelist
  PATCH  /admin/ip-whitelist/{id}
  DELETE /admin/ip-whitelist/{id}

All writes are recorded in the audit log, in the same transaction.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.database import get_db
from unitedbank.dependencies import (
    AdminSession,
    require_admin_access,
    require_admin_writer,
    require_super_admin,
)
from unitedbank.schemas.account import AccountResponse, BalanceResponse
from unitedbank.schemas.admin import (
    AuditLogResponse,
    IPWhitelistCreateRequest,
    IPWhitelistResponse,
    IPWhitelistToggleRequest,
    PrivilegedUserCreateRequest,
    PrivilegedUserResponse,
    PrivilegedUserUpdateRequest,
)
from unitedbank.schemas.profile import ProfileResponse
from unitedbank.schemas.transaction import ReversalRequestResponse, TransactionResponse
from unitedbank.schemas.user import UserResponse
from unitedbank.services import (
    account_service,
    audit_service,
    auth_service,
    ip_allowlist_service,
    privilege_service,
    transaction_service,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Account admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/accounts",
    response_model=list[AccountResponse],
    summary="[Admin] List all accounts",
)
async def admin_list_all_accounts(
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.admin_get_all_accounts(db)


@router.get(
    "/accounts/{account_id}",
    response_model=AccountResponse,
    summary="[Admin] Get any account's details",
)
async def admin_get_account(
    account_id: uuid.UUID,
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.admin_get_account(db, account_id)


@router.get(
    "/accounts/{account_id}/balance",
    response_model=BalanceResponse,
    summary="[Admin] Get any account's balance",
)
async def admin_get_balance(
    account_id: uuid.UUID,
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    """
    Get any account's balance without ownership check.

    Includes both stored and computed balance for integrity verification.
    """
    return await account_service.admin_get_balance(db, account_id)


@router.get(
    "/accounts/{account_id}/transactions",
    response_model=list[TransactionResponse],
    summary="[Admin] List any account's transactions",
)
async def admin_list_account_transactions(
    account_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.admin_get_account_transactions(
        db=db,
        account_id=account_id,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Transaction admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/transactions",
    response_model=list[TransactionResponse],
    summary="[Admin] List ALL transactions",
)
async def admin_list_all_transactions(
    status: str | None = Query(None, description="Filter by status"),
    type: str | None = Query(None, description="Filter by type"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    """
    List every transaction in the bank, newest first.

    Supports filtering by status (completed/reversed) and type
    (deposit/transfer/reversal), plus pagination.
    """
    return await transaction_service.admin_get_all_transactions(
        db=db,
        status_filter=status,
        type_filter=type,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="[Admin] Get any transaction by ID",
)
async def admin_get_transaction(
    transaction_id: uuid.UUID,
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.admin_get_transaction(
        db=db,
        transaction_id=transaction_id,
    )


@router.get(
    "/reversal-requests",
    response_model=list[ReversalRequestResponse],
    summary="[Admin] List reversal requests",
)
async def admin_list_reversal_requests(
    status: str | None = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.admin_get_reversal_requests(
        db=db,
        status_filter=status,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List all users",
)
async def admin_list_users(
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.admin_get_all_users(db)


@router.get(
    "/users/{user_id}/profile",
    response_model=ProfileResponse,
    summary="[Admin] Get any user's profile",
)
async def admin_get_user_profile(
    user_id: uuid.UUID,
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.admin_get_profile(db, user_id)


# ---------------------------------------------------------------------------
# Privileged users
# ---------------------------------------------------------------------------

@router.get(
    "/privileged-users",
    response_model=list[PrivilegedUserResponse],
    summary="[Admin] List privileged users",
)
async def list_privileged_users(
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await privilege_service.list_privileged_users(db)


@router.post(
    "/privileged-users",
    response_model=PrivilegedUserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Grant privileges to an email",
)
async def add_privileged_user(
    request: PrivilegedUserCreateRequest,
    session: AdminSession = Depends(require_admin_writer),
    db: AsyncSession = Depends(get_db),
):
    return await privilege_service.add_privileged_user(
        db,
        session.user,
        email=request.email,
        can_deposit=request.can_deposit,
        can_request_reversal=request.can_request_reversal,
        instant_reversal=request.instant_reversal,
        ip_address=session.ip_address,
    )


@router.patch(
    "/privileged-users/{privileged_user_id}",
    response_model=PrivilegedUserResponse,
    summary="[Admin] Change privilege flags",
)
async def update_privileged_user(
    privileged_user_id: uuid.UUID,
    request: PrivilegedUserUpdateRequest,
    session: AdminSession = Depends(require_admin_writer),
    db: AsyncSession = Depends(get_db),
):
    return await privilege_service.update_privileged_user(
        db,
        session.user,
        privileged_user_id,
        updates=request.model_dump(exclude_none=True),
        ip_address=session.ip_address,
    )


@router.delete(
    "/privileged-users/{privileged_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Revoke all privileges",
)
async def remove_privileged_user(
    privileged_user_id: uuid.UUID,
    session: AdminSession = Depends(require_admin_writer),
    db: AsyncSession = Depends(get_db),
):
    await privilege_service.remove_privileged_user(
        db,
        session.user,
        privileged_user_id,
        ip_address=session.ip_address,
    )


# ---------------------------------------------------------------------------
# IP allowlist
# ---------------------------------------------------------------------------

@router.get(
    "/ip-whitelist",
    response_model=list[IPWhitelistResponse],
    summary="[Super admin] List allowlist entries",
)
async def list_ip_whitelist(
    session: AdminSession = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ip_allowlist_service.list_entries(db)


@router.post(
    "/ip-whitelist",
    response_model=IPWhitelistResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Super admin] Allow an IP address or range",
)
async def add_ip_whitelist_entry(
    request: IPWhitelistCreateRequest,
    session: AdminSession = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ip_allowlist_service.add_entry(
        db,
        session.user,
        ip_address=request.ip_address,
        description=request.description,
        admin_ip=session.ip_address,
    )


@router.patch(
    "/ip-whitelist/{entry_id}",
    response_model=IPWhitelistResponse,
    summary="[Super admin] Enable or disable an allowlist entry",
)
async def toggle_ip_whitelist_entry(
    entry_id: uuid.UUID,
    request: IPWhitelistToggleRequest,
    session: AdminSession = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ip_allowlist_service.set_entry_active(
        db,
        session.user,
        entry_id,
        is_active=request.is_active,
        admin_ip=session.ip_address,
    )


@router.delete(
    "/ip-whitelist/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Super admin] Remove an allowlist entry",
)
async def remove_ip_whitelist_entry(
    entry_id: uuid.UUID,
    session: AdminSession = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await ip_allowlist_service.remove_entry(
        db,
        session.user,
        entry_id,
        admin_ip=session.ip_address,
    )


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

@router.get(
    "/audit-logs",
    response_model=list[AuditLogResponse],
    summary="[Admin] Admin activity log",
)
async def list_audit_logs(
    action_type: str | None = Query(None, description="Filter by action type"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AdminSession = Depends(require_admin_access),
    db: AsyncSession = Depends(get_db),
):
    return await audit_service.list_audit_logs(
        db,
        action_type=action_type,
        limit=limit,
        offset=offset,
    )
