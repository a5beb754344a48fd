"""
Accounts router — the member's own bank accounts and their history.

Endpoints (require JWT, scoped to the authenticated member):
  POST   /accounts                                  — Open an account or sub-account
  GET    /accounts                                  — List own accounts
  GET    /accounts/{account_id}                     — Get own account details
  GET    /accounts/{account_id}/balance             — Stored vs. computed balance
  GET    /accounts/{account_id}/transactions        — History, newest first
  GET    /accounts/{account_id}/transactions/{id}   — A single transaction

Admin views of every account live in the admin router.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.database import get_db
from unitedbank.dependencies import get_current_profile
from unitedbank.models.profile import Profile
from unitedbank.schemas.account import AccountCreateRequest, AccountResponse, BalanceResponse
from unitedbank.schemas.transaction import TransactionResponse
from unitedbank.services import account_service, transaction_service

router = APIRouter()


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new bank account",
)
async def create_account(
    request: AccountCreateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """
    Open a checking or savings account with a zero balance.

    Pass parent_account_id to open a sub-account under one of your main
    accounts. Sub-accounts can't have sub-accounts of their own.
    """
    try:
        return await account_service.create_account(
            db=db,
            profile_id=profile.id,
            account_type=request.account_type,
            parent_account_id=request.parent_account_id,
            sub_account_name=request.sub_account_name,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail=str(exc),
        )


@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List your accounts",
)
async def list_accounts(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    return await account_service.get_accounts(db, profile.id)


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
)
async def get_account(
    account_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """
    Get details for a specific account.

    Returns 403 if the account belongs to a different member, or 404 if
    the account doesn't exist.
    """
    return await account_service.get_account(db, account_id, profile.id)


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponse,
    summary="Check account balance",
)
async def get_balance(
    account_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the stored balance alongside the sum of all transaction rows.

    `match` is False if the two disagree.
    """
    return await account_service.get_balance(db, account_id, profile.id)


@router.get(
    "/{account_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List transactions for an account",
)
async def list_transactions(
    account_id: uuid.UUID,
    status: str | None = Query(None, description="Filter by status: completed, reversed"),
    type: str | None = Query(None, description="Filter by type: deposit, transfer, reversal"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """List transactions for one of your accounts, newest first."""
    return await transaction_service.list_transactions(
        db=db,
        account_id=account_id,
        profile_id=profile.id,
        status_filter=status,
        type_filter=type,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{account_id}/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    account_id: uuid.UUID,
    transaction_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(
        db=db,
        account_id=account_id,
        transaction_id=transaction_id,
        profile_id=profile.id,
    )
