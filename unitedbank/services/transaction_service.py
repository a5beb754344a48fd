"""
Transaction service — read access to the ledger.

Writes live in ledger_service and procedures; this module only lists and
fetches rows.

Member functions verify account ownership first. Functions prefixed with
`admin_` provide read access to every transaction without ownership
scoping and are called only from admin endpoints behind the access gate.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.exceptions import AccountNotFoundError, TransactionNotFoundError
from unitedbank.models.account import Account
from unitedbank.models.reversal_request import ReversalRequest
from unitedbank.models.transaction import Transaction
from unitedbank.services.account_service import get_account


async def list_transactions(
    db: AsyncSession,
    account_id: uuid.UUID,
    profile_id: uuid.UUID,
    status_filter: str | None = None,
    type_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """
    List transactions for an account, newest first.

    Args:
        db: Database session.
        account_id: The account to query transactions for.
        profile_id: For ownership verification.
        status_filter: Optional filter by status ("completed", "reversed").
        type_filter: Optional filter by type ("deposit", "transfer", "reversal").
        limit: Max number of results (default 50).
        offset: Number of results to skip (for pagination).
    """
    await get_account(db, account_id, profile_id)

    query = (
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if type_filter:
        query = query.where(Transaction.type == type_filter)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_transaction(
    db: AsyncSession,
    account_id: uuid.UUID,
    transaction_id: uuid.UUID,
    profile_id: uuid.UUID,
) -> Transaction:
    """
    Get a single transaction by ID, verifying account ownership.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
        UnauthorizedAccessError: If the account belongs to someone else.
        TransactionNotFoundError: If the transaction isn't on this account.
    """
    await get_account(db, account_id, profile_id)

    result = await db.execute(
        select(Transaction)
        .where(Transaction.id == transaction_id)
        .where(Transaction.account_id == account_id)
    )
    txn = result.scalar_one_or_none()

    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    return txn


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_get_all_transactions(
    db: AsyncSession,
    status_filter: str | None = None,
    type_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """[ADMIN ONLY] List every transaction in the bank, newest first."""
    query = (
        select(Transaction)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if status_filter:
        query = query.where(Transaction.status == status_filter)
    if type_filter:
        query = query.where(Transaction.type == type_filter)

    result = await db.execute(query)
    return list(result.scalars().all())


async def admin_get_account_transactions(
    db: AsyncSession,
    account_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
) -> list[Transaction]:
    """[ADMIN ONLY] List all transactions for any account without ownership check."""
    if await db.get(Account, account_id) is None:
        raise AccountNotFoundError(account_id)

    result = await db.execute(
        select(Transaction)
        .where(Transaction.account_id == account_id)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def admin_get_transaction(
    db: AsyncSession,
    transaction_id: uuid.UUID,
) -> Transaction:
    txn = await db.get(Transaction, transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


async def admin_get_reversal_requests(
    db: AsyncSession,
    status_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[ReversalRequest]:
    """[ADMIN ONLY] Reversal requests, newest first."""
    query = (
        select(ReversalRequest)
        .order_by(ReversalRequest.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if status_filter:
        query = query.where(ReversalRequest.status == status_filter)

    result = await db.execute(query)
    return list(result.scalars().all())
