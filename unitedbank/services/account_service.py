"""
Account service — business logic for bank account operations.

This module handles:
  - Account creation (unique account number, optional parent link)
  - Account retrieval (single, list, primary, by account number)
  - Balance verification (stored balance vs. sum of transaction rows)

Ownership enforcement:
  Member-facing functions accept a `profile_id` — always the authenticated
  user's profile, set by the dependency layer — and scope every query to it.

Admin access:
  Functions prefixed with `admin_` do NOT scope by profile. The router
  layer enforces that only admins who passed the access gate call them.
"""

import random
import string
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.exceptions import AccountNotFoundError, UnauthorizedAccessError
from unitedbank.models.account import Account
from unitedbank.models.transaction import Transaction


def _generate_account_number() -> str:
    """Generate a random 10-digit account number."""
    return "".join(random.choices(string.digits, k=10))


async def create_account(
    db: AsyncSession,
    profile_id: uuid.UUID,
    account_type: str = "checking",
    tier: str = "free",
    category: str = "personal",
    parent_account_id: uuid.UUID | None = None,
    sub_account_name: str | None = None,
) -> Account:
    """
    Create a new bank account for a profile, with a zero balance.

    When parent_account_id is given the new account is a sub-account.
    The parent must exist, belong to the same profile, and must not be a
    sub-account itself.

    Raises:
        AccountNotFoundError: If the parent account doesn't exist.
        UnauthorizedAccessError: If the parent belongs to another profile.
        ValueError: If the parent is itself a sub-account.
    """
    if parent_account_id is not None:
        parent = await db.get(Account, parent_account_id)
        if parent is None:
            raise AccountNotFoundError(parent_account_id)
        if parent.profile_id != profile_id:
            raise UnauthorizedAccessError("You do not have access to the parent account")
        if parent.is_sub_account:
            raise ValueError("Sub-accounts cannot have sub-accounts")

    # Retry on collision, extremely unlikely with 10 random digits
    for _ in range(10):
        account_number = _generate_account_number()
        existing = await db.execute(
            select(Account).where(Account.account_number == account_number)
        )
        if existing.scalar_one_or_none() is None:
            break
    else:
        raise RuntimeError("Failed to generate a unique account number")

    account = Account(
        profile_id=profile_id,
        account_type=account_type,
        account_number=account_number,
        tier=tier,
        category=category,
        parent_account_id=parent_account_id,
        sub_account_name=sub_account_name,
    )
    db.add(account)
    await db.flush()
    return account


async def get_accounts(
    db: AsyncSession,
    profile_id: uuid.UUID,
) -> list[Account]:
    """List all accounts belonging to a profile, oldest first."""
    result = await db.execute(
        select(Account)
        .where(Account.profile_id == profile_id)
        .order_by(Account.created_at)
    )
    return list(result.scalars().all())


async def get_primary_account(
    db: AsyncSession,
    profile_id: uuid.UUID,
) -> Account | None:
    """
    The profile's main account: its oldest account that is not a sub-account.

    Deposits and transfers always act on this account.
    """
    result = await db.execute(
        select(Account)
        .where(Account.profile_id == profile_id)
        .where(Account.parent_account_id.is_(None))
        .order_by(Account.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_account(
    db: AsyncSession,
    account_id: uuid.UUID,
    profile_id: uuid.UUID,
) -> Account:
    """
    Get a single account, verifying ownership.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
        UnauthorizedAccessError: If the account belongs to someone else.
    """
    account = await db.get(Account, account_id)

    if account is None:
        raise AccountNotFoundError(account_id)

    if account.profile_id != profile_id:
        raise UnauthorizedAccessError("You do not have access to this account")

    return account


async def get_account_by_number(
    db: AsyncSession,
    account_number: str,
) -> Account | None:
    result = await db.execute(
        select(Account).where(Account.account_number == account_number)
    )
    return result.scalar_one_or_none()


async def get_balance(
    db: AsyncSession,
    account_id: uuid.UUID,
    profile_id: uuid.UUID,
) -> dict:
    """
    Get the account balance — both stored and computed from transactions.

    A mismatch between the two signals that a balance was changed without
    a matching transaction row.
    """
    account = await get_account(db, account_id, profile_id)
    return await _balance_report(db, account)


async def _compute_balance_from_transactions(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> int:
    """
    Sum every transaction row on the account.

    Amounts are signed, and a reversed row keeps its original amount while
    the matching "reversal" row credits it back, so a plain sum is exact.
    """
    result = await db.execute(
        select(func.coalesce(func.sum(Transaction.amount_cents), 0))
        .where(Transaction.account_id == account_id)
    )
    return result.scalar()


async def _balance_report(db: AsyncSession, account: Account) -> dict:
    computed_balance_cents = await _compute_balance_from_transactions(db, account.id)
    return {
        "account_id": account.id,
        "balance_cents": account.balance_cents,
        "computed_balance_cents": computed_balance_cents,
        "match": account.balance_cents == computed_balance_cents,
        "currency": account.currency,
    }


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_get_all_accounts(db: AsyncSession) -> list[Account]:
    """[ADMIN ONLY] List all accounts, newest first."""
    result = await db.execute(select(Account).order_by(Account.created_at.desc()))
    return list(result.scalars().all())


async def admin_get_account(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> Account:
    """[ADMIN ONLY] Get any account by ID without ownership check."""
    account = await db.get(Account, account_id)

    if account is None:
        raise AccountNotFoundError(account_id)

    return account


async def admin_get_balance(
    db: AsyncSession,
    account_id: uuid.UUID,
) -> dict:
    """[ADMIN ONLY] Get any account's balance without ownership check."""
    account = await admin_get_account(db, account_id)
    return await _balance_report(db, account)
