"""
Ledger service — every operation that moves money.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Deposits (privileged callers only)
  - External transfers to other banks (with the 1.5% transfer fee)
  - Internal transfers between customers, and recipient lookup
  - Payment reversals (privileged callers only)

Every function takes an explicit SessionContext: the caller's user,
profile, primary account and privilege flags, resolved once per request.
Checks run in a fixed order and all of them happen before any balance is
touched:

    amount > 0  ->  privilege  ->  limit  ->  balance  ->  write

Atomicity:
  A balance change and its transaction row are flushed in the same
  database transaction (the request's session). Nothing is committed
  here; get_db commits when the route returns and rolls back on any
  exception, so a failed operation leaves no trace.

Notifications:
  Results carry the EmailNotification values to send. Routers schedule
  them as background tasks, which run after the commit, so an email is
  never sent for money that didn't move.
"""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.config import settings
from unitedbank.context import SessionContext
from unitedbank.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    PermissionDeniedError,
    ReversalFailedError,
    SelfTransferError,
    TransferFailedError,
    TransferLimitExceededError,
)
from unitedbank.models.account import Account
from unitedbank.models.profile import Profile
from unitedbank.models.transaction import Transaction
from unitedbank.services import account_service, procedures
from unitedbank.services.notification_service import EmailNotification


logger = logging.getLogger(__name__)


@dataclass
class LedgerResult:
    """Outcome of a ledger operation."""
    transactions: list[Transaction] = field(default_factory=list)
    notifications: list[EmailNotification] = field(default_factory=list)
    message: str | None = None
    recipient_name: str | None = None
    new_balance_cents: int | None = None
    fee_cents: int = 0

    @property
    def transaction(self) -> Transaction | None:
        """The row on the caller's own account."""
        return self.transactions[0] if self.transactions else None


# --- Recipient lookup outcomes ---

@dataclass(frozen=True)
class RecipientFound:
    name: str
    account_number: str


@dataclass(frozen=True)
class RecipientNotFound:
    account_number: str


@dataclass(frozen=True)
class SelfReference:
    account_number: str


RecipientLookup = RecipientFound | RecipientNotFound | SelfReference


# ---------------------------------------------------------------------------
# Fee and limit policy
# ---------------------------------------------------------------------------

def get_transfer_limit(tier: str | None = None, category: str | None = None) -> int:
    """
    Per-transaction transfer limit in cents.

    Every tier and category currently shares the same limit; the
    arguments are kept so callers don't change when that stops being true.
    """
    return settings.TRANSFER_LIMIT_CENTS


def compute_transfer_fee(amount_cents: int) -> int:
    """
    External transfer fee in cents, rounded half-up.

    With the default 150 basis points: 10000 -> 150, 33 -> 0, 34 -> 1.
    """
    bps = settings.TRANSFER_FEE_BASIS_POINTS
    return (amount_cents * bps + 5_000) // 10_000


def _check_amount(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise InvalidAmountError(amount_cents)


async def _lock_own_account(db: AsyncSession, ctx: SessionContext) -> Account:
    locked = await procedures.lock_accounts(db, ctx.account.id)
    return locked[ctx.account.id]


# ---------------------------------------------------------------------------
# deposit
# ---------------------------------------------------------------------------

async def deposit(
    db: AsyncSession,
    ctx: SessionContext,
    amount_cents: int,
    description: str | None = None,
) -> LedgerResult:
    """
    Credit the caller's primary account.

    Raises:
        InvalidAmountError: If amount_cents <= 0.
        PermissionDeniedError: If the caller doesn't hold can_deposit.
    """
    _check_amount(amount_cents)
    if not ctx.privileges.can_deposit:
        raise PermissionDeniedError("Unable to add money")

    account = await _lock_own_account(db, ctx)
    account.balance_cents += amount_cents

    txn = Transaction(
        account_id=account.id,
        type="deposit",
        amount_cents=amount_cents,
        status="completed",
        description=description or "Deposit",
        reference_number=procedures.generate_reference_number(),
    )
    db.add(txn)
    await db.flush()

    logger.info("Deposit of %d cents to account %s", amount_cents, account.id)

    result = LedgerResult(transactions=[txn], new_balance_cents=account.balance_cents)
    if ctx.email:
        result.notifications.append(EmailNotification(
            type="deposit",
            email=ctx.email,
            name=ctx.profile.display_name,
            amount_cents=amount_cents,
            description=txn.description,
            account_number=account.account_number,
            reference_number=txn.reference_number,
        ))
    return result


# ---------------------------------------------------------------------------
# external_transfer
# ---------------------------------------------------------------------------

async def external_transfer(
    db: AsyncSession,
    ctx: SessionContext,
    amount_cents: int,
    recipient_name: str,
    recipient_account: str,
    recipient_routing: str,
    recipient_bank: str,
    description: str | None = None,
    recipient_country: str | None = None,
) -> LedgerResult:
    """
    Send money to an account at another bank (domestic or international).

    The sender is debited the full amount. The bank keeps the fee and the
    recipient receives amount - fee; the fee is recorded in fee_cents and
    disclosed in the description.

    Account and routing number formats are enforced by the request
    schema before this is called.

    Raises:
        InvalidAmountError: If amount_cents <= 0.
        TransferLimitExceededError: If amount_cents is above the limit.
        InsufficientFundsError: If the balance doesn't cover amount_cents.
    """
    _check_amount(amount_cents)

    limit_cents = get_transfer_limit(ctx.account.tier, ctx.account.category)
    if amount_cents > limit_cents:
        raise TransferLimitExceededError(amount_cents, limit_cents)

    account = await _lock_own_account(db, ctx)
    if account.balance_cents < amount_cents:
        raise InsufficientFundsError(
            account_id=account.id,
            requested_cents=amount_cents,
            available_cents=account.balance_cents,
        )

    fee_cents = compute_transfer_fee(amount_cents)
    base_description = description or f"Transfer to {recipient_name}"

    account.balance_cents -= amount_cents
    txn = Transaction(
        account_id=account.id,
        type="transfer",
        amount_cents=-amount_cents,
        fee_cents=fee_cents,
        status="completed",
        description=f"{base_description} (Fee: ${fee_cents / 100:,.2f})",
        recipient_name=recipient_name,
        recipient_account=recipient_account,
        recipient_routing=recipient_routing,
        recipient_bank=recipient_bank,
        recipient_country=recipient_country,
        reference_number=procedures.generate_reference_number(),
    )
    db.add(txn)
    await db.flush()

    logger.info(
        "External transfer of %d cents (fee %d) from account %s",
        amount_cents, fee_cents, account.id,
    )

    result = LedgerResult(
        transactions=[txn],
        recipient_name=recipient_name,
        new_balance_cents=account.balance_cents,
        fee_cents=fee_cents,
        message=f"Successfully sent ${amount_cents / 100:,.2f} to {recipient_name}",
    )
    if ctx.email:
        result.notifications.append(EmailNotification(
            type="sent",
            email=ctx.email,
            name=ctx.profile.display_name,
            amount_cents=amount_cents,
            recipient_name=recipient_name,
            description=txn.description,
            account_number=account.account_number,
            reference_number=txn.reference_number,
        ))
    return result


# ---------------------------------------------------------------------------
# internal transfers
# ---------------------------------------------------------------------------

async def resolve_recipient(
    db: AsyncSession,
    ctx: SessionContext,
    account_number: str,
) -> RecipientLookup:
    """Look up who owns an account number, without moving any money."""
    account = await account_service.get_account_by_number(db, account_number)
    if account is None:
        return RecipientNotFound(account_number)
    if account.profile_id == ctx.profile.id:
        return SelfReference(account_number)

    profile = await db.get(Profile, account.profile_id)
    return RecipientFound(name=profile.display_name, account_number=account_number)


async def internal_transfer(
    db: AsyncSession,
    ctx: SessionContext,
    amount_cents: int,
    recipient_account_number: str,
    description: str | None = None,
    verify_only: bool = False,
    idempotency_key: str | None = None,
) -> LedgerResult:
    """
    Transfer to another United Bank customer by account number.

    With verify_only=True nothing moves: the recipient is looked up and
    its name returned so the client can confirm before sending.

    Raises:
        InvalidAmountError: If amount_cents <= 0 (not checked when verifying).
        AccountNotFoundError: verify_only and no such account.
        SelfTransferError: verify_only and the account is the caller's own.
        TransferFailedError: The transfer procedure refused; detail is its
            error text, e.g. "Insufficient funds".
    """
    if verify_only:
        lookup = await resolve_recipient(db, ctx, recipient_account_number)
        match lookup:
            case RecipientNotFound():
                raise AccountNotFoundError(recipient_account_number)
            case SelfReference():
                raise SelfTransferError()
            case RecipientFound(name=name):
                return LedgerResult(recipient_name=name)

    _check_amount(amount_cents)

    outcome = await procedures.internal_transfer(
        db,
        sender_profile_id=ctx.profile.id,
        recipient_account_number=recipient_account_number,
        amount_cents=amount_cents,
        description=description,
        idempotency_key=idempotency_key,
    )
    if not outcome.success:
        logger.info("Internal transfer from account %s refused: %s", ctx.account.id, outcome.error)
        raise TransferFailedError(outcome.error)

    debit_txn, credit_txn = outcome.transactions
    result = LedgerResult(
        transactions=list(outcome.transactions),
        message=outcome.message,
        recipient_name=outcome.recipient_name,
        new_balance_cents=outcome.new_balance_cents,
    )
    if outcome.replayed:
        # Emails went out with the original transfer
        return result

    if ctx.email:
        result.notifications.append(EmailNotification(
            type="sent",
            email=ctx.email,
            name=ctx.profile.display_name,
            amount_cents=amount_cents,
            recipient_name=outcome.recipient_name,
            description=debit_txn.description,
            account_number=ctx.account.account_number,
            reference_number=debit_txn.reference_number,
        ))

    recipient_profile = await _account_owner(db, credit_txn.account_id)
    if recipient_profile is not None and recipient_profile.email:
        result.notifications.append(EmailNotification(
            type="received",
            email=recipient_profile.email,
            name=recipient_profile.display_name,
            amount_cents=amount_cents,
            sender_name=ctx.profile.display_name,
            description=credit_txn.description,
            account_number=debit_txn.recipient_account,
            reference_number=credit_txn.reference_number,
        ))
    return result


async def _account_owner(db: AsyncSession, account_id: uuid.UUID) -> Profile | None:
    result = await db.execute(
        select(Profile)
        .join(Account, Account.profile_id == Profile.id)
        .where(Account.id == account_id)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# reversals
# ---------------------------------------------------------------------------

async def request_reversal(
    db: AsyncSession,
    ctx: SessionContext,
    transaction_id: uuid.UUID,
    reason: str | None = None,
) -> LedgerResult:
    """
    Reverse one of the caller's outgoing transfers.

    Raises:
        PermissionDeniedError: If the caller doesn't hold can_request_reversal.
        ReversalFailedError: The reversal procedure refused; detail is its
            error text, e.g. "Transaction already reversed".
    """
    if not ctx.privileges.can_request_reversal:
        raise PermissionDeniedError("Only authorized accounts can request payment reversals")

    outcome = await procedures.process_reversal(db, transaction_id, ctx.user.id, reason)
    if not outcome.success:
        logger.info("Reversal of %s refused: %s", transaction_id, outcome.error)
        raise ReversalFailedError(outcome.error)

    original = await db.get(Transaction, transaction_id)
    reversal_txn = outcome.transactions[0]
    reversed_account = await db.get(Account, reversal_txn.account_id)

    result = LedgerResult(
        transactions=list(outcome.transactions),
        message=outcome.message,
        new_balance_cents=outcome.new_balance_cents,
    )
    if ctx.email:
        result.notifications.append(EmailNotification(
            type="reversal",
            email=ctx.email,
            name=ctx.profile.display_name,
            amount_cents=abs(original.amount_cents),
            description="Payment Reversal Processed",
            account_number=reversed_account.account_number,
            reference_number=reversal_txn.reference_number,
            original_transaction=original.description or "Transfer",
        ))
    return result
