"""
Server-side ledger procedures: internal transfers and payment reversals.

These two operations touch more than one row that other requests may be
changing at the same time, so they are written as self-contained
procedures with a fixed locking discipline:

Atomicity:
  Everything runs in the caller's session, i.e. the request's single
  database transaction. Balance updates and transaction rows are flushed
  together and commit together; any exception rolls all of it back.

Lock ordering:
  Every account row that will be written is locked with
  SELECT ... FOR UPDATE in ascending id order. Two opposite transfers
  between A and B therefore both lock min(A, B) first, and neither can
  hold one lock while waiting on the other. populate_existing re-reads
  the balance after the lock is granted.

  SQLite ignores FOR UPDATE; its database-level write lock serializes
  writers instead. On PostgreSQL the same code takes row locks.

Idempotency:
  - internal_transfer accepts an optional idempotency key stored on the
    sender's debit row (unique per account). A replay returns the original
    result without moving money again.
    Two requests racing with the same key both miss the replay check; the
    loser's insert hits the unique constraint inside a SAVEPOINT
    (begin_nested), which is rolled back and answered as a replay.
  - process_reversal is guarded by the unique transaction_id on
    reversal_requests and by the "reversed" status of the original row.

Both procedures report business failures as ProcedureResult(success=False,
error=...) rather than raising; the ledger service turns those into typed
errors carrying the text unchanged.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.models.account import Account
from unitedbank.models.profile import Profile
from unitedbank.models.reversal_request import ReversalRequest
from unitedbank.models.transaction import Transaction
from unitedbank.services import account_service


logger = logging.getLogger(__name__)

SELF_TRANSFER_ERROR = "Cannot transfer to your own account"


@dataclass(frozen=True)
class ProcedureResult:
    success: bool
    error: str | None = None
    message: str | None = None
    recipient_name: str | None = None
    new_balance_cents: int | None = None
    transactions: tuple[Transaction, ...] = ()
    # True when an idempotency key matched an earlier transfer
    replayed: bool = False


def _failure(error: str) -> ProcedureResult:
    return ProcedureResult(success=False, error=error)


def generate_reference_number() -> str:
    """Customer-facing transaction reference, e.g. "TXN3F9A0C1B22D7"."""
    return "TXN" + secrets.token_hex(6).upper()


async def lock_accounts(db: AsyncSession, *account_ids: uuid.UUID) -> dict[uuid.UUID, Account]:
    """
    Lock the given account rows in ascending id order and return them by id.

    Raises:
        LookupError: If one of the accounts no longer exists.
    """
    locked = {}
    for account_id in sorted(set(account_ids)):
        result = await db.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise LookupError(f"Account {account_id} disappeared while locking")
        locked[account_id] = account
    return locked


async def _profile_name(db: AsyncSession, profile_id: uuid.UUID) -> str:
    profile = await db.get(Profile, profile_id)
    return profile.display_name if profile else "Valued Customer"


# ---------------------------------------------------------------------------
# internal_transfer
# ---------------------------------------------------------------------------

async def internal_transfer(
    db: AsyncSession,
    sender_profile_id: uuid.UUID,
    recipient_account_number: str,
    amount_cents: int,
    description: str | None = None,
    idempotency_key: str | None = None,
) -> ProcedureResult:
    """
    Move money from the sender's primary account to another customer's account.

    Creates two "transfer" rows linked by transfer_pair_id: a negative one
    on the sender and a positive one on the recipient.
    """
    if amount_cents <= 0:
        return _failure("Invalid amount")

    sender_account = await account_service.get_primary_account(db, sender_profile_id)
    if sender_account is None:
        return _failure("Sender account not found")

    if idempotency_key:
        replay = await _replay_internal_transfer(db, sender_account, idempotency_key)
        if replay is not None:
            return replay

    recipient_account = await account_service.get_account_by_number(db, recipient_account_number)
    if recipient_account is None:
        return _failure("Recipient account not found")
    if recipient_account.profile_id == sender_profile_id:
        return _failure(SELF_TRANSFER_ERROR)
    if recipient_account.status != "active":
        return _failure("Recipient account is not active")

    locked = await lock_accounts(db, sender_account.id, recipient_account.id)
    sender = locked[sender_account.id]
    recipient = locked[recipient_account.id]

    if sender.balance_cents < amount_cents:
        return _failure("Insufficient funds")

    sender_name = await _profile_name(db, sender.profile_id)
    recipient_name = await _profile_name(db, recipient.profile_id)

    transfer_pair_id = uuid.uuid4()
    try:
        async with db.begin_nested():
            sender.balance_cents -= amount_cents
            recipient.balance_cents += amount_cents

            debit_txn = Transaction(
                account_id=sender.id,
                type="transfer",
                amount_cents=-amount_cents,
                status="completed",
                description=description or f"Transfer to {recipient_name}",
                recipient_name=recipient_name,
                recipient_account=recipient.account_number,
                recipient_routing=recipient.routing_number,
                reference_number=generate_reference_number(),
                transfer_pair_id=transfer_pair_id,
                idempotency_key=idempotency_key,
            )
            credit_txn = Transaction(
                account_id=recipient.id,
                type="transfer",
                amount_cents=amount_cents,
                status="completed",
                description=description or f"Transfer from {sender_name}",
                recipient_name=sender_name,
                recipient_account=sender.account_number,
                recipient_routing=sender.routing_number,
                reference_number=generate_reference_number(),
                transfer_pair_id=transfer_pair_id,
            )
            db.add_all([debit_txn, credit_txn])
            await db.flush()
    except IntegrityError:
        if not idempotency_key:
            raise
        replay = await _replay_internal_transfer(db, sender_account, idempotency_key)
        if replay is None:
            raise
        return replay

    logger.info(
        "Internal transfer %s: %d cents from account %s to account %s",
        transfer_pair_id, amount_cents, sender.id, recipient.id,
    )
    return ProcedureResult(
        success=True,
        recipient_name=recipient_name,
        message=f"Successfully transferred ${amount_cents / 100:,.2f} to {recipient_name}",
        new_balance_cents=sender.balance_cents,
        transactions=(debit_txn, credit_txn),
    )


async def _replay_internal_transfer(
    db: AsyncSession,
    sender_account: Account,
    idempotency_key: str,
) -> ProcedureResult | None:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.account_id == sender_account.id)
        .where(Transaction.idempotency_key == idempotency_key)
    )
    debit_txn = result.scalar_one_or_none()
    if debit_txn is None:
        return None

    pair_result = await db.execute(
        select(Transaction)
        .where(Transaction.transfer_pair_id == debit_txn.transfer_pair_id)
        .where(Transaction.type == "transfer")
        .where(Transaction.id != debit_txn.id)
    )
    credit_txn = pair_result.scalar_one()
    # The savepoint rollback after a lost race expires the account
    await db.refresh(sender_account)

    logger.info("Replayed internal transfer %s for key %s", debit_txn.transfer_pair_id, idempotency_key)
    return ProcedureResult(
        success=True,
        recipient_name=debit_txn.recipient_name,
        message="Transfer already processed",
        new_balance_cents=sender_account.balance_cents,
        transactions=(debit_txn, credit_txn),
        replayed=True,
    )


# ---------------------------------------------------------------------------
# process_reversal
# ---------------------------------------------------------------------------

async def process_reversal(
    db: AsyncSession,
    transaction_id: uuid.UUID,
    user_id: uuid.UUID,
    reason: str | None = None,
) -> ProcedureResult:
    """
    Reverse one of the user's own outgoing transfers.

    The sender's account is credited the full original amount (fee
    included) and the original row becomes "reversed". When the original
    was an internal transfer, the recipient's leg is reversed as well:
    the recipient is debited and their row is also marked "reversed", so
    no money is created. A ReversalRequest row records the outcome.
    """
    txn = await db.get(Transaction, transaction_id)
    if txn is None:
        return _failure("Transaction not found")

    account = await db.get(Account, txn.account_id)
    owner = await db.get(Profile, account.profile_id)
    if owner is None or owner.user_id != user_id:
        # Don't reveal that someone else's transaction exists
        return _failure("Transaction not found")

    existing = await db.execute(
        select(ReversalRequest).where(ReversalRequest.transaction_id == txn.id)
    )
    if txn.status == "reversed" or existing.scalar_one_or_none() is not None:
        return _failure("Transaction already reversed")

    if txn.type != "transfer" or txn.amount_cents >= 0 or txn.status != "completed":
        return _failure("Transaction cannot be reversed")

    counterpart = None
    if txn.transfer_pair_id is not None:
        pair_result = await db.execute(
            select(Transaction)
            .where(Transaction.transfer_pair_id == txn.transfer_pair_id)
            .where(Transaction.type == "transfer")
            .where(Transaction.id != txn.id)
        )
        counterpart = pair_result.scalar_one_or_none()

    account_ids = [txn.account_id]
    if counterpart is not None:
        account_ids.append(counterpart.account_id)
    locked = await lock_accounts(db, *account_ids)
    sender = locked[txn.account_id]

    credit_cents = -txn.amount_cents
    original_description = txn.description or "Transfer"
    reversal_rows = []

    if counterpart is not None:
        recipient = locked[counterpart.account_id]
        if recipient.balance_cents < credit_cents:
            return _failure("Recipient has insufficient funds for reversal")
        recipient.balance_cents -= credit_cents
        counterpart.status = "reversed"
        reversal_rows.append(Transaction(
            account_id=recipient.id,
            type="reversal",
            amount_cents=-credit_cents,
            status="completed",
            description=f"Reversal: {counterpart.description or 'Transfer'}",
            recipient_name=counterpart.recipient_name,
            recipient_account=counterpart.recipient_account,
            reference_number=generate_reference_number(),
            transfer_pair_id=txn.transfer_pair_id,
        ))

    sender.balance_cents += credit_cents
    txn.status = "reversed"
    sender_reversal = Transaction(
        account_id=sender.id,
        type="reversal",
        amount_cents=credit_cents,
        status="completed",
        description=f"Reversal: {original_description}",
        recipient_name=txn.recipient_name,
        recipient_account=txn.recipient_account,
        reference_number=generate_reference_number(),
        transfer_pair_id=txn.transfer_pair_id,
    )
    reversal_rows.insert(0, sender_reversal)

    request = ReversalRequest(
        transaction_id=txn.id,
        account_id=sender.id,
        user_id=user_id,
        amount_cents=credit_cents,
        reason=reason,
        status="completed",
        processed_at=datetime.now(timezone.utc),
    )
    db.add_all([*reversal_rows, request])
    await db.flush()

    logger.info(
        "Reversed transaction %s: %d cents back to account %s",
        txn.id, credit_cents, sender.id,
    )
    return ProcedureResult(
        success=True,
        message=f"Payment of ${credit_cents / 100:,.2f} reversed successfully",
        new_balance_cents=sender.balance_cents,
        transactions=tuple(reversal_rows),
    )
