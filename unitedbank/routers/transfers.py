"""
Transfers router — sending money out of your primary account.

Endpoints:
  POST /transfers/external                        — To an account at another bank
  GET  /transfers/recipients/{account_number}     — Who owns a United Bank account
  POST /transfers/internal                        — To another United Bank customer

External transfers carry a 1.5% fee kept by the bank; the recipient
receives the amount minus the fee. Internal transfers are free and create
two linked transactions, one on each account.

Only members can transfer (admins are blocked from member endpoints).
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.context import SessionContext
from unitedbank.database import get_db
from unitedbank.dependencies import get_session_context
from unitedbank.schemas.transaction import (
    ExternalTransferRequest,
    InternalTransferRequest,
    LedgerResponse,
    RecipientLookupResponse,
)
from unitedbank.services import ledger_service
from unitedbank.services.ledger_service import RecipientFound, RecipientNotFound, SelfReference
from unitedbank.services.notification_service import schedule_notifications

router = APIRouter()


@router.post(
    "/external",
    response_model=LedgerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer to another bank",
)
async def create_external_transfer(
    request: ExternalTransferRequest,
    background_tasks: BackgroundTasks,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Send money to an account at another bank, domestic or international.

    - **recipient_account**: 4 to 17 digits
    - **recipient_routing**: exactly 9 digits
    - **recipient_country**: ISO country code for international transfers
    - Rejected above the per-transaction limit ($2,000,000) or when the
      balance doesn't cover the amount
    """
    result = await ledger_service.external_transfer(
        db=db,
        ctx=ctx,
        amount_cents=request.amount_cents,
        recipient_name=request.recipient_name,
        recipient_account=request.recipient_account,
        recipient_routing=request.recipient_routing,
        recipient_bank=request.recipient_bank,
        description=request.description,
        recipient_country=request.recipient_country,
    )
    schedule_notifications(background_tasks, result.notifications)
    return LedgerResponse.from_result(result)


@router.get(
    "/recipients/{account_number}",
    response_model=RecipientLookupResponse,
    summary="Look up an internal transfer recipient",
)
async def lookup_recipient(
    account_number: str,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """Resolve an account number to its owner's name before sending money."""
    lookup = await ledger_service.resolve_recipient(db, ctx, account_number)
    match lookup:
        case RecipientFound(name=name):
            return RecipientLookupResponse(
                status="found", account_number=account_number, recipient_name=name
            )
        case RecipientNotFound():
            return RecipientLookupResponse(status="not_found", account_number=account_number)
        case SelfReference():
            return RecipientLookupResponse(status="self", account_number=account_number)


@router.post(
    "/internal",
    response_model=LedgerResponse,
    summary="Transfer to another United Bank customer",
)
async def create_internal_transfer(
    request: InternalTransferRequest,
    background_tasks: BackgroundTasks,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Transfer to another customer's account by account number.

    - **verify_only**: Check the recipient and return their name without
      moving any money
    - **idempotency_key**: Sending the same key again returns the first
      result instead of transferring twice
    """
    result = await ledger_service.internal_transfer(
        db=db,
        ctx=ctx,
        amount_cents=request.amount_cents,
        recipient_account_number=request.recipient_account_number,
        description=request.description,
        verify_only=request.verify_only,
        idempotency_key=request.idempotency_key,
    )
    schedule_notifications(background_tasks, result.notifications)
    return LedgerResponse.from_result(result)
