"""
Reversals router.

Endpoints:
  POST /reversals — Reverse one of your outgoing transfers

Only members holding the can_request_reversal privilege may reverse. A
transaction can be reversed once; reversals themselves can't be reversed.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.context import SessionContext
from unitedbank.database import get_db
from unitedbank.dependencies import get_session_context
from unitedbank.schemas.transaction import LedgerResponse, ReversalCreateRequest
from unitedbank.services import ledger_service
from unitedbank.services.notification_service import schedule_notifications

router = APIRouter()


@router.post(
    "",
    response_model=LedgerResponse,
    summary="Reverse a payment",
)
async def create_reversal(
    request: ReversalCreateRequest,
    background_tasks: BackgroundTasks,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit a transfer back to your account and mark it reversed.

    The full amount is returned, including any transfer fee.
    """
    result = await ledger_service.request_reversal(
        db=db,
        ctx=ctx,
        transaction_id=request.transaction_id,
        reason=request.reason,
    )
    schedule_notifications(background_tasks, result.notifications)
    return LedgerResponse.from_result(result)
