"""
Deposits router.

Endpoints:
  POST /deposits — Add money to your primary account

Only members holding the can_deposit privilege may deposit; everyone
else gets 403 "Unable to add money".
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.context import SessionContext
from unitedbank.database import get_db
from unitedbank.dependencies import get_session_context
from unitedbank.schemas.transaction import DepositRequest, LedgerResponse
from unitedbank.services import ledger_service
from unitedbank.services.notification_service import schedule_notifications

router = APIRouter()


@router.post(
    "",
    response_model=LedgerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit money",
)
async def create_deposit(
    request: DepositRequest,
    background_tasks: BackgroundTasks,
    ctx: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit your primary account.

    - **amount_cents**: Positive integer in cents (e.g., $50.00 = 5000)
    - **description**: Optional memo, defaults to "Deposit"
    """
    result = await ledger_service.deposit(
        db=db,
        ctx=ctx,
        amount_cents=request.amount_cents,
        description=request.description,
    )
    schedule_notifications(background_tasks, result.notifications)
    return LedgerResponse.from_result(result)
