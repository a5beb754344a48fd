"""
Pydantic schemas for transaction history, deposits, transfers and reversals.

All monetary amounts are in integer cents (e.g., $10.50 = 1050).
Transaction amounts are signed: negative means money left the account.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class TransactionResponse(BaseModel):
    """Public representation of a transaction."""
    id: uuid.UUID
    account_id: uuid.UUID
    type: str
    amount_cents: int
    fee_cents: int
    status: str
    description: str | None
    recipient_name: str | None
    recipient_account: str | None
    recipient_routing: str | None
    recipient_bank: str | None
    recipient_country: str | None
    reference_number: str
    transfer_pair_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class DepositRequest(BaseModel):
    """Request body for POST /deposits."""
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    description: str | None = Field(None, max_length=200)


class ExternalTransferRequest(BaseModel):
    """
    Request body for POST /transfers/external.

    Send to a bank in another country by setting recipient_country.
    """
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")
    recipient_name: str = Field(min_length=1, max_length=200)
    recipient_account: str = Field(pattern=r"^\d{4,17}$")
    recipient_routing: str = Field(pattern=r"^\d{9}$")
    recipient_bank: str = Field(min_length=1, max_length=200)
    recipient_country: str | None = Field(None, pattern=r"^[A-Z]{2}$")
    description: str | None = Field(None, max_length=200)


class InternalTransferRequest(BaseModel):
    """
    Request body for POST /transfers/internal.

    With verify_only the amount is ignored and nothing moves; the response
    carries the recipient's name for confirmation.
    """
    recipient_account_number: str = Field(pattern=r"^\d{10}$")
    amount_cents: int = Field(0, ge=0, description="Amount in cents")
    description: str | None = Field(None, max_length=200)
    verify_only: bool = False
    idempotency_key: str | None = Field(None, min_length=1, max_length=64)


class ReversalCreateRequest(BaseModel):
    """Request body for POST /reversals."""
    transaction_id: uuid.UUID
    reason: str | None = Field(None, max_length=255)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class LedgerResponse(BaseModel):
    """Outcome of a deposit, transfer or reversal."""
    message: str | None = None
    recipient_name: str | None = None
    new_balance_cents: int | None = None
    fee_cents: int = 0
    transactions: list[TransactionResponse] = []

    @classmethod
    def from_result(cls, result) -> "LedgerResponse":
        return cls(
            message=result.message,
            recipient_name=result.recipient_name,
            new_balance_cents=result.new_balance_cents,
            fee_cents=result.fee_cents,
            transactions=[TransactionResponse.model_validate(t) for t in result.transactions],
        )


class RecipientLookupResponse(BaseModel):
    status: Literal["found", "not_found", "self"]
    account_number: str
    recipient_name: str | None = None


class ReversalRequestResponse(BaseModel):
    id: uuid.UUID
    transaction_id: uuid.UUID
    account_id: uuid.UUID
    user_id: uuid.UUID
    amount_cents: int
    reason: str | None
    status: str
    processed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
