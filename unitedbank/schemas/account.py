"""
Pydantic schemas for Account endpoints.

All monetary amounts are expressed in integer cents.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class AccountCreateRequest(BaseModel):
    """
    Request body for POST /accounts.

    Setting parent_account_id opens a sub-account under one of your own
    main accounts.
    """
    account_type: Literal["checking", "savings"] = Field(
        default="checking",
        description="Type of bank account to create",
    )
    parent_account_id: uuid.UUID | None = None
    sub_account_name: str | None = Field(None, max_length=100)


class AccountResponse(BaseModel):
    """Public representation of a bank account."""
    id: uuid.UUID
    profile_id: uuid.UUID
    account_type: str
    account_number: str
    routing_number: str
    balance_cents: int
    currency: str
    status: str
    tier: str
    category: str
    parent_account_id: uuid.UUID | None
    sub_account_name: str | None
    transfer_limit_cents: int
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    """
    Balance check response — includes both stored and computed values.

    `match` is False when the stored balance disagrees with the sum of
    the account's transaction rows, which indicates a data integrity issue.
    """
    account_id: uuid.UUID
    balance_cents: int
    computed_balance_cents: int
    match: bool
    currency: str
