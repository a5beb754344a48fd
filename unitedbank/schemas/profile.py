"""
Pydantic schemas for Profile endpoints.

The email is not editable here: it is what the privilege gate keys on.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ProfileResponse(BaseModel):
    """Public representation of a customer profile."""
    id: uuid.UUID
    full_name: str | None
    email: str | None
    phone: str | None
    country_code: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdateRequest(BaseModel):
    """Request body for PATCH /profile/me (all fields optional)."""
    full_name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=20)


class PrivilegesResponse(BaseModel):
    can_deposit: bool
    can_request_reversal: bool
    instant_reversal: bool

    model_config = {"from_attributes": True}
