"""
Pydantic schemas for User-related responses.

hashed_password is never included in any response schema.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserResponse(BaseModel):
    """Public representation of a User."""
    id: uuid.UUID
    email: EmailStr
    user_type: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
