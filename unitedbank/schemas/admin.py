"""
Pydantic schemas for the back-office: privileged users, IP allowlist,
audit log, and the admin access gate (including 2FA).
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


# --- Privileged users ---

class PrivilegedUserCreateRequest(BaseModel):
    email: EmailStr
    can_deposit: bool = False
    can_request_reversal: bool = False
    instant_reversal: bool = False


class PrivilegedUserUpdateRequest(BaseModel):
    """Only the flags that are sent are changed."""
    can_deposit: bool | None = None
    can_request_reversal: bool | None = None
    instant_reversal: bool | None = None


class PrivilegedUserResponse(BaseModel):
    id: uuid.UUID
    email: str
    can_deposit: bool
    can_request_reversal: bool
    instant_reversal: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# --- IP allowlist ---

class IPWhitelistCreateRequest(BaseModel):
    ip_address: str = Field(description="IPv4 address or IPv4 CIDR range")
    description: str | None = Field(None, max_length=255)


class IPWhitelistToggleRequest(BaseModel):
    is_active: bool


class IPWhitelistResponse(BaseModel):
    id: uuid.UUID
    ip_address: str
    description: str | None
    is_active: bool
    created_by: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Audit log ---

class AuditLogResponse(BaseModel):
    id: uuid.UUID
    admin_user_id: uuid.UUID
    action_type: str
    target_table: str
    target_id: str | None
    old_value: dict | None
    new_value: dict | None
    description: str
    ip_address: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Access gate and 2FA ---

class AdminAccessResponse(BaseModel):
    """Where the caller stands in the admin access gate."""
    state: str
    ip_address: str | None
    ip_allowed: bool
    super_admin_bypass: bool
    two_factor_enabled: bool
    granted: bool


class TwoFactorCodeRequest(BaseModel):
    code: str = Field(min_length=6, max_length=8)


class TwoFactorSetupResponse(BaseModel):
    """Returned once; the secret and backup codes are not shown again."""
    secret: str
    provisioning_uri: str
    backup_codes: list[str]


class TwoFactorStatusResponse(BaseModel):
    is_enabled: bool
    verified_at: datetime | None = None
    backup_codes_remaining: int = 0


class TwoFactorVerifyResponse(BaseModel):
    """Send the token back in the X-Admin-2FA-Token header."""
    two_factor_token: str
    token_type: str = "admin_2fa"
    expires_in_minutes: int
