"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts; the handlers registered here translate them into consistent
JSON responses: {"detail": "...", "error_type": "...", ...}.

Exception hierarchy:
    BankAPIError (base)
    ├── InvalidAmountError           — amount <= 0 (422)
    ├── InsufficientFundsError       — debit larger than balance (422)
    ├── TransferLimitExceededError   — amount above the per-transaction limit (422)
    ├── SelfTransferError            — internal transfer to own account (422)
    ├── TransferFailedError          — internal transfer procedure returned failure (422)
    ├── ReversalFailedError          — reversal procedure returned failure (422)
    ├── AccountNotFoundError         — account doesn't exist (404)
    ├── TransactionNotFoundError     — transaction doesn't exist (404)
    ├── UnauthorizedAccessError      — resource owned by someone else (403)
    ├── PermissionDeniedError        — privilege gate denial (403)
    ├── IPNotAllowedError            — admin IP allowlist denial (403)
    ├── TwoFactorRequiredError       — admin session has not passed 2FA (403)
    ├── InvalidTwoFactorCodeError    — wrong TOTP / backup code (400)
    ├── TwoFactorNotConfiguredError  — 2FA action without a 2FA record (409)
    ├── DuplicateEmailError          — signup with a used email (409)
    ├── DuplicatePrivilegedUserError — privileged user already exists (409)
    ├── InvalidIPEntryError          — malformed allowlist entry (422)
    └── InvalidCredentialsError      — bad login (401)
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all domain errors."""

    status_code: int = 400
    error_type: str = "bank_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def extra_content(self) -> dict:
        """Additional fields merged into the JSON error body."""
        return {}


# ---------------------------------------------------------------------------
# Ledger exceptions
# ---------------------------------------------------------------------------

class InvalidAmountError(BankAPIError):
    status_code = 422
    error_type = "invalid_amount"

    def __init__(self, amount_cents: int):
        self.amount_cents = amount_cents
        super().__init__("Amount must be greater than zero")


class InsufficientFundsError(BankAPIError):
    """
    Raised when a debit or transfer would cause a negative balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested_cents: The amount the user tried to debit.
        available_cents: The current balance of the account.
    """

    status_code = 422
    error_type = "insufficient_funds"

    def __init__(
        self,
        account_id: uuid.UUID,
        requested_cents: int,
        available_cents: int,
    ):
        self.account_id = account_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__("Insufficient funds")

    def extra_content(self) -> dict:
        return {
            "requested_cents": self.requested_cents,
            "available_cents": self.available_cents,
        }


class TransferLimitExceededError(BankAPIError):
    status_code = 422
    error_type = "transfer_limit_exceeded"

    def __init__(self, requested_cents: int, limit_cents: int):
        self.requested_cents = requested_cents
        self.limit_cents = limit_cents
        super().__init__(
            f"Transfer limit is ${limit_cents / 100:,.0f} per transaction"
        )

    def extra_content(self) -> dict:
        return {"limit_cents": self.limit_cents}


class SelfTransferError(BankAPIError):
    status_code = 422
    error_type = "self_transfer"

    def __init__(self):
        super().__init__("Cannot transfer to your own account")


class TransferFailedError(BankAPIError):
    """The internal transfer procedure reported failure; detail is its error text."""

    status_code = 422
    error_type = "transfer_failed"


class ReversalFailedError(BankAPIError):
    """The reversal procedure reported failure; detail is its error text."""

    status_code = 422
    error_type = "reversal_failed"


class AccountNotFoundError(BankAPIError):
    status_code = 404
    error_type = "account_not_found"

    def __init__(self, account_ref: uuid.UUID | str):
        self.account_ref = account_ref
        super().__init__(f"Account {account_ref} not found")


class UserNotFoundError(BankAPIError):
    status_code = 404
    error_type = "user_not_found"

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__("User not found")


class TransactionNotFoundError(BankAPIError):
    status_code = 404
    error_type = "transaction_not_found"

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__("Transaction not found")


# ---------------------------------------------------------------------------
# Authorization exceptions
# ---------------------------------------------------------------------------

class UnauthorizedAccessError(BankAPIError):
    """Raised when a user attempts to access a resource they don't own."""

    status_code = 403
    error_type = "unauthorized_access"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class PermissionDeniedError(BankAPIError):
    """Raised when the privilege gate refuses a sensitive mutation."""

    status_code = 403
    error_type = "permission_denied"


class IPNotAllowedError(BankAPIError):
    status_code = 403
    error_type = "ip_not_allowed"

    def __init__(self, ip_address: str | None):
        self.ip_address = ip_address
        super().__init__("Access from this IP address is not allowed")

    def extra_content(self) -> dict:
        return {"ip_address": self.ip_address}


class TwoFactorRequiredError(BankAPIError):
    status_code = 403
    error_type = "two_factor_required"

    def __init__(self):
        super().__init__("Two-factor verification required")


class InvalidTwoFactorCodeError(BankAPIError):
    status_code = 400
    error_type = "invalid_two_factor_code"

    def __init__(self):
        super().__init__("Invalid verification code")


class TwoFactorNotConfiguredError(BankAPIError):
    status_code = 409
    error_type = "two_factor_not_configured"

    def __init__(self, detail: str = "Two-factor authentication is not set up"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Registration / admin management exceptions
# ---------------------------------------------------------------------------

class DuplicateEmailError(BankAPIError):
    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class DuplicatePrivilegedUserError(BankAPIError):
    status_code = 409
    error_type = "duplicate_privileged_user"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"{email} is already a privileged user")


class InvalidIPEntryError(BankAPIError):
    status_code = 422
    error_type = "invalid_ip_entry"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"{value!r} is not an IPv4 address or CIDR range")


class InvalidCredentialsError(BankAPIError):
    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every BankAPIError subclass declares its own status code and error_type,
    so one handler covers the whole hierarchy.
    """

    @app.exception_handler(BankAPIError)
    async def bank_api_error_handler(
        request: Request, exc: BankAPIError
    ) -> JSONResponse:
        content = {"detail": exc.detail, "error_type": exc.error_type}
        content.update(exc.extra_content())
        return JSONResponse(status_code=exc.status_code, content=content)
