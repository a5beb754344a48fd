"""
Account model — a bank account owned by a Profile.

Each account has:
  - A unique 10-digit account number and the bank's 9-digit routing number
  - A balance in integer cents (e.g., $10.50 = 1050)
  - Tier (free / plus / pro / enterprise) and category (personal / business)
  - A per-transaction transfer limit in cents
  - An optional parent account: sub-accounts point at the account they
    were opened under. The parent must exist and must not itself be a
    sub-account.

Balance management:
  balance_cents is only changed by the ledger operations in
  ledger_service / procedures, always together with a Transaction row in
  the same database transaction. A CHECK constraint keeps it non-negative
  as a final safety net behind the application-level balance checks.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unitedbank.config import settings
from unitedbank.database import Base


ACCOUNT_TIERS = ("free", "plus", "pro", "enterprise")
ACCOUNT_CATEGORIES = ("personal", "business")


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )

    account_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="checking",
    )

    account_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
    )

    routing_number: Mapped[str] = mapped_column(
        String(9),
        nullable=False,
        default=lambda: settings.ROUTING_NUMBER,
    )

    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # ISO 4217 currency code
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
    )

    # "active", "frozen" or "closed"
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="active",
    )

    tier: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
        default="free",
    )

    category: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="personal",
    )

    parent_account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
    )

    sub_account_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    transfer_limit_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=lambda: settings.TRANSFER_LIMIT_CENTS,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    profile: Mapped["Profile"] = relationship(
        back_populates="accounts",
    )

    @property
    def is_sub_account(self) -> bool:
        return self.parent_account_id is not None
