"""
ReversalRequest model — one row per reversed transaction.

The UNIQUE constraint on transaction_id is what makes a reversal
idempotent: a second attempt to reverse the same transaction collides
with the first request instead of crediting the account twice.

Status is "pending", "completed" or "rejected". Reversals run
synchronously, so requests are written as "completed" with processed_at
set; the other states exist for requests recorded by back-office tooling.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from unitedbank.database import Base


class ReversalRequest(Base):
    __tablename__ = "reversal_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("transactions.id"),
        unique=True,
        nullable=False,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Positive amount credited back
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="pending",
    )

    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
