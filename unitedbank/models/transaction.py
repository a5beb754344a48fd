"""
Transaction model — the append-only record of every balance change.

Each row belongs to exactly one account and carries a SIGNED amount in
cents: positive for money in (deposits, incoming transfers, reversals),
negative for money out (outgoing transfers).

  - A deposit creates one positive "deposit" row
  - An external transfer creates one negative "transfer" row on the sender;
    the recipient lives at another bank. fee_cents records the 1.5% fee
    kept by the bank out of the amount sent.
  - An internal transfer creates two "transfer" rows, negative on the
    sender and positive on the recipient, linked by transfer_pair_id
  - A reversal creates one positive "reversal" row and flips the original
    row's status from "completed" to "reversed". Reversing an internal
    transfer also reverses the recipient's leg: a negative "reversal" row
    on the recipient, and that leg is marked "reversed" too

Rows are never deleted and, apart from that single status transition,
never updated.

idempotency_key is optional. When a client supplies one for an internal
transfer, replaying the request returns the original result instead of
moving the money twice.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from unitedbank.database import Base


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount_cents <> 0", name="ck_transactions_nonzero_amount"),
        CheckConstraint("fee_cents >= 0", name="ck_transactions_non_negative_fee"),
        UniqueConstraint(
            "account_id", "idempotency_key",
            name="uq_transactions_account_idempotency_key",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    # "deposit", "transfer" or "reversal"
    type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    # Signed: negative = outflow
    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    fee_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # "completed" or "reversed"
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="completed",
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # --- Counterparty ---
    recipient_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    recipient_account: Mapped[str | None] = mapped_column(String(34), nullable=True)
    recipient_routing: Mapped[str | None] = mapped_column(String(9), nullable=True)
    recipient_bank: Mapped[str | None] = mapped_column(String(200), nullable=True)
    recipient_country: Mapped[str | None] = mapped_column(String(2), nullable=True)

    reference_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
    )

    category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    # Links the two legs of an internal transfer
    transfer_pair_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
        index=True,
    )

    idempotency_key: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    # Indexed for newest-first history queries
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
