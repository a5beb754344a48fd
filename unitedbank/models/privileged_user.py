"""
PrivilegedUser model — capability flags for sensitive ledger operations.

Records are keyed by email, not by user id: a back-office admin can grant
a capability to an address before the customer has signed up, and it
applies to whichever profile carries that email. Emails are stored
lower-cased and stripped.

Flags:
  - can_deposit: may add money with the deposit operation
  - can_request_reversal: may reverse their own outgoing transfers
  - instant_reversal: stored and administered, not consulted by any
    ledger path (every permitted reversal is processed immediately)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from unitedbank.database import Base


class PrivilegedUser(Base):
    __tablename__ = "privileged_users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    can_deposit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_request_reversal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    instant_reversal: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
