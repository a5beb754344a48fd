"""
Profile model — the banking identity of a User.

The relationship chain is:
    User (auth) --> Profile (customer) --> Account(s) (banking)

The profile email is what the privilege gate keys on: a PrivilegedUser
record applies to whichever profile carries the same (lower-cased) email.
It is also where transaction notification emails are sent.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unitedbank.database import Base


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # UNIQUE enforces the one-to-one relationship with User
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )

    full_name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )

    # ISO 3166-1 alpha-2, set for international customers
    country_code: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
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
    user: Mapped["User"] = relationship(
        back_populates="profile",
    )

    accounts: Mapped[list["Account"]] = relationship(
        back_populates="profile",
    )

    @property
    def display_name(self) -> str:
        return self.full_name or "Valued Customer"
