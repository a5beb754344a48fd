"""
User model — the authentication identity.

Each User is a login credential (email + Argon2 hash) with a role:

  - MEMBER: Bank customer — the default role for signup
  - VIEWER: Back-office staff with read-only admin access
  - ADMIN: Back-office administrator
  - SUPER_ADMIN: Highest admin role. Manages the IP allowlist and other
    admins, and bypasses the admin IP allowlist so a misconfigured
    allowlist can always be repaired.

The User is separate from Profile: User answers "who are you and what
role do you hold?", Profile answers "who is the customer and what do
they own?".
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unitedbank.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the banking system.

    Inherits from str so the enum value serializes naturally to JSON.
    """
    MEMBER = "member"
    VIEWER = "viewer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_admin(self) -> bool:
        return self in (UserType.VIEWER, UserType.ADMIN, UserType.SUPER_ADMIN)


class User(Base):
    __tablename__ = "users"

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

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.MEMBER,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their data is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
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
        back_populates="user",
        uselist=False,
    )
