"""
Admin access-control models: two-factor secrets, IP allowlist, audit log.

Admin2FA
  One row per admin user. The TOTP secret is Fernet-encrypted
  (secret_encrypted). backup_codes is a JSON list of unused one-time
  codes; a code is removed from the list the moment it is accepted.
  A row with is_enabled=False is a setup in progress: the secret exists
  but the admin has not yet proven they can generate codes with it.

AdminIPWhitelistEntry
  An exact IPv4 address or an IPv4 CIDR range. "0.0.0.0/0" is the
  allow-all sentinel. Inactive entries are kept but ignored.

AdminAuditLog
  Append-only record of back-office writes with before/after snapshots.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, ForeignKey, LargeBinary, JSON
from sqlalchemy.orm import Mapped, mapped_column

from unitedbank.database import Base


class Admin2FA(Base):
    __tablename__ = "admin_2fa"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )

    secret_encrypted: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
    )

    is_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    backup_codes: Mapped[list[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )

    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
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


class AdminIPWhitelistEntry(Base):
    __tablename__ = "admin_ip_whitelist"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    ip_address: Mapped[str] = mapped_column(
        String(43),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class AdminAuditLog(Base):
    __tablename__ = "admin_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    admin_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # e.g. "privileged_user_added", "ip_whitelist_removed"
    action_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )

    target_table: Mapped[str] = mapped_column(String(50), nullable=False)

    target_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    old_value: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_value: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
