"""
Privilege gate — capability flags for deposits and reversals.

A Privileges value is resolved once per request from the privileged_users
row whose email matches the caller's profile email, and then consulted by
the ledger functions before any balance is touched. No matching row means
every flag is False.

The module also holds the back-office management of privileged users;
every write goes through the audit log.
"""

import logging
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.exceptions import DuplicatePrivilegedUserError
from unitedbank.models.privileged_user import PrivilegedUser
from unitedbank.models.user import User
from unitedbank.services import audit_service


logger = logging.getLogger(__name__)

PRIVILEGE_FLAGS = ("can_deposit", "can_request_reversal", "instant_reversal")


@dataclass(frozen=True)
class Privileges:
    can_deposit: bool = False
    can_request_reversal: bool = False
    instant_reversal: bool = False

    @classmethod
    def from_record(cls, record: PrivilegedUser | None) -> "Privileges":
        if record is None:
            return cls()
        return cls(
            can_deposit=record.can_deposit,
            can_request_reversal=record.can_request_reversal,
            instant_reversal=record.instant_reversal,
        )


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_privileged_user(
    db: AsyncSession,
    email: str | None,
) -> PrivilegedUser | None:
    if not email:
        return None
    result = await db.execute(
        select(PrivilegedUser).where(PrivilegedUser.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_privileges(db: AsyncSession, email: str | None) -> Privileges:
    """Resolve the capability flags for a profile email."""
    return Privileges.from_record(await get_privileged_user(db, email))


# ---------------------------------------------------------------------------
# Back-office management
# ---------------------------------------------------------------------------

async def list_privileged_users(db: AsyncSession) -> list[PrivilegedUser]:
    result = await db.execute(
        select(PrivilegedUser).order_by(PrivilegedUser.created_at.desc())
    )
    return list(result.scalars().all())


async def add_privileged_user(
    db: AsyncSession,
    admin: User,
    email: str,
    can_deposit: bool = False,
    can_request_reversal: bool = False,
    instant_reversal: bool = False,
    ip_address: str | None = None,
) -> PrivilegedUser:
    """
    Grant capability flags to an email address.

    Raises:
        DuplicatePrivilegedUserError: If the email already has a record.
    """
    email = normalize_email(email)
    if await get_privileged_user(db, email) is not None:
        raise DuplicatePrivilegedUserError(email)

    record = PrivilegedUser(
        email=email,
        can_deposit=can_deposit,
        can_request_reversal=can_request_reversal,
        instant_reversal=instant_reversal,
    )
    db.add(record)
    await db.flush()

    permissions = {flag: getattr(record, flag) for flag in PRIVILEGE_FLAGS}
    await audit_service.log_action(
        db,
        admin,
        action_type="privileged_user_added",
        target_table="privileged_users",
        target_id=record.id,
        new_value={"email": email, **permissions},
        description=f"Added privileged user: {email}",
        ip_address=ip_address,
    )
    logger.info("Privileged user %s added by admin %s", record.id, admin.id)
    return record


async def update_privileged_user(
    db: AsyncSession,
    admin: User,
    privileged_user_id: uuid.UUID,
    updates: dict[str, bool],
    ip_address: str | None = None,
) -> PrivilegedUser:
    """
    Change one or more flags. Each changed flag gets its own audit entry.

    Raises:
        HTTPException 404: If no record has that id.
    """
    record = await db.get(PrivilegedUser, privileged_user_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Privileged user not found",
        )

    for flag, new_value in updates.items():
        if flag not in PRIVILEGE_FLAGS:
            raise ValueError(f"Unknown privilege flag: {flag}")
        old_value = getattr(record, flag)
        if old_value == new_value:
            continue
        setattr(record, flag, new_value)
        await audit_service.log_action(
            db,
            admin,
            action_type="privileged_user_updated",
            target_table="privileged_users",
            target_id=record.id,
            old_value={flag: old_value},
            new_value={flag: new_value},
            description=(
                f"Updated {flag} for privileged user {record.email}: "
                f"{old_value} -> {new_value}"
            ),
            ip_address=ip_address,
        )

    await db.flush()
    return record


async def remove_privileged_user(
    db: AsyncSession,
    admin: User,
    privileged_user_id: uuid.UUID,
    ip_address: str | None = None,
) -> None:
    record = await db.get(PrivilegedUser, privileged_user_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Privileged user not found",
        )

    await db.delete(record)
    await audit_service.log_action(
        db,
        admin,
        action_type="privileged_user_removed",
        target_table="privileged_users",
        target_id=privileged_user_id,
        old_value={"email": record.email},
        description=f"Removed privileged user: {record.email}",
        ip_address=ip_address,
    )
    await db.flush()
    logger.info("Privileged user %s removed by admin %s", privileged_user_id, admin.id)
