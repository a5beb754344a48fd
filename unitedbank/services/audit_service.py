"""
Audit service — append-only record of back-office actions.

Entries are added to the same session as the action they describe, so an
admin write and its audit entry commit (or roll back) together.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.models.admin_security import AdminAuditLog
from unitedbank.models.user import User


async def log_action(
    db: AsyncSession,
    admin: User,
    action_type: str,
    target_table: str,
    description: str,
    target_id: uuid.UUID | str | None = None,
    old_value: dict | None = None,
    new_value: dict | None = None,
    ip_address: str | None = None,
) -> AdminAuditLog:
    """
    Record one admin action.

    Args:
        db: Database session.
        admin: The admin performing the action.
        action_type: Short machine-readable verb, e.g. "privileged_user_added".
        target_table: Table the action changed.
        description: Human-readable summary shown in the activity view.
        target_id: Primary key of the changed row, if any.
        old_value / new_value: JSON snapshots before and after the change.
        ip_address: Address the admin acted from.
    """
    entry = AdminAuditLog(
        admin_user_id=admin.id,
        action_type=action_type,
        target_table=target_table,
        target_id=str(target_id) if target_id is not None else None,
        old_value=old_value,
        new_value=new_value,
        description=description,
        ip_address=ip_address,
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_audit_logs(
    db: AsyncSession,
    action_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[AdminAuditLog]:
    """Newest first, optionally filtered by action type."""
    query = (
        select(AdminAuditLog)
        .order_by(AdminAuditLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if action_type:
        query = query.where(AdminAuditLog.action_type == action_type)

    result = await db.execute(query)
    return list(result.scalars().all())
