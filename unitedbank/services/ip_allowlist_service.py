"""
Admin IP allowlist — matching, caller IP resolution and back-office CRUD.

An allowlist entry is either an exact IPv4 address ("203.0.113.7") or an
IPv4 CIDR range ("203.0.113.0/24"). "0.0.0.0/0" matches everything.
Malformed entries never match anything.

Only active entries take part in the check. Whether an empty allowlist
lets admins in is decided by the access gate (ADMIN_IP_FAIL_OPEN), not
here.

The caller is identified by its connection address when that is public.
A private or loopback peer is kept as-is when an active entry names it
(an office LAN range such as "10.0.0.0/24"); otherwise the server looks
up its own public address, which is what the outside world sees.
"""

import ipaddress
import logging
import uuid
from collections.abc import Iterable

import httpx
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.config import settings
from unitedbank.exceptions import InvalidIPEntryError
from unitedbank.models.admin_security import AdminIPWhitelistEntry
from unitedbank.models.user import User
from unitedbank.services import audit_service


logger = logging.getLogger(__name__)

ALLOW_ALL = "0.0.0.0/0"


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _ipv4_to_int(value: str) -> int:
    return int(ipaddress.IPv4Address(value))


def is_ip_in_range(ip: str, cidr: str) -> bool:
    """
    True if ip falls inside the IPv4 CIDR range.

    Compares (ip & mask) with (range & mask) using a 32-bit mask. Any
    parse error means no match.
    """
    try:
        range_part, bits_part = cidr.split("/")
        bits = int(bits_part)
        if not 0 <= bits <= 32:
            return False
        mask = (0xFFFFFFFF << (32 - bits)) & 0xFFFFFFFF
        return (_ipv4_to_int(ip) & mask) == (_ipv4_to_int(range_part) & mask)
    except ValueError:
        return False


def entry_matches(ip: str, entry: str) -> bool:
    if entry == ALLOW_ALL:
        return True
    if "/" in entry:
        return is_ip_in_range(ip, entry)
    return entry == ip


def is_ip_allowed(ip: str, entries: Iterable[str]) -> bool:
    """True if any entry matches ip."""
    return any(entry_matches(ip, entry) for entry in entries)


def validate_entry(value: str) -> str:
    """
    Check an allowlist entry before it's stored and return it trimmed.

    Raises:
        InvalidIPEntryError: Not an IPv4 address or IPv4 CIDR range.
    """
    value = value.strip()
    try:
        if "/" in value:
            ipaddress.IPv4Network(value, strict=False)
        else:
            ipaddress.IPv4Address(value)
    except ValueError:
        raise InvalidIPEntryError(value)
    return value


# ---------------------------------------------------------------------------
# Caller IP resolution
# ---------------------------------------------------------------------------

async def lookup_public_ip() -> str | None:
    """
    Ask the public IP lookup service for this host's address.

    Returns None on any failure; the caller decides what a failed lookup
    means.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.get(settings.PUBLIC_IP_LOOKUP_URL)
            response.raise_for_status()
            ip = response.json()["ip"]
        return str(ipaddress.ip_address(ip))
    except (httpx.HTTPError, KeyError, TypeError, ValueError):
        logger.warning("Public IP lookup failed", exc_info=True)
        return None


def _parse_address(value: str | None) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if not value:
        return None
    try:
        address = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped
    return address


async def resolve_caller_ip(
    client_host: str | None,
    forwarded_for: str | None = None,
    allowlist: Iterable[str] = (),
) -> str | None:
    """
    Work out which IP address an admin request comes from.

    Uses the first X-Forwarded-For hop when TRUST_FORWARDED_FOR is on,
    otherwise the connection's peer address. A loopback or private
    address is kept when an allowlist entry names it (an office LAN range
    such as "10.0.0.0/24"); otherwise the admin shares this server's
    network, so the public address is looked up instead.

    Returns None when no address can be determined.
    """
    candidate = client_host
    if settings.TRUST_FORWARDED_FOR and forwarded_for:
        candidate = forwarded_for.split(",")[0]

    address = _parse_address(candidate)
    if address is not None:
        if address.is_global:
            return str(address)
        if is_ip_allowed(str(address), allowlist):
            return str(address)

    return await lookup_public_ip()


# ---------------------------------------------------------------------------
# Back-office management
# ---------------------------------------------------------------------------

async def get_active_entries(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(AdminIPWhitelistEntry.ip_address)
        .where(AdminIPWhitelistEntry.is_active.is_(True))
    )
    return list(result.scalars().all())


async def list_entries(db: AsyncSession) -> list[AdminIPWhitelistEntry]:
    result = await db.execute(
        select(AdminIPWhitelistEntry).order_by(AdminIPWhitelistEntry.created_at.desc())
    )
    return list(result.scalars().all())


async def _get_entry(db: AsyncSession, entry_id: uuid.UUID) -> AdminIPWhitelistEntry:
    entry = await db.get(AdminIPWhitelistEntry, entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Allowlist entry not found",
        )
    return entry


async def add_entry(
    db: AsyncSession,
    admin: User,
    ip_address: str,
    description: str | None = None,
    admin_ip: str | None = None,
) -> AdminIPWhitelistEntry:
    """
    Add an address or range to the allowlist.

    Raises:
        InvalidIPEntryError: If ip_address isn't IPv4 or IPv4 CIDR.
    """
    ip_address = validate_entry(ip_address)
    entry = AdminIPWhitelistEntry(
        ip_address=ip_address,
        description=description,
        created_by=admin.id,
    )
    db.add(entry)
    await db.flush()

    await audit_service.log_action(
        db,
        admin,
        action_type="ip_whitelist_added",
        target_table="admin_ip_whitelist",
        target_id=entry.id,
        new_value={"ip_address": ip_address, "description": description},
        description=f"Added IP to allowlist: {ip_address}",
        ip_address=admin_ip,
    )
    logger.info("Allowlist entry %s added by admin %s", ip_address, admin.id)
    return entry


async def set_entry_active(
    db: AsyncSession,
    admin: User,
    entry_id: uuid.UUID,
    is_active: bool,
    admin_ip: str | None = None,
) -> AdminIPWhitelistEntry:
    entry = await _get_entry(db, entry_id)
    old_value = entry.is_active
    entry.is_active = is_active

    await audit_service.log_action(
        db,
        admin,
        action_type="ip_whitelist_toggled",
        target_table="admin_ip_whitelist",
        target_id=entry.id,
        old_value={"is_active": old_value},
        new_value={"is_active": is_active},
        description=(
            f"{'Enabled' if is_active else 'Disabled'} allowlist entry {entry.ip_address}"
        ),
        ip_address=admin_ip,
    )
    await db.flush()
    return entry


async def remove_entry(
    db: AsyncSession,
    admin: User,
    entry_id: uuid.UUID,
    admin_ip: str | None = None,
) -> None:
    entry = await _get_entry(db, entry_id)
    await db.delete(entry)

    await audit_service.log_action(
        db,
        admin,
        action_type="ip_whitelist_removed",
        target_table="admin_ip_whitelist",
        target_id=entry_id,
        old_value={"ip_address": entry.ip_address},
        description=f"Removed IP from allowlist: {entry.ip_address}",
        ip_address=admin_ip,
    )
    await db.flush()
    logger.info("Allowlist entry %s removed by admin %s", entry.ip_address, admin.id)
