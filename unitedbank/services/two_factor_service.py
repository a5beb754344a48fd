"""
Admin two-factor authentication (TOTP, RFC 6238) with backup codes.

Lifecycle of an admin's Admin2FA record:

    setup_2fa   -> secret + 8 backup codes stored, is_enabled=False
    enable_2fa  -> first TOTP code proves the authenticator works,
                   is_enabled=True, verified_at set
    validate_code -> TOTP code or unused backup code, returns a 2FA
                   session token (see security.create_two_factor_token)
    disable_2fa -> valid code required, record deleted

TOTP codes are 6 digits over 30-second steps and are accepted one step
either side of the current one to tolerate clock drift. Backup codes are
single use: a consumed code is removed from the stored list.

The TOTP secret is Fernet-encrypted at rest; the plaintext only leaves
this module once, in the setup response the admin scans.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone

import pyotp
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.config import settings
from unitedbank.exceptions import InvalidTwoFactorCodeError, TwoFactorNotConfiguredError
from unitedbank.models.admin_security import Admin2FA
from unitedbank.models.user import User
from unitedbank.security import create_two_factor_token, decrypt_value, encrypt_value
from unitedbank.services import audit_service


logger = logging.getLogger(__name__)

BACKUP_CODE_COUNT = 8
BACKUP_CODE_LENGTH = 6
BACKUP_CODE_ALPHABET = string.ascii_uppercase + string.digits
# Steps accepted either side of the current 30-second step
VALID_WINDOW = 1


@dataclass(frozen=True)
class TwoFactorSetup:
    secret: str
    provisioning_uri: str
    backup_codes: list[str]


def generate_secret() -> str:
    """New random base32 TOTP secret."""
    return pyotp.random_base32()


def provisioning_uri(secret: str, email: str) -> str:
    """otpauth:// URI for authenticator apps (usually shown as a QR code)."""
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=settings.TOTP_ISSUER)


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    return [
        "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(BACKUP_CODE_LENGTH))
        for _ in range(count)
    ]


def verify_totp(secret: str, code: str, for_time: datetime | None = None) -> bool:
    code = code.strip()
    if not code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(code, for_time=for_time, valid_window=VALID_WINDOW)


async def get_2fa(db: AsyncSession, user_id) -> Admin2FA | None:
    result = await db.execute(select(Admin2FA).where(Admin2FA.user_id == user_id))
    return result.scalar_one_or_none()


async def is_2fa_enabled(db: AsyncSession, user_id) -> bool:
    record = await get_2fa(db, user_id)
    return record is not None and record.is_enabled


async def _require_record(db: AsyncSession, admin: User) -> Admin2FA:
    record = await get_2fa(db, admin.id)
    if record is None:
        raise TwoFactorNotConfiguredError()
    return record


async def setup_2fa(
    db: AsyncSession,
    admin: User,
    admin_ip: str | None = None,
) -> TwoFactorSetup:
    """
    Generate a new secret and backup codes for an admin.

    Replaces any existing record, which also switches 2FA off until the
    new secret is confirmed with enable_2fa.
    """
    secret = generate_secret()
    backup_codes = generate_backup_codes()

    record = await get_2fa(db, admin.id)
    if record is None:
        record = Admin2FA(user_id=admin.id)
        db.add(record)
    record.secret_encrypted = encrypt_value(secret)
    record.backup_codes = backup_codes
    record.is_enabled = False
    record.verified_at = None
    await db.flush()

    await audit_service.log_action(
        db,
        admin,
        action_type="2fa_setup_started",
        target_table="admin_2fa",
        target_id=record.id,
        description="Started two-factor authentication setup",
        ip_address=admin_ip,
    )
    return TwoFactorSetup(
        secret=secret,
        provisioning_uri=provisioning_uri(secret, admin.email),
        backup_codes=backup_codes,
    )


async def enable_2fa(
    db: AsyncSession,
    admin: User,
    code: str,
    for_time: datetime | None = None,
    admin_ip: str | None = None,
) -> Admin2FA:
    """
    Turn 2FA on once the admin proves their authenticator produces valid codes.

    Only TOTP codes are accepted here, not backup codes.

    Raises:
        TwoFactorNotConfiguredError: setup_2fa hasn't been called.
        InvalidTwoFactorCodeError: The code doesn't verify.
    """
    record = await _require_record(db, admin)
    if not verify_totp(decrypt_value(record.secret_encrypted), code, for_time):
        logger.warning("Invalid 2FA enable code for admin %s", admin.id)
        raise InvalidTwoFactorCodeError()

    record.is_enabled = True
    record.verified_at = datetime.now(timezone.utc)
    await audit_service.log_action(
        db,
        admin,
        action_type="2fa_enabled",
        target_table="admin_2fa",
        target_id=record.id,
        description="Enabled two-factor authentication",
        ip_address=admin_ip,
    )
    await db.flush()
    logger.info("2FA enabled for admin %s", admin.id)
    return record


async def _check_code(
    db: AsyncSession,
    admin: User,
    record: Admin2FA,
    code: str,
    for_time: datetime | None,
) -> None:
    if verify_totp(decrypt_value(record.secret_encrypted), code, for_time):
        return

    normalized = code.strip().upper()
    if normalized in (record.backup_codes or []):
        # Reassign, the JSON column doesn't track in-place mutation
        record.backup_codes = [c for c in record.backup_codes if c != normalized]
        await db.flush()
        logger.info(
            "Backup code used by admin %s (%d left)", admin.id, len(record.backup_codes)
        )
        return

    logger.warning("Invalid 2FA code for admin %s", admin.id)
    raise InvalidTwoFactorCodeError()


async def validate_code(
    db: AsyncSession,
    admin: User,
    code: str,
    for_time: datetime | None = None,
) -> str:
    """
    Check a TOTP or backup code and return a 2FA session token.

    Raises:
        TwoFactorNotConfiguredError: 2FA isn't enabled for this admin.
        InvalidTwoFactorCodeError: Neither a valid TOTP nor an unused backup code.
    """
    record = await _require_record(db, admin)
    if not record.is_enabled:
        raise TwoFactorNotConfiguredError("Two-factor authentication is not enabled")

    await _check_code(db, admin, record, code, for_time)
    return create_two_factor_token(str(admin.id))


async def disable_2fa(
    db: AsyncSession,
    admin: User,
    code: str,
    for_time: datetime | None = None,
    admin_ip: str | None = None,
) -> None:
    """
    Remove an admin's 2FA record after checking a TOTP or backup code.

    Raises:
        TwoFactorNotConfiguredError: No record exists.
        InvalidTwoFactorCodeError: The code doesn't verify.
    """
    record = await _require_record(db, admin)
    await _check_code(db, admin, record, code, for_time)

    await db.delete(record)
    await audit_service.log_action(
        db,
        admin,
        action_type="2fa_disabled",
        target_table="admin_2fa",
        target_id=record.id,
        description="Disabled two-factor authentication",
        ip_address=admin_ip,
    )
    await db.flush()
    logger.info("2FA disabled for admin %s", admin.id)
