"""
Authentication service — signup and login business logic.

Signup flow:
  1. Check if email is already registered
  2. Hash the password with Argon2id
  3. Create User + Profile + primary checking account in a single
     database transaction
  4. Return a JWT token so the user is immediately logged in

Login flow:
  1. Look up user by email
  2. Verify password against stored hash
  3. Return a JWT token

Emails are stored lower-cased, the same form the privilege gate matches on.
Login returns the same error for "wrong password" and "email not found"
to prevent user enumeration.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.exceptions import DuplicateEmailError, InvalidCredentialsError, UserNotFoundError
from unitedbank.models.profile import Profile
from unitedbank.models.user import User, UserType
from unitedbank.security import hash_password, verify_password, create_access_token
from unitedbank.services import account_service


logger = logging.getLogger(__name__)


async def signup(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    phone: str | None = None,
    country_code: str | None = None,
    category: str = "personal",
) -> tuple[User, str]:
    """
    Register a new member with a profile and a primary checking account.

    All three records are created in one transaction; if any fails, none
    is persisted.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    email = email.strip().lower()

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        user_type=UserType.MEMBER,
    )
    db.add(user)
    # Flush to get the user.id assigned (needed for the FK below)
    await db.flush()

    profile = Profile(
        user_id=user.id,
        full_name=full_name,
        email=email,
        phone=phone,
        country_code=country_code,
    )
    db.add(profile)
    await db.flush()

    await account_service.create_account(db, profile.id, category=category)

    logger.info("New member %s signed up", user.id)
    token = create_access_token(data={"sub": str(user.id)})
    return user, token


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        InvalidCredentialsError: If email doesn't exist, the password is
            wrong, or the user is deactivated.
    """
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()

    # Same error for every case
    if not user:
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": str(user.id)})
    return user, token


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_get_all_users(db: AsyncSession) -> list[User]:
    """[ADMIN ONLY] List every registered user, newest first."""
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def admin_get_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    """[ADMIN ONLY] Get any user's customer profile."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()

    if profile is None:
        raise UserNotFoundError(user_id)

    return profile
