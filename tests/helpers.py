"""
Helpers shared by the test modules: signing users up through the API,
provisioning roles, privileges and allowlist entries directly, and
setting up members inside a session for service-level tests.
"""

import uuid

from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from unitedbank.context import SessionContext
from unitedbank.models.admin_security import AdminIPWhitelistEntry
from unitedbank.models.privileged_user import PrivilegedUser
from unitedbank.models.profile import Profile
from unitedbank.models.transaction import Transaction
from unitedbank.models.user import User, UserType
from unitedbank.services import account_service, auth_service, privilege_service
from unitedbank.services.procedures import generate_reference_number


ADMIN_TEST_IP = "203.0.113.10"
PASSWORD = "SecurePass123!"


async def signup(ac: AsyncClient, email: str, full_name: str) -> dict:
    """Sign up through the API and authenticate the client as that user."""
    response = await ac.post(
        "/auth/signup",
        json={"email": email, "password": PASSWORD, "full_name": full_name},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    data = response.json()
    ac.headers["Authorization"] = f"Bearer {data['token']}"
    return data


async def grant_privileges(session_factory, email: str, **flags) -> None:
    async with session_factory() as session:
        session.add(PrivilegedUser(email=email, **flags))
        await session.commit()


async def set_role(session_factory, user_id: str, user_type: UserType) -> None:
    async with session_factory() as session:
        await session.execute(
            update(User).where(User.id == uuid.UUID(user_id)).values(user_type=user_type)
        )
        await session.commit()


async def allow_ip(session_factory, ip_address: str) -> None:
    async with session_factory() as session:
        session.add(AdminIPWhitelistEntry(ip_address=ip_address, description="tests"))
        await session.commit()


async def primary_account(ac: AsyncClient) -> dict:
    """The member's primary account, as returned by GET /accounts."""
    response = await ac.get("/accounts")
    assert response.status_code == 200
    return response.json()[0]


async def deposit(ac: AsyncClient, amount_cents: int) -> dict:
    response = await ac.post("/deposits", json={"amount_cents": amount_cents})
    assert response.status_code == 201, response.text
    return response.json()


async def build_context(db: AsyncSession, email: str) -> SessionContext:
    """Assemble a SessionContext the way the request dependency does."""
    user = (await db.execute(select(User).where(User.email == email))).scalar_one()
    profile = (await db.execute(select(Profile).where(Profile.user_id == user.id))).scalar_one()
    account = await account_service.get_primary_account(db, profile.id)
    privileges = await privilege_service.get_privileges(db, profile.email)
    return SessionContext(user=user, profile=profile, account=account, privileges=privileges)


async def create_member(db: AsyncSession, email: str, full_name: str, **flags) -> SessionContext:
    """Sign a member up in the session (no HTTP) and return their context."""
    if flags:
        db.add(PrivilegedUser(email=email, **flags))
    await auth_service.signup(db, email=email, password=PASSWORD, full_name=full_name)
    return await build_context(db, email)


async def fund(db: AsyncSession, ctx: SessionContext, amount_cents: int) -> None:
    """Put money on a primary account the way a deposit would, without the privilege check."""
    ctx.account.balance_cents += amount_cents
    db.add(Transaction(
        account_id=ctx.account.id,
        type="deposit",
        amount_cents=amount_cents,
        status="completed",
        description="Deposit",
        reference_number=generate_reference_number(),
    ))
    await db.flush()
