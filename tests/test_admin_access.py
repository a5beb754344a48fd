"""
Tests for the admin access gate: IP allowlist first, then 2FA.

These tests verify:
  - Every path through the gate ends in the right state:
    IP_BLOCKED, NO_2FA_REQUIRED, REQUIRES_2FA_VERIFICATION or VERIFIED
  - A missing IP or an empty allowlist blocks unless ADMIN_IP_FAIL_OPEN
  - Super admins get past an IP block (flagged as a bypass) but not past 2FA
  - 2FA session tokens only work for the admin they were issued to, and
    only until they expire; a login token is not a 2FA token
  - GET /admin/access reports the state without rejecting the request
  - The full HTTP flow: setup -> enable -> blocked -> verify -> granted
"""

from datetime import timedelta

import pyotp
import pytest
import pytest_asyncio

from unitedbank.config import settings
from unitedbank.models.admin_security import AdminIPWhitelistEntry
from unitedbank.models.user import UserType
from unitedbank.security import create_access_token, create_two_factor_token
from unitedbank.services import admin_access_service, two_factor_service
from unitedbank.services.admin_access_service import AdminAccessState

from helpers import ADMIN_TEST_IP, create_member


OUTSIDE_IP = "198.51.100.66"


# ---------------------------------------------------------------------------
# Service-level state machine
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def make_admin(db_session):
    async def _make(email="admin@example.com", user_type=UserType.ADMIN):
        ctx = await create_member(db_session, email, "Admin User")
        ctx.user.user_type = user_type
        await db_session.flush()
        return ctx.user

    return _make


@pytest_asyncio.fixture
async def allowlist(db_session):
    async def _allow(*entries, is_active=True):
        for entry in entries:
            db_session.add(AdminIPWhitelistEntry(ip_address=entry, is_active=is_active))
        await db_session.flush()

    return _allow


async def enable_2fa(db, admin) -> str:
    setup = await two_factor_service.setup_2fa(db, admin)
    await two_factor_service.enable_2fa(db, admin, pyotp.TOTP(setup.secret).now())
    return setup.secret


class TestIPStep:

    async def test_allowed_ip(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist("203.0.113.0/24")

        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP)

        assert decision.state == AdminAccessState.NO_2FA_REQUIRED
        assert decision.ip_allowed is True
        assert decision.super_admin_bypass is False
        assert decision.granted is True

    async def test_blocked_ip(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)

        decision = await admin_access_service.evaluate(db_session, admin, OUTSIDE_IP)

        assert decision.state == AdminAccessState.IP_BLOCKED
        assert decision.ip_address == OUTSIDE_IP
        assert decision.granted is False

    async def test_inactive_entry_ignored(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist("0.0.0.0/8")
        await allowlist(ADMIN_TEST_IP, is_active=False)

        decision = await admin_access_service.check_ip(db_session, admin, ADMIN_TEST_IP)
        assert decision.state == AdminAccessState.IP_BLOCKED

    async def test_allow_all_entry(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist("0.0.0.0/0")

        decision = await admin_access_service.check_ip(db_session, admin, OUTSIDE_IP)
        assert decision.state == AdminAccessState.IP_ALLOWED

    async def test_empty_allowlist_fails_closed(self, db_session, make_admin):
        admin = await make_admin()

        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP)
        assert decision.state == AdminAccessState.IP_BLOCKED

    async def test_unknown_ip_fails_closed(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist("0.0.0.0/0")

        decision = await admin_access_service.evaluate(db_session, admin, None)
        assert decision.state == AdminAccessState.IP_BLOCKED

    async def test_fail_open(self, db_session, make_admin, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_IP_FAIL_OPEN", True)
        admin = await make_admin()

        empty_list = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP)
        unknown_ip = await admin_access_service.evaluate(db_session, admin, None)

        assert empty_list.state == AdminAccessState.NO_2FA_REQUIRED
        assert unknown_ip.state == AdminAccessState.NO_2FA_REQUIRED

    async def test_fail_open_does_not_override_a_non_matching_list(
        self, db_session, make_admin, allowlist, monkeypatch
    ):
        monkeypatch.setattr(settings, "ADMIN_IP_FAIL_OPEN", True)
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)

        decision = await admin_access_service.evaluate(db_session, admin, OUTSIDE_IP)
        assert decision.state == AdminAccessState.IP_BLOCKED

    async def test_super_admin_bypass(self, db_session, make_admin, allowlist):
        admin = await make_admin(user_type=UserType.SUPER_ADMIN)
        await allowlist(ADMIN_TEST_IP)

        decision = await admin_access_service.evaluate(db_session, admin, OUTSIDE_IP)

        assert decision.state == AdminAccessState.NO_2FA_REQUIRED
        assert decision.ip_allowed is False
        assert decision.super_admin_bypass is True

    async def test_viewer_gets_no_bypass(self, db_session, make_admin, allowlist):
        admin = await make_admin(user_type=UserType.VIEWER)
        await allowlist(ADMIN_TEST_IP)

        decision = await admin_access_service.evaluate(db_session, admin, OUTSIDE_IP)
        assert decision.state == AdminAccessState.IP_BLOCKED


class TestTwoFactorStep:

    async def test_requires_verification(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP)

        assert decision.state == AdminAccessState.REQUIRES_2FA_VERIFICATION
        assert decision.two_factor_enabled is True
        assert decision.granted is False

    async def test_setup_in_progress_does_not_require_2fa(
        self, db_session, make_admin, allowlist
    ):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)
        await two_factor_service.setup_2fa(db_session, admin)

        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP)
        assert decision.state == AdminAccessState.NO_2FA_REQUIRED

    async def test_verified_with_token(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        token = create_two_factor_token(str(admin.id))
        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP, token)

        assert decision.state == AdminAccessState.VERIFIED
        assert decision.granted is True

    async def test_token_for_another_admin(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        other = await make_admin("other@example.com")
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        token = create_two_factor_token(str(other.id))
        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP, token)
        assert decision.state == AdminAccessState.REQUIRES_2FA_VERIFICATION

    async def test_expired_token(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        token = create_two_factor_token(str(admin.id), expires_delta=timedelta(seconds=-1))
        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP, token)
        assert decision.state == AdminAccessState.REQUIRES_2FA_VERIFICATION

    async def test_login_token_is_not_a_2fa_token(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        token = create_access_token({"sub": str(admin.id)})
        decision = await admin_access_service.evaluate(db_session, admin, ADMIN_TEST_IP, token)
        assert decision.state == AdminAccessState.REQUIRES_2FA_VERIFICATION

    async def test_super_admin_bypass_still_needs_2fa(self, db_session, make_admin, allowlist):
        admin = await make_admin(user_type=UserType.SUPER_ADMIN)
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        decision = await admin_access_service.evaluate(db_session, admin, OUTSIDE_IP)

        assert decision.super_admin_bypass is True
        assert decision.state == AdminAccessState.REQUIRES_2FA_VERIFICATION

    async def test_blocked_ip_never_reaches_2fa(self, db_session, make_admin, allowlist):
        admin = await make_admin()
        await allowlist(ADMIN_TEST_IP)
        await enable_2fa(db_session, admin)

        token = create_two_factor_token(str(admin.id))
        decision = await admin_access_service.evaluate(db_session, admin, OUTSIDE_IP, token)
        assert decision.state == AdminAccessState.IP_BLOCKED


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class TestAccessEndpoint:
    """Tests for GET /admin/access."""

    async def test_granted(self, admin_client):
        response = await admin_client.get("/admin/access")
        assert response.status_code == 200
        assert response.json() == {
            "state": "no_2fa_required",
            "ip_address": ADMIN_TEST_IP,
            "ip_allowed": True,
            "super_admin_bypass": False,
            "two_factor_enabled": False,
            "granted": True,
        }

    async def test_blocked_is_reported_not_raised(self, admin_client, public_ip_lookup):
        public_ip_lookup.return_value = OUTSIDE_IP

        response = await admin_client.get("/admin/access")
        assert response.status_code == 200
        assert response.json()["state"] == "ip_blocked"
        assert response.json()["granted"] is False

    async def test_lookup_failure_blocks(self, admin_client, public_ip_lookup):
        public_ip_lookup.return_value = None

        response = await admin_client.get("/admin/accounts")
        assert response.status_code == 403
        assert response.json()["error_type"] == "ip_not_allowed"
        assert response.json()["ip_address"] is None

    async def test_super_admin_bypass_over_http(self, super_admin_client, public_ip_lookup):
        public_ip_lookup.return_value = OUTSIDE_IP

        access = (await super_admin_client.get("/admin/access")).json()
        assert access["super_admin_bypass"] is True
        assert access["granted"] is True
        assert (await super_admin_client.get("/admin/accounts")).status_code == 200


class TestBlockedAdmin:

    @pytest.mark.parametrize(
        "method, path",
        [
            ("get", "/admin/accounts"),
            ("get", "/admin/transactions"),
            ("get", "/admin/audit-logs"),
            ("get", "/admin/2fa/status"),
            ("post", "/admin/2fa/setup"),
        ],
    )
    async def test_blocked_everywhere(self, admin_client, public_ip_lookup, method, path):
        public_ip_lookup.return_value = OUTSIDE_IP

        response = await getattr(admin_client, method)(path)
        assert response.status_code == 403
        assert response.json()["error_type"] == "ip_not_allowed"
        assert response.json()["ip_address"] == OUTSIDE_IP

    async def test_verify_blocked_by_ip(self, admin_client, public_ip_lookup):
        public_ip_lookup.return_value = OUTSIDE_IP

        response = await admin_client.post("/admin/2fa/verify", json={"code": "123456"})
        assert response.status_code == 403


class TestTwoFactorFlow:
    """setup -> enable -> blocked -> verify -> granted, over HTTP."""

    async def enable(self, ac) -> dict:
        setup = await ac.post("/admin/2fa/setup")
        assert setup.status_code == 201
        secret = setup.json()["secret"]

        enabled = await ac.post(
            "/admin/2fa/enable", json={"code": pyotp.TOTP(secret).now()}
        )
        assert enabled.status_code == 200
        assert enabled.json()["is_enabled"] is True
        return setup.json()

    async def test_setup_response(self, admin_client):
        response = await admin_client.post("/admin/2fa/setup")
        data = response.json()
        assert len(data["backup_codes"]) == 8
        assert data["provisioning_uri"].startswith("otpauth://totp/")

        status = (await admin_client.get("/admin/2fa/status")).json()
        assert status["is_enabled"] is False

    async def test_full_flow(self, admin_client):
        setup = await self.enable(admin_client)

        blocked = await admin_client.get("/admin/accounts")
        assert blocked.status_code == 403
        assert blocked.json()["error_type"] == "two_factor_required"

        access = (await admin_client.get("/admin/access")).json()
        assert access["state"] == "requires_2fa_verification"

        # Status and verify only need the IP step
        status = await admin_client.get("/admin/2fa/status")
        assert status.status_code == 200
        assert status.json()["backup_codes_remaining"] == 8

        verified = await admin_client.post(
            "/admin/2fa/verify", json={"code": pyotp.TOTP(setup["secret"]).now()}
        )
        assert verified.status_code == 200
        token = verified.json()["two_factor_token"]
        assert verified.json()["expires_in_minutes"] == settings.ADMIN_2FA_SESSION_MINUTES

        admin_client.headers["X-Admin-2FA-Token"] = token
        assert (await admin_client.get("/admin/accounts")).status_code == 200
        access = (await admin_client.get("/admin/access")).json()
        assert access["state"] == "verified"
        assert access["granted"] is True

    async def test_verify_with_backup_code(self, admin_client):
        setup = await self.enable(admin_client)

        verified = await admin_client.post(
            "/admin/2fa/verify", json={"code": setup["backup_codes"][0]}
        )
        assert verified.status_code == 200

        status = (await admin_client.get("/admin/2fa/status")).json()
        assert status["backup_codes_remaining"] == 7

    async def test_verify_wrong_code(self, admin_client):
        setup = await self.enable(admin_client)
        code = pyotp.TOTP(setup["secret"]).now()
        wrong = f"{(int(code) + 500_000) % 1_000_000:06d}"

        response = await admin_client.post("/admin/2fa/verify", json={"code": wrong})
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_two_factor_code"

    async def test_verify_before_enable(self, admin_client):
        response = await admin_client.post("/admin/2fa/verify", json={"code": "123456"})
        assert response.status_code == 409
        assert response.json()["error_type"] == "two_factor_not_configured"

    async def test_token_is_per_admin(self, admin_client, super_admin_client):
        await self.enable(admin_client)
        other_setup = await self.enable(super_admin_client)
        other_token = (
            await super_admin_client.post(
                "/admin/2fa/verify", json={"code": other_setup["backup_codes"][0]}
            )
        ).json()["two_factor_token"]

        admin_client.headers["X-Admin-2FA-Token"] = other_token
        response = await admin_client.get("/admin/accounts")
        assert response.status_code == 403
        assert response.json()["error_type"] == "two_factor_required"

    async def test_disable(self, admin_client):
        setup = await self.enable(admin_client)
        token = (
            await admin_client.post(
                "/admin/2fa/verify", json={"code": setup["backup_codes"][0]}
            )
        ).json()["two_factor_token"]
        admin_client.headers["X-Admin-2FA-Token"] = token

        response = await admin_client.post(
            "/admin/2fa/disable", json={"code": setup["backup_codes"][1]}
        )
        assert response.status_code == 204

        del admin_client.headers["X-Admin-2FA-Token"]
        access = (await admin_client.get("/admin/access")).json()
        assert access["state"] == "no_2fa_required"

        logs = await admin_client.get("/admin/audit-logs", params={"action_type": "2fa_disabled"})
        assert len(logs.json()) == 1

    async def test_disable_requires_verified_session(self, admin_client):
        setup = await self.enable(admin_client)

        response = await admin_client.post(
            "/admin/2fa/disable", json={"code": setup["backup_codes"][0]}
        )
        assert response.status_code == 403
        assert response.json()["error_type"] == "two_factor_required"
