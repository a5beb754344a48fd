"""
Tests for deposits and the can_deposit privilege.

These tests verify:
  - A member holding can_deposit can credit their primary account
  - Everyone else gets 403 "Unable to add money" and nothing changes
  - The amount is checked before the privilege
  - Privileges are read on every request, so a grant applies immediately
  - A deposit writes exactly one positive "deposit" row and queues one email
"""

from unittest.mock import AsyncMock, patch

import pytest

from unitedbank.exceptions import InvalidAmountError, PermissionDeniedError
from unitedbank.services import ledger_service

from helpers import create_member, deposit, grant_privileges, primary_account


class TestDepositEndpoint:
    """Tests for POST /deposits."""

    async def test_privileged_deposit(self, privileged_client):
        response = await privileged_client.post("/deposits", json={"amount_cents": 5_000})
        assert response.status_code == 201
        data = response.json()
        assert data["new_balance_cents"] == 5_000
        assert len(data["transactions"]) == 1

        txn = data["transactions"][0]
        assert txn["type"] == "deposit"
        assert txn["amount_cents"] == 5_000
        assert txn["status"] == "completed"
        assert txn["description"] == "Deposit"
        assert txn["reference_number"].startswith("TXN")

    async def test_deposit_with_description(self, privileged_client):
        data = await privileged_client.post(
            "/deposits", json={"amount_cents": 100, "description": "Paycheck"}
        )
        assert data.json()["transactions"][0]["description"] == "Paycheck"

    async def test_deposits_accumulate(self, privileged_client):
        await deposit(privileged_client, 1_000)
        result = await deposit(privileged_client, 2_500)
        assert result["new_balance_cents"] == 3_500

        account = await primary_account(privileged_client)
        assert account["balance_cents"] == 3_500

    async def test_unprivileged_deposit_refused(self, member_client):
        response = await member_client.post("/deposits", json={"amount_cents": 5_000})
        assert response.status_code == 403
        assert response.json()["detail"] == "Unable to add money"
        assert response.json()["error_type"] == "permission_denied"

        account = await primary_account(member_client)
        assert account["balance_cents"] == 0
        history = await member_client.get(f"/accounts/{account['id']}/transactions")
        assert history.json() == []

    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_amount_rejected(self, privileged_client, amount):
        response = await privileged_client.post("/deposits", json={"amount_cents": amount})
        assert response.status_code == 422

    async def test_grant_applies_on_next_request(self, member_client, session_factory):
        refused = await member_client.post("/deposits", json={"amount_cents": 100})
        assert refused.status_code == 403

        await grant_privileges(session_factory, "testuser@example.com", can_deposit=True)

        accepted = await member_client.post("/deposits", json={"amount_cents": 100})
        assert accepted.status_code == 201

    async def test_reversal_privilege_alone_does_not_allow_deposits(
        self, member_client, session_factory
    ):
        await grant_privileges(
            session_factory,
            "testuser@example.com",
            can_request_reversal=True,
            instant_reversal=True,
        )
        response = await member_client.post("/deposits", json={"amount_cents": 100})
        assert response.status_code == 403


class TestDepositService:
    """ledger_service.deposit called directly."""

    async def test_amount_checked_before_privilege(self, db_session):
        ctx = await create_member(db_session, "plain@example.com", "Plain Member")

        with pytest.raises(InvalidAmountError):
            await ledger_service.deposit(db_session, ctx, 0)

    async def test_permission_denied(self, db_session):
        ctx = await create_member(db_session, "plain@example.com", "Plain Member")

        with pytest.raises(PermissionDeniedError, match="Unable to add money"):
            await ledger_service.deposit(db_session, ctx, 100)
        assert ctx.account.balance_cents == 0

    async def test_deposit_returns_notification(self, db_session):
        ctx = await create_member(
            db_session, "rich@example.com", "Rich Member", can_deposit=True
        )

        result = await ledger_service.deposit(db_session, ctx, 2_000, "Birthday")

        assert result.new_balance_cents == 2_000
        assert result.transaction.amount_cents == 2_000
        [email] = result.notifications
        assert email.type == "deposit"
        assert email.email == "rich@example.com"
        assert email.name == "Rich Member"
        assert email.amount_cents == 2_000
        assert email.description == "Birthday"
        assert email.reference_number == result.transaction.reference_number


class TestDepositNotification:

    async def test_email_sent_after_deposit(self, privileged_client):
        with patch(
            "unitedbank.services.notification_service.send_email_notification",
            AsyncMock(return_value=True),
        ) as send:
            await deposit(privileged_client, 750)

        send.assert_awaited_once()
        notification = send.await_args.args[0]
        assert notification.type == "deposit"
        assert notification.amount_cents == 750

    async def test_no_email_when_refused(self, member_client):
        with patch(
            "unitedbank.services.notification_service.send_email_notification",
            AsyncMock(return_value=True),
        ) as send:
            await member_client.post("/deposits", json={"amount_cents": 750})

        send.assert_not_awaited()
