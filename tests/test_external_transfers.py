"""
Tests for external transfers (to accounts at other banks).

These tests verify:
  - The sender is debited the full amount; the 1.5% fee is recorded and
    disclosed in the description
  - Fee rounding is half-up on integer cents
  - Checks run amount -> limit -> balance, and a refused transfer leaves
    no trace
  - Account, routing and country formats are validated before anything runs
"""

import pytest

from unitedbank.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    TransferLimitExceededError,
)
from unitedbank.services import ledger_service
from unitedbank.services.ledger_service import compute_transfer_fee, get_transfer_limit

from helpers import create_member, deposit, fund, primary_account


def external_payload(amount_cents: int, **overrides) -> dict:
    payload = {
        "amount_cents": amount_cents,
        "recipient_name": "Acme Corp",
        "recipient_account": "000123456789",
        "recipient_routing": "021000021",
        "recipient_bank": "Chase",
    }
    payload.update(overrides)
    return payload


class TestTransferFee:

    @pytest.mark.parametrize(
        "amount, fee",
        [
            (10_000, 150),
            (33, 0),
            (34, 1),
            (100, 2),
            (1, 0),
            (200_000_000, 3_000_000),
        ],
    )
    def test_fee_rounds_half_up(self, amount, fee):
        assert compute_transfer_fee(amount) == fee

    def test_limit_is_the_same_for_every_tier(self):
        assert get_transfer_limit("free", "personal") == 200_000_000
        assert get_transfer_limit("enterprise", "business") == 200_000_000


class TestExternalTransferEndpoint:
    """Tests for POST /transfers/external."""

    async def test_successful_transfer(self, privileged_client):
        await deposit(privileged_client, 20_000)

        response = await privileged_client.post(
            "/transfers/external", json=external_payload(10_000)
        )
        assert response.status_code == 201
        data = response.json()
        assert data["fee_cents"] == 150
        assert data["new_balance_cents"] == 10_000
        assert data["recipient_name"] == "Acme Corp"
        assert data["message"] == "Successfully sent $100.00 to Acme Corp"

        txn = data["transactions"][0]
        assert txn["type"] == "transfer"
        assert txn["amount_cents"] == -10_000
        assert txn["fee_cents"] == 150
        assert txn["description"] == "Transfer to Acme Corp (Fee: $1.50)"
        assert txn["recipient_account"] == "000123456789"
        assert txn["recipient_routing"] == "021000021"
        assert txn["recipient_bank"] == "Chase"
        assert txn["transfer_pair_id"] is None

    async def test_custom_description_gets_fee_suffix(self, privileged_client):
        await deposit(privileged_client, 1_000)

        response = await privileged_client.post(
            "/transfers/external",
            json=external_payload(1_000, description="Invoice 42"),
        )
        assert response.json()["transactions"][0]["description"] == "Invoice 42 (Fee: $0.15)"

    async def test_international_transfer(self, privileged_client):
        await deposit(privileged_client, 5_000)

        response = await privileged_client.post(
            "/transfers/external",
            json=external_payload(5_000, recipient_country="GB"),
        )
        assert response.status_code == 201
        assert response.json()["transactions"][0]["recipient_country"] == "GB"
        assert response.json()["new_balance_cents"] == 0

    async def test_no_privilege_needed_to_transfer(self, member_client):
        """An unprivileged member is refused for lack of funds, not permission."""
        response = await member_client.post("/transfers/external", json=external_payload(1))
        assert response.status_code == 422
        assert response.json()["error_type"] == "insufficient_funds"

    async def test_insufficient_funds(self, privileged_client):
        await deposit(privileged_client, 999)

        response = await privileged_client.post(
            "/transfers/external", json=external_payload(1_000)
        )
        assert response.status_code == 422
        data = response.json()
        assert data["detail"] == "Insufficient funds"
        assert data["requested_cents"] == 1_000
        assert data["available_cents"] == 999

        account = await primary_account(privileged_client)
        assert account["balance_cents"] == 999
        history = await privileged_client.get(
            f"/accounts/{account['id']}/transactions", params={"type": "transfer"}
        )
        assert history.json() == []

    async def test_limit_checked_before_balance(self, member_client):
        response = await member_client.post(
            "/transfers/external", json=external_payload(200_000_001)
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "transfer_limit_exceeded"
        assert response.json()["limit_cents"] == 200_000_000

    async def test_amount_at_limit_is_allowed_through_to_balance_check(self, member_client):
        response = await member_client.post(
            "/transfers/external", json=external_payload(200_000_000)
        )
        assert response.json()["error_type"] == "insufficient_funds"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"recipient_routing": "12345"},
            {"recipient_routing": "02100002A"},
            {"recipient_account": "123"},
            {"recipient_account": "123456789012345678"},
            {"recipient_account": "12-3456"},
            {"recipient_country": "usa"},
            {"recipient_name": ""},
            {"amount_cents": 0},
        ],
    )
    async def test_invalid_fields_rejected(self, privileged_client, overrides):
        await deposit(privileged_client, 10_000)

        response = await privileged_client.post(
            "/transfers/external", json={**external_payload(100), **overrides}
        )
        assert response.status_code == 422

        account = await primary_account(privileged_client)
        assert account["balance_cents"] == 10_000


class TestExternalTransferService:
    """ledger_service.external_transfer called directly."""

    async def transfer(self, db, ctx, amount_cents):
        return await ledger_service.external_transfer(
            db, ctx, amount_cents,
            recipient_name="Acme Corp",
            recipient_account="123456789",
            recipient_routing="021000021",
            recipient_bank="Chase",
        )

    async def test_invalid_amount_checked_first(self, db_session):
        ctx = await create_member(db_session, "plain@example.com", "Plain Member")

        with pytest.raises(InvalidAmountError):
            await self.transfer(db_session, ctx, -5)

    async def test_limit_exceeded(self, db_session):
        ctx = await create_member(db_session, "plain@example.com", "Plain Member")
        await fund(db_session, ctx, 300_000_000)

        with pytest.raises(TransferLimitExceededError):
            await self.transfer(db_session, ctx, 200_000_001)
        assert ctx.account.balance_cents == 300_000_000

    async def test_insufficient_funds(self, db_session):
        ctx = await create_member(db_session, "plain@example.com", "Plain Member")
        await fund(db_session, ctx, 50)

        with pytest.raises(InsufficientFundsError):
            await self.transfer(db_session, ctx, 51)

    async def test_exact_balance_can_be_sent(self, db_session):
        ctx = await create_member(db_session, "plain@example.com", "Plain Member")
        await fund(db_session, ctx, 10_000)

        result = await self.transfer(db_session, ctx, 10_000)

        assert result.new_balance_cents == 0
        assert result.fee_cents == 150
        [email] = result.notifications
        assert email.type == "sent"
        assert email.recipient_name == "Acme Corp"
        assert email.amount_cents == 10_000
