"""
Tests for integer-cent precision — no floating point anywhere.

These tests verify that the system uses integer arithmetic exclusively
for monetary amounts. Floating point representations of money cause
rounding errors (e.g., 0.1 + 0.2 = 0.30000000000000004). By storing
everything in integer cents, we guarantee exact arithmetic.

Tests verify:
  - All amounts are integers in responses
  - Fractional cents are rejected at the API boundary
  - Large cent values work correctly
  - Repeated small deposits don't accumulate rounding errors
  - Balance = exact sum of all transaction rows, fees included
"""

import pytest

from helpers import deposit, primary_account


EXTERNAL = {
    "recipient_name": "Acme Corp",
    "recipient_account": "123456789",
    "recipient_routing": "021000021",
    "recipient_bank": "Chase",
}


class TestIntegerCentPrecision:
    """Tests that all monetary operations use integer cents exactly."""

    async def test_all_amounts_are_integers(self, privileged_client):
        """Every monetary field in the response should be an integer, never a float."""
        await deposit(privileged_client, 1050)
        sent = await privileged_client.post(
            "/transfers/external", json={"amount_cents": 333, **EXTERNAL}
        )
        data = sent.json()
        assert isinstance(data["new_balance_cents"], int)
        assert isinstance(data["fee_cents"], int)
        assert isinstance(data["transactions"][0]["amount_cents"], int)

        account = await primary_account(privileged_client)
        balance = await privileged_client.get(f"/accounts/{account['id']}/balance")
        bal_data = balance.json()
        assert isinstance(bal_data["balance_cents"], int)
        assert isinstance(bal_data["computed_balance_cents"], int)

    @pytest.mark.parametrize("amount", [10.5, "10.5", 0.01])
    async def test_fractional_cents_rejected(self, privileged_client, amount):
        response = await privileged_client.post("/deposits", json={"amount_cents": amount})
        assert response.status_code == 422

    async def test_large_values(self, privileged_client):
        """System should handle large cent values without overflow or precision loss."""
        # Deposit $1,000,000.00 (100 million cents)
        large_amount = 100_000_000
        await deposit(privileged_client, large_amount)

        # Send $999,999.99
        sent = await privileged_client.post(
            "/transfers/external", json={"amount_cents": 99_999_999, **EXTERNAL}
        )
        assert sent.status_code == 201
        assert sent.json()["new_balance_cents"] == 1  # Exactly 1 cent left
        # 1.5% of 99,999,999 is 1,499,999.985, rounded half-up
        assert sent.json()["fee_cents"] == 1_500_000

    async def test_no_rounding_errors_with_repeated_small_deposits(self, privileged_client):
        """Repeated small amounts should sum exactly — no floating point drift.

        In floating point: 0.10 * 100 might not equal 10.00 exactly.
        In integer cents: 10 * 100 = 1000 always.
        """
        # Deposit 1 cent, 100 times
        for _ in range(100):
            await deposit(privileged_client, 1)

        account = await primary_account(privileged_client)
        assert account["balance_cents"] == 100  # Exactly $1.00

    async def test_sum_verification_after_mixed_operations(
        self, privileged_client, second_member_client
    ):
        """Stored balance equals the sum of every row after deposits, transfers and a reversal."""
        await deposit(privileged_client, 10_001)
        await deposit(privileged_client, 2_999)

        recipient = await primary_account(second_member_client)
        await privileged_client.post(
            "/transfers/internal",
            json={"recipient_account_number": recipient["account_number"], "amount_cents": 1_234},
        )
        sent = await privileged_client.post(
            "/transfers/external", json={"amount_cents": 567, **EXTERNAL}
        )
        await privileged_client.post(
            "/transfers/external", json={"amount_cents": 89, **EXTERNAL}
        )
        await privileged_client.post(
            "/reversals", json={"transaction_id": sent.json()["transactions"][0]["id"]}
        )

        account = await primary_account(privileged_client)
        balance = (await privileged_client.get(f"/accounts/{account['id']}/balance")).json()
        # 10001 + 2999 - 1234 - 567 - 89 + 567
        assert balance["balance_cents"] == 11_677
        assert balance["computed_balance_cents"] == 11_677
        assert balance["match"] is True

    async def test_transfer_preserves_total_money_supply(
        self, privileged_client, second_member_client
    ):
        """Internal transfers move money between members without creating or destroying any."""
        await deposit(privileged_client, 50_000)
        sender = await primary_account(privileged_client)
        recipient = await primary_account(second_member_client)

        for amount in (1, 999, 12_345, 7):
            response = await privileged_client.post(
                "/transfers/internal",
                json={"recipient_account_number": recipient["account_number"], "amount_cents": amount},
            )
            assert response.status_code == 200

        sender_after = await primary_account(privileged_client)
        recipient_after = await primary_account(second_member_client)
        assert sender_after["balance_cents"] + recipient_after["balance_cents"] == 50_000
        assert recipient_after["balance_cents"] == 13_352
        assert sender_after["id"] == sender["id"]
