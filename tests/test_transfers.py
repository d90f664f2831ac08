"""
Tests for transfer endpoints (atomic money movement between own cards).

These tests verify:
  - A successful transfer moves the exact amount and records a COMPLETED
    transaction
  - The sum of the two balances is unchanged by a transfer
  - Blocked and expired cards can't take part in transfers
  - Transfers are declined when the source has insufficient funds
  - Failed transfers leave balances untouched and record nothing
  - Both cards must belong to the caller
  - Unknown card numbers surface as a redacted 500
  - Transfer history and single-transfer lookup respect ownership
"""

from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func, select

from bankcards.models.card import BankCard, CardStatus
from bankcards.models.transaction import Transaction
from conftest import MASTERCARD, MASTERCARD_2, VISA, VISA_2


async def _balance(session_factory, card_id: int) -> Decimal:
    async with session_factory() as session:
        return await session.scalar(select(BankCard.balance).where(BankCard.id == card_id))


async def _transaction_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Transaction))


def _transfer_body(src: str, dst: str, amount, description: str | None = None) -> dict:
    return {
        "fromCardNumber": src,
        "toCardNumber": dst,
        "amount": amount,
        "description": description,
    }


class TestTransferSuccess:

    async def test_transfer_between_own_cards(
        self, issue_card, alice, alice_client, session_factory
    ):
        src = await issue_card(alice.id, VISA, "1000")
        dst = await issue_card(alice.id, MASTERCARD, "500")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 100, "Savings")
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "COMPLETED"
        assert data["amount"] == 100
        assert data["description"] == "Savings"
        assert data["fromCardMasked"] == "**** **** **** 1111"
        assert data["toCardMasked"] == "**** **** **** 4444"
        assert len(data["transactionId"]) == 36
        assert "timestamp" in data

        assert await _balance(session_factory, src["id"]) == Decimal("900")
        assert await _balance(session_factory, dst["id"]) == Decimal("600")

        # Same result through the API
        cards = (await alice_client.get("/api/cards/my")).json()["content"]
        balances = {c["maskedCardNumber"][-4:]: c["balance"] for c in cards}
        assert balances == {"1111": 900.0, "4444": 600.0}

    async def test_sum_of_balances_is_preserved(
        self, issue_card, alice, alice_client, session_factory
    ):
        src = await issue_card(alice.id, VISA, "123.45")
        dst = await issue_card(alice.id, MASTERCARD, "0.55")
        before = await _balance(session_factory, src["id"]) + await _balance(
            session_factory, dst["id"]
        )

        for amount in ("0.01", "23.44", "50.00"):
            response = await alice_client.post(
                "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, amount)
            )
            assert response.status_code == 200

        after_src = await _balance(session_factory, src["id"])
        after_dst = await _balance(session_factory, dst["id"])
        assert after_src == Decimal("50.00")
        assert after_dst == Decimal("74.00")
        assert after_src + after_dst == before

    async def test_transfer_of_entire_balance(
        self, issue_card, alice, alice_client, session_factory
    ):
        src = await issue_card(alice.id, VISA, "75.25")
        await issue_card(alice.id, MASTERCARD, "0")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, "75.25")
        )
        assert response.status_code == 200
        assert await _balance(session_factory, src["id"]) == Decimal("0")

    async def test_description_is_optional(self, issue_card, alice, alice_client):
        await issue_card(alice.id, VISA)
        await issue_card(alice.id, MASTERCARD)

        response = await alice_client.post(
            "/api/transfers/own",
            json={"fromCardNumber": VISA, "toCardNumber": MASTERCARD, "amount": 1},
        )
        assert response.status_code == 200
        assert response.json()["description"] is None


class TestTransferRejected:

    async def test_blocked_source_card(
        self, alice, alice_client, insert_card, session_factory
    ):
        src = await insert_card(alice, VISA, "1000", status=CardStatus.BLOCKED)
        dst = await insert_card(alice, MASTERCARD, "500")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 100)
        )
        assert response.status_code == 403
        assert response.json()["message"] == (
            "Card is blocked. Only active cards can perform transfers"
        )
        assert await _balance(session_factory, src.id) == Decimal("1000")
        assert await _balance(session_factory, dst.id) == Decimal("500")

    async def test_blocked_destination_card(self, alice, alice_client, insert_card):
        await insert_card(alice, VISA, "1000")
        await insert_card(alice, MASTERCARD, "500", status=CardStatus.BLOCKED)

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 100)
        )
        assert response.status_code == 403
        assert "blocked" in response.json()["message"]

    async def test_expired_card(self, alice, alice_client, insert_card):
        await insert_card(alice, VISA, "1000", expiration_date=date.today() - timedelta(days=1))
        await insert_card(alice, MASTERCARD, "500")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 100)
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Card is expired"

    async def test_insufficient_funds(
        self, issue_card, alice, alice_client, session_factory
    ):
        src = await issue_card(alice.id, VISA, "1000")
        dst = await issue_card(alice.id, MASTERCARD, "500")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 1500)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient Funds"
        assert response.json()["message"] == "Insufficient funds"

        assert await _balance(session_factory, src["id"]) == Decimal("1000")
        assert await _balance(session_factory, dst["id"]) == Decimal("500")
        assert await _transaction_count(session_factory) == 0

    async def test_cross_owner_transfer(
        self, issue_card, alice, bob, alice_client, session_factory
    ):
        src = await issue_card(alice.id, VISA, "1000")
        dst = await issue_card(bob.id, VISA_2, "500")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, VISA_2, 100)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Operation Not Allowed"
        assert response.json()["message"] == "You can only transfer between your own cards"

        assert await _balance(session_factory, src["id"]) == Decimal("1000")
        assert await _balance(session_factory, dst["id"]) == Decimal("500")
        assert await _transaction_count(session_factory) == 0

    async def test_transfer_from_someone_elses_card(self, issue_card, alice, bob, bob_client):
        await issue_card(alice.id, VISA, "1000")
        await issue_card(bob.id, VISA_2, "500")

        response = await bob_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, VISA_2, 100)
        )
        assert response.status_code == 403

    async def test_unknown_card_is_redacted_500(self, issue_card, alice, alice_client):
        await issue_card(alice.id, VISA, "1000")

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD_2, 100)
        )
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal Server Error"
        assert body["message"] == "An unexpected error occurred"
        assert "card" not in body["message"].lower()

    async def test_amount_below_minimum_rejected(self, issue_card, alice, alice_client):
        await issue_card(alice.id, VISA)
        await issue_card(alice.id, MASTERCARD)

        for amount in (0, -10, "0.001"):
            response = await alice_client.post(
                "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, amount)
            )
            assert response.status_code == 400
            assert "amount" in response.json()

    async def test_amount_above_limit_rejected(self, issue_card, alice, alice_client):
        await issue_card(alice.id, VISA, "500000")
        await issue_card(alice.id, MASTERCARD)

        response = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, "100000.01")
        )
        assert response.status_code == 400

    async def test_requires_authentication(self, client):
        response = await client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 1)
        )
        assert response.status_code == 401


class TestTransferHistory:

    async def test_outgoing_and_incoming(self, issue_card, alice, alice_client):
        await issue_card(alice.id, VISA, "1000")
        await issue_card(alice.id, MASTERCARD, "0")

        await alice_client.post("/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 10))
        await alice_client.post("/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 20))

        outgoing = await alice_client.get("/api/transfers/my")
        assert outgoing.status_code == 200
        assert outgoing.json()["totalElements"] == 2
        assert sorted(t["amount"] for t in outgoing.json()["content"]) == [10.0, 20.0]

        incoming = await alice_client.get("/api/transfers/my?direction=incoming")
        assert incoming.json()["totalElements"] == 2

    async def test_history_is_scoped_to_caller(
        self, issue_card, alice, bob, alice_client, bob_client
    ):
        await issue_card(alice.id, VISA, "1000")
        await issue_card(alice.id, MASTERCARD, "0")
        await alice_client.post("/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, 10))

        response = await bob_client.get("/api/transfers/my")
        assert response.json()["totalElements"] == 0

    async def test_invalid_direction_rejected(self, alice_client):
        response = await alice_client.get("/api/transfers/my?direction=sideways")
        assert response.status_code == 400

    async def test_lookup_by_transaction_id(
        self, issue_card, alice, alice_client, bob_client, admin_client
    ):
        await issue_card(alice.id, VISA, "1000")
        await issue_card(alice.id, MASTERCARD, "0")
        created = await alice_client.post(
            "/api/transfers/own", json=_transfer_body(VISA, MASTERCARD, "12.34")
        )
        transaction_id = created.json()["transactionId"]

        own = await alice_client.get(f"/api/transfers/{transaction_id}")
        assert own.status_code == 200
        assert own.json()["amount"] == 12.34

        assert (await admin_client.get(f"/api/transfers/{transaction_id}")).status_code == 200
        assert (await bob_client.get(f"/api/transfers/{transaction_id}")).status_code == 403

    async def test_unknown_transaction_is_404(self, alice_client):
        response = await alice_client.get("/api/transfers/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"] == "Transaction Not Found"
