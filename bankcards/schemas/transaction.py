"""
Pydantic schemas for Transfer endpoints.

Amounts are exact decimals with at most two fractional digits.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from bankcards.models.transaction import Transaction, TransactionStatus
from bankcards.schemas.common import CamelModel, Money


class TransferRequest(CamelModel):
    """Request body for POST /api/transfers/own."""
    from_card_number: str = Field(pattern=r"^\d{16}$")
    to_card_number: str = Field(pattern=r"^\d{16}$")
    amount: Decimal = Field(
        ge=Decimal("0.01"),
        le=Decimal("100000"),
        max_digits=15,
        decimal_places=2,
    )
    description: str | None = Field(default=None, max_length=255)


class TransactionResponse(CamelModel):
    """Public representation of a transfer; card numbers are masked."""
    transaction_id: str
    from_card_masked: str
    to_card_masked: str
    amount: Money
    timestamp: datetime
    status: TransactionStatus
    description: str | None

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionResponse":
        return cls(
            transaction_id=txn.transaction_id,
            from_card_masked=txn.from_card.masked_card_number,
            to_card_masked=txn.to_card.masked_card_number,
            amount=txn.amount,
            timestamp=txn.timestamp,
            status=txn.status,
            description=txn.description,
        )
