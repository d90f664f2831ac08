"""
Pydantic schemas for Card endpoints.

Card numbers are NEVER returned in API responses, neither in clear nor
encrypted. Only the masked representation built from the last four
digits is exposed:

    "**** **** **** 1111"
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_validator

from bankcards.models.card import BankCard, CardStatus
from bankcards.schemas.common import CamelModel, Money


class CardCreateRequest(CamelModel):
    """Request body for POST /api/cards."""
    card_number: str = Field(pattern=r"^\d{16}$", description="16-digit card number")
    card_holder_name: str = Field(min_length=2, max_length=100)
    expiration_date: date
    user_id: int = Field(gt=0)
    initial_balance: Decimal = Field(
        ge=Decimal("0"),
        le=Decimal("1000000"),
        max_digits=15,
        decimal_places=2,
    )

    @field_validator("expiration_date")
    @classmethod
    def expiration_must_be_future(cls, value: date) -> date:
        if value <= date.today():
            raise ValueError("Expiration date must be in the future")
        return value


class CardResponse(CamelModel):
    """Public representation of a card (masked)."""
    id: int
    masked_card_number: str
    card_holder_name: str
    expiration_date: date
    status: CardStatus
    balance: Money
    created_at: datetime
    updated_at: datetime
    user_id: int

    @classmethod
    def from_card(cls, card: BankCard) -> "CardResponse":
        return cls(
            id=card.id,
            masked_card_number=card.masked_card_number,
            card_holder_name=card.card_holder_name,
            expiration_date=card.expiration_date,
            status=card.status,
            balance=card.balance,
            created_at=card.created_at,
            updated_at=card.updated_at,
            user_id=card.user_id,
        )
