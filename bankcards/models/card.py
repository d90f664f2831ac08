"""
BankCard model — a payment card owned by exactly one User.

Card numbers (PANs) are never stored in clear:

  - card_number_encrypted: Base64 AES-CBC ciphertext of the full PAN,
    reversible for display and audit
  - card_number_hash: lowercase hex SHA-256 of the PAN, globally unique,
    used for duplicate detection and transfer lookups
  - last_four_digits: the final four digits in plaintext for masking

The balance is an exact decimal (precision 15, scale 2).

Lifecycle hooks (mapper events below):
  - on insert: created_at = updated_at = now, status defaults to ACTIVE
  - on every update: updated_at = now, and the status is forced to
    EXPIRED when the expiration date is already in the past
"""

import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String, Integer, Date, DateTime, Enum, ForeignKey, Numeric, event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base


class CardStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    EXPIRED = "EXPIRED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BankCard(Base):
    __tablename__ = "bank_cards"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    card_number_encrypted: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    card_number_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    last_four_digits: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
    )

    card_holder_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    expiration_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[CardStatus] = mapped_column(
        Enum(CardStatus),
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Loaded eagerly with the card: ownership checks need the username
    user: Mapped["User"] = relationship(lazy="joined", innerjoin=True)

    @property
    def masked_card_number(self) -> str:
        return f"**** **** **** {self.last_four_digits}"

    def is_expired(self, today: date | None = None) -> bool:
        return self.expiration_date < (today or date.today())


@event.listens_for(BankCard, "before_insert")
def _card_before_insert(mapper, connection, card: BankCard) -> None:
    now = _utcnow()
    card.created_at = now
    card.updated_at = now
    if card.status is None:
        card.status = CardStatus.ACTIVE


@event.listens_for(BankCard, "before_update")
def _card_before_update(mapper, connection, card: BankCard) -> None:
    card.updated_at = _utcnow()
    if card.is_expired():
        card.status = CardStatus.EXPIRED
