"""
Transaction model — the durable record of a transfer between two cards.

A Transaction is append-only: once persisted it is never updated or
deleted. Each one carries two identifiers:

  - id: the internal integer primary key
  - transaction_id: the client-visible string id, a random UUID4 in its
    canonical hyphenated form

The timestamp is set on insert; status defaults to PENDING when unset,
but transfers always record COMPLETED (a failed transfer rolls back and
leaves no record at all).
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, DateTime, Enum, ForeignKey, Numeric, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    transaction_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        nullable=False,
        index=True,
    )

    from_card_id: Mapped[int] = mapped_column(
        ForeignKey("bank_cards.id"),
        nullable=False,
        index=True,
    )

    to_card_id: Mapped[int] = mapped_column(
        ForeignKey("bank_cards.id"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Never lazy-loaded implicitly (async); queries that need the cards
    # load them with selectinload
    from_card: Mapped["BankCard"] = relationship(
        foreign_keys=[from_card_id],
        lazy="raise",
    )
    to_card: Mapped["BankCard"] = relationship(
        foreign_keys=[to_card_id],
        lazy="raise",
    )


@event.listens_for(Transaction, "before_insert")
def _transaction_before_insert(mapper, connection, txn: Transaction) -> None:
    txn.timestamp = datetime.now(timezone.utc)
    if txn.status is None:
        txn.status = TransactionStatus.PENDING
