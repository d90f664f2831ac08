from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bankcards.models.card import BankCard
from bankcards.models.transaction import Transaction
from bankcards.pagination import Page, PageRequest
from bankcards.repositories.base import paginate

TRANSACTION_SORT_FIELDS = ("id", "timestamp", "amount", "status")

# Both card ends are needed to render masked numbers
_WITH_CARDS = (selectinload(Transaction.from_card), selectinload(Transaction.to_card))


class TransactionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, txn_id: int) -> Transaction | None:
        stmt = select(Transaction).where(Transaction.id == txn_id).options(*_WITH_CARDS)
        return (await self.session.scalars(stmt)).one_or_none()

    async def get_by_transaction_id(self, transaction_id: str) -> Transaction | None:
        stmt = (
            select(Transaction)
            .where(Transaction.transaction_id == transaction_id)
            .options(*_WITH_CARDS)
        )
        return (await self.session.scalars(stmt)).one_or_none()

    async def exists_by_card(self, card_id: int) -> bool:
        """True when the card is either end of some recorded transfer."""
        return bool(
            await self.session.scalar(
                select(
                    exists().where(
                        or_(Transaction.from_card_id == card_id, Transaction.to_card_id == card_id)
                    )
                )
            )
        )

    async def list_by_from_owner(
        self, user_id: int, page_request: PageRequest
    ) -> Page[Transaction]:
        owned = select(BankCard.id).where(BankCard.user_id == user_id)
        return await paginate(
            self.session,
            Transaction,
            [Transaction.from_card_id.in_(owned)],
            page_request,
            TRANSACTION_SORT_FIELDS,
            "timestamp",
            options=_WITH_CARDS,
        )

    async def list_by_to_owner(
        self, user_id: int, page_request: PageRequest
    ) -> Page[Transaction]:
        owned = select(BankCard.id).where(BankCard.user_id == user_id)
        return await paginate(
            self.session,
            Transaction,
            [Transaction.to_card_id.in_(owned)],
            page_request,
            TRANSACTION_SORT_FIELDS,
            "timestamp",
            options=_WITH_CARDS,
        )

    async def save(self, txn: Transaction) -> Transaction:
        self.session.add(txn)
        await self.session.flush()
        return txn
