from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.models.card import BankCard, CardStatus
from bankcards.models.user import User
from bankcards.pagination import Page, PageRequest
from bankcards.repositories.base import paginate

CARD_SORT_FIELDS = (
    "id",
    "created_at",
    "updated_at",
    "expiration_date",
    "balance",
    "status",
    "card_holder_name",
)


def _owner_id(owner: User | int) -> int:
    return owner.id if isinstance(owner, User) else owner


class CardRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, card_id: int) -> BankCard | None:
        return await self.session.get(BankCard, card_id)

    async def get_by_hash(self, card_number_hash: str) -> BankCard | None:
        stmt = select(BankCard).where(BankCard.card_number_hash == card_number_hash)
        return (await self.session.scalars(stmt)).one_or_none()

    async def exists_by_hash(self, card_number_hash: str) -> bool:
        return bool(
            await self.session.scalar(
                select(exists().where(BankCard.card_number_hash == card_number_hash))
            )
        )

    async def exists_by_owner(self, owner: User | int) -> bool:
        return bool(
            await self.session.scalar(
                select(exists().where(BankCard.user_id == _owner_id(owner)))
            )
        )

    async def list_all(self, page_request: PageRequest) -> Page[BankCard]:
        return await paginate(
            self.session, BankCard, [], page_request, CARD_SORT_FIELDS, "created_at"
        )

    async def list_by_owner(
        self, owner: User | int, page_request: PageRequest
    ) -> Page[BankCard]:
        return await paginate(
            self.session,
            BankCard,
            [BankCard.user_id == _owner_id(owner)],
            page_request,
            CARD_SORT_FIELDS,
            "created_at",
        )

    async def list_by_status(
        self, status: CardStatus, page_request: PageRequest
    ) -> Page[BankCard]:
        return await paginate(
            self.session,
            BankCard,
            [BankCard.status == status],
            page_request,
            CARD_SORT_FIELDS,
            "created_at",
        )

    async def list_by_owner_and_status(
        self, owner: User | int, status: CardStatus, page_request: PageRequest
    ) -> Page[BankCard]:
        return await paginate(
            self.session,
            BankCard,
            [BankCard.user_id == _owner_id(owner), BankCard.status == status],
            page_request,
            CARD_SORT_FIELDS,
            "created_at",
        )

    async def list_expiring_before(self, before: date) -> list[BankCard]:
        stmt = (
            select(BankCard)
            .where(BankCard.expiration_date < before)
            .order_by(BankCard.expiration_date, BankCard.id)
        )
        return list((await self.session.scalars(stmt)).all())

    async def lock_for_update(self, card_ids: list[int]) -> dict[int, BankCard]:
        """
        Re-read cards with row locks, always in ascending id order so two
        transfers over the same pair of cards cannot deadlock.

        SELECT ... FOR UPDATE is a no-op on SQLite.
        """
        locked: dict[int, BankCard] = {}
        for card_id in sorted(set(card_ids)):
            stmt = (
                select(BankCard)
                .where(BankCard.id == card_id)
                .with_for_update(of=BankCard)
                .execution_options(populate_existing=True)
            )
            card = (await self.session.scalars(stmt)).one_or_none()
            if card is not None:
                locked[card_id] = card
        return locked

    async def debit(self, card: BankCard, amount: Decimal) -> bool:
        """
        Atomically subtract amount from the card's balance, but only if the
        stored balance covers it. Returns False when no row was changed.
        """
        result = await self.session.execute(
            update(BankCard)
            .where(BankCard.id == card.id, BankCard.balance >= amount)
            .values(
                balance=BankCard.balance - amount,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.session.refresh(card)
        return True

    async def credit(self, card: BankCard, amount: Decimal) -> None:
        await self.session.execute(
            update(BankCard)
            .where(BankCard.id == card.id)
            .values(
                balance=BankCard.balance + amount,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(card)

    async def save(self, card: BankCard) -> BankCard:
        self.session.add(card)
        await self.session.flush()
        return card

    async def delete(self, card: BankCard) -> None:
        await self.session.delete(card)
        await self.session.flush()
