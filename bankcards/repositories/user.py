from sqlalchemy import delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.models.user import User


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> User | None:
        """Retrieves a User by their primary ID."""
        return await self.session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        """Retrieves a User by their unique username (login ID)."""
        stmt = select(User).where(User.username == username)
        return (await self.session.scalars(stmt)).one_or_none()

    async def exists_by_id(self, user_id: int) -> bool:
        return bool(await self.session.scalar(select(exists().where(User.id == user_id))))

    async def exists_by_username(self, username: str) -> bool:
        return bool(
            await self.session.scalar(select(exists().where(User.username == username)))
        )

    async def exists_by_email(self, email: str) -> bool:
        return bool(await self.session.scalar(select(exists().where(User.email == email))))

    async def list_all(self) -> list[User]:
        return list((await self.session.scalars(select(User).order_by(User.id))).all())

    async def save(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        return user

    async def delete_by_id(self, user_id: int) -> None:
        await self.session.execute(delete(User).where(User.id == user_id))
        await self.session.flush()
