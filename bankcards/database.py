"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - engine: The async database engine (connection pool for production DBs)
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency providing a read-write unit of work
  - get_read_db(): FastAPI dependency providing a read-only unit of work

Unit of work:
  Each API request gets its own session. Mutating endpoints use get_db(),
  which commits on success and rolls back on ANY exception, so a failed
  transfer never leaves one balance updated without the other. Read-only
  endpoints use get_read_db(), which never commits.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from bankcards.config import settings


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.

    SQLite ignores REFERENCES clauses unless PRAGMA foreign_keys is set
    per connection. Other backends are left untouched.
    """
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# echo=True in debug mode logs all SQL statements
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)
enable_sqlite_foreign_keys(engine)

# Cards and transfers are serialized after the commit; their attributes
# must stay loaded (no implicit IO in async code).
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a read-write unit of work.

    Usage in a route:
        @router.post("/items")
        async def create_item(db: AsyncSession = Depends(get_db)):
            ...

    The session is committed on success and rolled back on any
    exception, then closed when the request completes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_read_db():
    """
    FastAPI dependency that provides a read-only unit of work.

    Nothing is ever committed; the transaction is rolled back on exit.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
