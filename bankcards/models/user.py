"""
User model — the authentication identity and card owner.

Each User has a unique username (the login identifier) and a unique email,
a password verifier (never the plaintext), a display name and exactly one
role. Users are created, changed and deleted by administrators only;
deletion is a hard delete.

The password is stored as an Argon2id hash.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column

from bankcards.database import Base


class Role(str, enum.Enum):
    """
    The role a user holds. The values are the authority strings carried
    in the caller context and in the login response.
    """
    USER = "ROLE_USER"
    ADMIN = "ROLE_ADMIN"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    first_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(50), nullable=True)

    role: Mapped[Role] = mapped_column(
        Enum(Role),
        default=Role.USER,
        nullable=False,
    )

    # Disabled users can't log in
    enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
