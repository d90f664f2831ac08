"""
Pydantic schemas for user administration.

hashed_password is NEVER included in any response schema.
"""

from pydantic import EmailStr, Field, field_validator

from bankcards.models.user import Role
from bankcards.schemas.common import CamelModel


class UserCreateRequest(CamelModel):
    """Request body for POST and PUT /api/admin/users."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)
    email: EmailStr
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def accept_short_role_names(cls, value):
        # "ADMIN" and "ROLE_ADMIN" both name the admin role
        if isinstance(value, str) and not value.upper().startswith("ROLE_"):
            return f"ROLE_{value.upper()}"
        return value


class UserResponse(CamelModel):
    """Public representation of a User (never includes the password hash)."""
    id: int
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    role: Role
    enabled: bool
