"""
Pydantic schemas for the login endpoint.

There is no self-service signup: accounts are created by administrators.
"""

from pydantic import Field

from bankcards.schemas.common import CamelModel


class LoginRequest(CamelModel):
    """Request body for POST /api/auth/login."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AuthResponse(CamelModel):
    """Response body for a successful login — contains the JWT."""
    token: str
    username: str
    role: str
    message: str = "Login successful"
