"""
Authentication router — the login endpoint.

This is the only public (unauthenticated) endpoint in the API besides
/health. Accounts are created by administrators; there is no signup.

Endpoints:
  POST /api/auth/login — Authenticate and get a token

Security audit notes:
  - Plaintext passwords exist only in memory during request processing
    and are never logged.
  - JWT tokens appear only in response bodies, which are not logged.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_read_db
from bankcards.schemas.auth import AuthResponse, LoginRequest
from bankcards.services import auth_service

router = APIRouter()


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_read_db),
):
    """
    Authenticate with username and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>
    """
    user, token = await auth_service.login(
        db=db,
        username=request.username,
        password=request.password,
    )
    return AuthResponse(token=token, username=user.username, role=user.role.value)
