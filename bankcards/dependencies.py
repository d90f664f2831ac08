"""
FastAPI dependencies for authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a dependency chain:

  get_current_user (JWT -> User)
      ├── get_call_context (User -> CallContext)   [any authenticated user]
      └── require_admin (User -> User)             [ROLE_ADMIN]

The token names the user (subject = username). The role is always taken
from the stored user, so a demoted admin loses admin rights immediately.

The user lookup shares the read-only unit of work (get_read_db) so it
never commits anything on behalf of the route.
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.context import CallContext
from bankcards.database import get_read_db
from bankcards.exceptions import AccessDeniedError, UnauthenticatedError
from bankcards.models.user import User
from bankcards.repositories import UserRepository
from bankcards.security import decode_access_token


# auto_error=False: a missing header is answered by our own 401 body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_read_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        UnauthenticatedError: If the token is missing, invalid or expired,
            or the user no longer exists or is disabled.
    """
    if not token:
        raise UnauthenticatedError()

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise UnauthenticatedError("Could not validate credentials")

    username: str | None = payload.get("sub")
    if not username:
        raise UnauthenticatedError("Could not validate credentials")

    user = await UserRepository(db).get_by_username(username)
    if user is None or not user.enabled:
        raise UnauthenticatedError("Could not validate credentials")

    return user


async def get_call_context(user: User = Depends(get_current_user)) -> CallContext:
    """The caller identity handed to the service layer."""
    return CallContext.for_role(user.username, user.role)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """
    Require the authenticated user to have ROLE_ADMIN.

    Raises:
        AccessDeniedError: If the user is not an admin.
    """
    if not user.is_admin:
        raise AccessDeniedError("Admin access required")
    return user
