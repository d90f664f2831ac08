"""
Authentication service — login business logic.

Login flow:
  1. Look up user by username
  2. Verify password against the stored Argon2id hash
  3. Refuse disabled users
  4. Return a JWT whose subject is the username and which carries the role

Security notes:
  - Login returns the same error for "wrong password", "unknown user" and
    "disabled user" to prevent user enumeration
  - JWT tokens are stateless; the stored role is re-read on every request
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.exceptions import InvalidCredentialsError
from bankcards.models.user import User
from bankcards.repositories import UserRepository
from bankcards.security import create_access_token, verify_password

logger = structlog.get_logger()


async def login(
    db: AsyncSession,
    username: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Args:
        db: Database session.
        username: Login name.
        password: Plaintext password to verify.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        InvalidCredentialsError: If the user doesn't exist, is disabled,
            or the password is wrong.
    """
    user = await UserRepository(db).get_by_username(username)

    if user is None or not verify_password(password, user.hashed_password):
        logger.info("login_failed", username=username)
        raise InvalidCredentialsError()

    if not user.enabled:
        logger.info("login_failed", username=username, reason="disabled")
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": user.username, "role": user.role.value})
    logger.info("login_succeeded", username=username)
    return user, token
