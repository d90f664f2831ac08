"""
User administration service.

Users are created, changed and deleted by administrators only; there is no
self-service signup. Username and email are unique across all users.
Passwords are hashed with Argon2id before they reach the database and are
re-hashed on every update.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.config import Settings
from bankcards.exceptions import DuplicateUserError, OperationNotAllowedError, UserNotFoundError
from bankcards.models.user import Role, User
from bankcards.repositories import CardRepository, UserRepository
from bankcards.schemas.user import UserCreateRequest
from bankcards.security import hash_password

logger = structlog.get_logger()


async def _get_user_or_404(users: UserRepository, user_id: int) -> User:
    user = await users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(f"User not found with id: {user_id}")
    return user


async def list_users(db: AsyncSession) -> list[User]:
    return await UserRepository(db).list_all()


async def get_user(db: AsyncSession, user_id: int) -> User:
    return await _get_user_or_404(UserRepository(db), user_id)


async def create_user(db: AsyncSession, request: UserCreateRequest) -> User:
    """
    Create a user with the requested role.

    Raises:
        DuplicateUserError: If the username or the email is already taken.
    """
    users = UserRepository(db)
    if await users.exists_by_username(request.username):
        raise DuplicateUserError("Username already exists")
    if await users.exists_by_email(request.email):
        raise DuplicateUserError("Email already exists")

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role,
        enabled=True,
    )
    user = await users.save(user)
    logger.info("user_created", user_id=user.id, username=user.username, role=user.role.value)
    return user


async def update_user(db: AsyncSession, user_id: int, request: UserCreateRequest) -> User:
    """
    Replace a user's fields. Uniqueness is only re-checked for the
    username/email values that actually change.

    Raises:
        UserNotFoundError: If user_id doesn't exist.
        DuplicateUserError: If the new username or email belongs to someone else.
    """
    users = UserRepository(db)
    user = await _get_user_or_404(users, user_id)

    if request.username != user.username and await users.exists_by_username(request.username):
        raise DuplicateUserError("Username already exists")
    if request.email != user.email and await users.exists_by_email(request.email):
        raise DuplicateUserError("Email already exists")

    user.username = request.username
    user.email = request.email
    user.hashed_password = hash_password(request.password)
    user.first_name = request.first_name
    user.last_name = request.last_name
    user.role = request.role

    user = await users.save(user)
    logger.info("user_updated", user_id=user.id, username=user.username, role=user.role.value)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Hard-delete a user. Users who still own cards are refused; their
    cards must be deleted first.

    Raises:
        UserNotFoundError: If user_id doesn't exist.
        OperationNotAllowedError: If the user owns any card.
    """
    users = UserRepository(db)
    if not await users.exists_by_id(user_id):
        raise UserNotFoundError(f"User not found with id: {user_id}")
    if await CardRepository(db).exists_by_owner(user_id):
        raise OperationNotAllowedError("User has cards")
    await users.delete_by_id(user_id)
    logger.info("user_deleted", user_id=user_id)


async def ensure_bootstrap_admin(db: AsyncSession, settings: Settings) -> User | None:
    """
    Create the configured first administrator if it doesn't exist yet.

    Does nothing unless all three BOOTSTRAP_ADMIN_* settings are present.
    Returns the created user, or None.
    """
    username = settings.BOOTSTRAP_ADMIN_USERNAME
    password = settings.BOOTSTRAP_ADMIN_PASSWORD
    email = settings.BOOTSTRAP_ADMIN_EMAIL
    if not (username and password and email):
        return None

    users = UserRepository(db)
    if await users.exists_by_username(username):
        return None

    admin = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        role=Role.ADMIN,
        enabled=True,
    )
    admin = await users.save(admin)
    logger.info("bootstrap_admin_created", user_id=admin.id, username=username)
    return admin
