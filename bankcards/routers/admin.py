"""
Admin router — user administration.

All endpoints require ROLE_ADMIN. There is no self-service signup: users
are provisioned here by an administrator.

Endpoints:
  GET    /api/admin/users             — List all users
  GET    /api/admin/users/{user_id}   — Get one user
  POST   /api/admin/users             — Create a user
  PUT    /api/admin/users/{user_id}   — Replace a user's fields
  DELETE /api/admin/users/{user_id}   — Delete a user

Password hashes are never included in any response.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db, get_read_db
from bankcards.dependencies import require_admin
from bankcards.models.user import User
from bankcards.schemas.user import UserCreateRequest, UserResponse
from bankcards.services import user_service

router = APIRouter()


@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List all users",
)
async def admin_list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_read_db),
):
    return await user_service.list_users(db)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="[Admin] Get a user",
)
async def admin_get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_read_db),
):
    return await user_service.get_user(db, user_id)


@router.post(
    "/users",
    response_model=UserResponse,
    summary="[Admin] Create a user",
)
async def admin_create_user(
    request: UserCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a user with the given role (ROLE_USER or ROLE_ADMIN; the short
    forms USER and ADMIN are accepted too).

    - **username** / **email**: must not already be taken
    - **password**: at least 6 characters, stored as an Argon2id hash
    """
    return await user_service.create_user(db, request)


@router.put(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="[Admin] Update a user",
)
async def admin_update_user(
    user_id: int,
    request: UserCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user_id, request)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a user",
)
async def admin_delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
