"""
MeMantra Backend — Admin User Route Handlers
==============================================

What:  /api/users — admin-only CRUD over every account.
How:   Each handler requires `AdminUser` (401 without a token, 403 for
       non-admins) and delegates to UserService.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import AdminUser
from app.schemas.auth import RegisterRequest, UserOut
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.user import (
    UserData,
    UserDetailResponse,
    UserListData,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users (admin)"])

_admin_responses = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Admin access required", "model": ErrorResponse},
}
_not_found = {
    **_admin_responses,
    404: {"description": "User not found", "model": ErrorResponse},
}

UserId = Annotated[int, Path(gt=0, description="User id")]


@router.get("", response_model=UserListResponse, responses=_admin_responses, summary="List users")
async def list_users(
    admin: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users = await user_service.list_users(db)
    return UserListResponse(data=UserListData(users=[UserOut.model_validate(u) for u in users]))


@router.get("/{user_id}", response_model=UserDetailResponse, responses=_not_found, summary="Get a user")
async def get_user(
    admin: AdminUser,
    user_id: UserId,
    db: AsyncSession = Depends(get_db_session),
) -> UserDetailResponse:
    user = await user_service.get_user(db, user_id)
    return UserDetailResponse(data=UserData(user=UserOut.model_validate(user)))


@router.post(
    "",
    status_code=201,
    response_model=UserResponse,
    responses={
        **_admin_responses,
        400: {"description": "Invalid body, email or username taken", "model": ErrorResponse},
    },
    summary="Create a user",
)
async def create_user(
    body: RegisterRequest,
    admin: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.create_user(db, body.model_dump())
    return UserResponse(
        message="User created successfully",
        data=UserData(user=UserOut.model_validate(user)),
    )


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    responses={
        **_not_found,
        400: {"description": "Invalid body, email or username taken", "model": ErrorResponse},
    },
    summary="Update a user",
)
async def update_user(
    body: UserUpdate,
    admin: AdminUser,
    user_id: UserId,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.update_user(db, user_id, body.model_dump(exclude_unset=True))
    return UserResponse(
        message="User updated successfully",
        data=UserData(user=UserOut.model_validate(user)),
    )


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    responses={
        **_not_found,
        400: {"description": "Admin tried to delete themselves", "model": ErrorResponse},
    },
    summary="Delete a user",
)
async def delete_user(
    admin: AdminUser,
    user_id: UserId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.delete_user(db, user_id, admin.user_id)
    return MessageResponse(message="User deleted successfully")
