"""
MeMantra Backend — Auth Route Handlers
========================================

POST /api/auth/register, POST /api/auth/login, GET /api/auth/me, and the
signed-in user's own account: PATCH /email, PATCH /password, DELETE /account.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import CurrentUser
from app.schemas.auth import (
    AuthData,
    AuthResponse,
    EmailData,
    EmailUpdateRequest,
    EmailUpdateResponse,
    LoginRequest,
    MeData,
    MeResponse,
    PasswordChangeRequest,
    RegisterRequest,
    UserOut,
)
from app.schemas.common import ErrorResponse, MessageResponse
from app.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={400: {"description": "Email or username taken", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.register(db, body)
    return AuthResponse(
        message="User registered successfully",
        data=AuthData(user=UserOut.model_validate(user), token=token),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.login(db, body.email, body.password)
    return AuthResponse(
        message="Login successful",
        data=AuthData(user=UserOut.model_validate(user), token=token),
    )


@router.get(
    "/me",
    response_model=MeResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Current user profile",
)
async def get_me(current_user: CurrentUser) -> MeResponse:
    return MeResponse(data=MeData(user=UserOut.model_validate(current_user)))


@router.patch(
    "/email",
    response_model=EmailUpdateResponse,
    responses={
        400: {"description": "Invalid email or already in use", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    },
    summary="Change the caller's email",
)
async def update_email(
    body: EmailUpdateRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> EmailUpdateResponse:
    user = await auth_service.update_email(db, current_user, body.email)
    return EmailUpdateResponse(
        message="Email updated successfully",
        data=EmailData(email=user.email),
    )


@router.patch(
    "/password",
    response_model=MessageResponse,
    responses={
        400: {"description": "Current password is incorrect", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    },
    summary="Change the caller's password",
)
async def change_password(
    body: PasswordChangeRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.change_password(
        db, current_user, body.current_password, body.new_password
    )
    return MessageResponse(message="Password updated")


@router.delete(
    "/account",
    response_model=MessageResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Delete the caller's account and everything they own",
)
async def delete_account(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.delete_account(db, current_user)
    return MessageResponse(message="Account deleted")
