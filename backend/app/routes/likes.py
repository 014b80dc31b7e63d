"""
MeMantra Backend — Like Route Handlers
========================================

/api/likes — like/unlike a mantra, check like state, list liked mantras
and the most-liked ranking. Fixed paths precede /{mantra_id}.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import CurrentUser
from app.routes.mantras import build_popular_response
from app.schemas.common import ErrorResponse, MembershipResponse, MessageResponse
from app.schemas.mantra import (
    LikeCheckData,
    LikeCheckResponse,
    LikedMantrasData,
    LikedMantrasResponse,
    MantraOut,
    PopularMantraResponse,
)
from app.services.like_service import like_service
from app.services.mantra_service import mantra_service

router = APIRouter(prefix="/api/likes", tags=["Likes"])

MantraId = Annotated[int, Path(gt=0, description="Mantra id")]


@router.get("/mantras", response_model=LikedMantrasResponse, summary="Mantras the caller liked")
async def get_liked_mantras(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> LikedMantrasResponse:
    mantras = await like_service.liked_mantras(db, current_user.user_id)
    return LikedMantrasResponse(
        data=LikedMantrasData(mantras=[MantraOut.model_validate(m) for m in mantras])
    )


@router.get("/popular", response_model=PopularMantraResponse, summary="Most liked mantras")
async def get_popular(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> PopularMantraResponse:
    return build_popular_response(await mantra_service.popular(db, limit=limit))


@router.post(
    "/{mantra_id}",
    response_model=MembershipResponse,
    responses={404: {"description": "Mantra not found", "model": ErrorResponse}},
    summary="Like a mantra (idempotent)",
)
async def like_mantra(
    current_user: CurrentUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MembershipResponse:
    already_exists = await like_service.like(db, current_user.user_id, mantra_id)
    message = "Mantra already liked" if already_exists else "Mantra liked successfully"
    return MembershipResponse(message=message, already_exists=already_exists)


@router.delete(
    "/{mantra_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Like not found", "model": ErrorResponse}},
    summary="Remove a like",
)
async def unlike_mantra(
    current_user: CurrentUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await like_service.unlike(db, current_user.user_id, mantra_id)
    return MessageResponse(message="Mantra unliked successfully")


@router.get("/{mantra_id}/check", response_model=LikeCheckResponse, summary="Has the caller liked it?")
async def check_like(
    current_user: CurrentUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> LikeCheckResponse:
    has_liked = await like_service.has_liked(db, current_user.user_id, mantra_id)
    return LikeCheckResponse(data=LikeCheckData(has_liked=has_liked))
