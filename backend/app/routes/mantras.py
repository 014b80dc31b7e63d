"""
MeMantra Backend — Mantra Route Handlers
==========================================

What:  /api/mantras — public catalogue reads, the authenticated feed,
       save/unsave bookmarks, and admin-only management.

Route order matters: the fixed paths (/feed, /popular, /category/{id}) are
declared before /{mantra_id}.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import AdminUser, CurrentUser
from app.schemas.category import CategoryMantrasData, CategoryMantrasResponse
from app.schemas.common import ErrorResponse, MembershipResponse, MessageResponse
from app.schemas.mantra import (
    FeedMantraOut,
    FeedResponse,
    MantraCreate,
    MantraData,
    MantraDetailResponse,
    MantraListData,
    MantraListResponse,
    MantraOut,
    MantraResponse,
    MantraUpdate,
    Pagination,
    PopularMantraData,
    PopularMantraOut,
    PopularMantraResponse,
)
from app.services.category_service import category_service
from app.services.mantra_service import mantra_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mantras", tags=["Mantras"])

MantraId = Annotated[int, Path(gt=0, description="Mantra id")]
CategoryId = Annotated[int, Path(gt=0, description="Category id")]
_not_found = {404: {"description": "Mantra not found", "model": ErrorResponse}}


def build_popular_response(rows) -> PopularMantraResponse:
    """Shared by /api/mantras/popular and /api/likes/popular."""
    return PopularMantraResponse(
        data=PopularMantraData(
            mantras=[
                PopularMantraOut(**MantraOut.model_validate(m).model_dump(), like_count=count)
                for m, count in rows
            ]
        )
    )


@router.get("/feed", response_model=FeedResponse, summary="Feed with the caller's like/save state")
async def get_feed(
    current_user: CurrentUser,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    rows = await mantra_service.feed(db, current_user.user_id, limit=limit, offset=offset)
    return FeedResponse(
        data=[
            FeedMantraOut(
                **MantraOut.model_validate(m).model_dump(),
                is_liked=is_liked,
                is_saved=is_saved,
            )
            for m, is_liked, is_saved in rows
        ]
    )


@router.get("/popular", response_model=PopularMantraResponse, summary="Most liked mantras")
async def get_popular(
    limit: int = Query(default=10, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> PopularMantraResponse:
    return build_popular_response(await mantra_service.popular(db, limit=limit))


@router.get(
    "/category/{category_id}",
    response_model=CategoryMantrasResponse,
    responses={404: {"description": "Category not found", "model": ErrorResponse}},
    summary="Active mantras in a category",
)
async def get_mantras_by_category(
    category_id: CategoryId,
    db: AsyncSession = Depends(get_db_session),
) -> CategoryMantrasResponse:
    mantras = await category_service.list_mantras(db, category_id)
    return CategoryMantrasResponse(
        data=CategoryMantrasData(
            mantras=[MantraOut.model_validate(m) for m in mantras],
            count=len(mantras),
        )
    )


@router.get("", response_model=MantraListResponse, summary="List or search mantras")
async def list_mantras(
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> MantraListResponse:
    mantras = await mantra_service.list_mantras(db, search=search, limit=limit, offset=offset)
    return MantraListResponse(
        data=MantraListData(
            mantras=[MantraOut.model_validate(m) for m in mantras],
            pagination=Pagination(limit=limit, offset=offset, count=len(mantras)),
        )
    )


@router.get(
    "/{mantra_id}",
    response_model=MantraDetailResponse,
    responses=_not_found,
    summary="Get a mantra",
)
async def get_mantra(
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MantraDetailResponse:
    mantra = await mantra_service.get_active(db, mantra_id)
    return MantraDetailResponse(data=MantraData(mantra=MantraOut.model_validate(mantra)))


@router.post("", status_code=201, response_model=MantraResponse, summary="Create a mantra (admin)")
async def create_mantra(
    body: MantraCreate,
    admin: AdminUser,
    db: AsyncSession = Depends(get_db_session),
) -> MantraResponse:
    mantra = await mantra_service.create(db, body.model_dump(), created_by=admin.user_id)
    return MantraResponse(
        message="Mantra created successfully",
        data=MantraData(mantra=MantraOut.model_validate(mantra)),
    )


@router.put(
    "/{mantra_id}",
    response_model=MantraResponse,
    responses=_not_found,
    summary="Update a mantra (admin)",
)
async def update_mantra(
    body: MantraUpdate,
    admin: AdminUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MantraResponse:
    mantra = await mantra_service.update(db, mantra_id, body.model_dump(exclude_unset=True))
    return MantraResponse(
        message="Mantra updated successfully",
        data=MantraData(mantra=MantraOut.model_validate(mantra)),
    )


@router.delete(
    "/{mantra_id}",
    response_model=MessageResponse,
    responses=_not_found,
    summary="Soft-delete a mantra (admin)",
)
async def delete_mantra(
    admin: AdminUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await mantra_service.soft_delete(db, mantra_id)
    return MessageResponse(message="Mantra deleted successfully")


@router.post(
    "/{mantra_id}/save",
    response_model=MembershipResponse,
    responses=_not_found,
    summary="Save a mantra to the caller's Saved Mantras collection",
)
async def save_mantra(
    current_user: CurrentUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MembershipResponse:
    already_exists = await mantra_service.save(db, current_user.user_id, mantra_id)
    message = "Mantra already saved" if already_exists else "Mantra saved successfully"
    return MembershipResponse(message=message, already_exists=already_exists)


@router.delete(
    "/{mantra_id}/save",
    response_model=MessageResponse,
    responses=_not_found,
    summary="Remove a mantra from Saved Mantras",
)
async def unsave_mantra(
    current_user: CurrentUser,
    mantra_id: MantraId,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await mantra_service.unsave(db, current_user.user_id, mantra_id)
    return MessageResponse(message="Mantra unsaved successfully")
