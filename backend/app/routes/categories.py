"""
MeMantra Backend — Category Route Handlers
============================================

GET /api/categories — public list of active categories. The mantras of one
category are served from /api/mantras/category/{category_id}.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.category import CategoryListData, CategoryListResponse, CategoryOut
from app.services.category_service import category_service

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("", response_model=CategoryListResponse, summary="List active categories")
async def list_categories(
    db: AsyncSession = Depends(get_db_session),
) -> CategoryListResponse:
    categories = await category_service.list_active(db)
    return CategoryListResponse(
        data=CategoryListData(categories=[CategoryOut.model_validate(c) for c in categories])
    )
