"""
MeMantra Backend — Category Service
=====================================

Read paths for mantra categories: the active category list and the active
mantras filed under one category. Categories are curated in the database;
there is no write API.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, NotFoundError
from app.models.category import Category, MantraCategory
from app.models.mantra import Mantra

logger = logging.getLogger(__name__)


class CategoryService:

    async def list_active(self, db: AsyncSession) -> List[Category]:
        try:
            result = await db.execute(
                select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing categories: %s", str(e))
            raise DatabaseError(message="Error retrieving categories")

    async def list_mantras(self, db: AsyncSession, category_id: int) -> List[Mantra]:
        """
        Active mantras in an active category, newest first.

        Raises:
            NotFoundError: category missing or hidden (→ 404)
        """
        try:
            category = await db.get(Category, category_id)
            if category is None or not category.is_active:
                raise NotFoundError(resource="category", resource_id=category_id)

            result = await db.execute(
                select(Mantra)
                .join(MantraCategory, MantraCategory.mantra_id == Mantra.mantra_id)
                .where(
                    MantraCategory.category_id == category_id,
                    Mantra.is_active.is_(True),
                )
                .order_by(Mantra.created_at.desc(), Mantra.mantra_id.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error loading mantras of category %s: %s", category_id, str(e))
            raise DatabaseError(message="Error retrieving mantras by category")


category_service = CategoryService()
