"""
MeMantra Backend — Like Service
=================================

Likes follow the same idempotent-add contract as collection membership:
an existence check for the common repeat-tap case, then an INSERT whose
unique-constraint violation (a concurrent like won) is reported as
"already liked" rather than an error.
"""

import logging
from typing import List

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import is_unique_violation
from app.exceptions import DatabaseError, NotFoundError
from app.models.like import Like
from app.models.mantra import Mantra
from app.services.mantra_service import mantra_service

logger = logging.getLogger(__name__)


class LikeService:

    async def has_liked(self, db: AsyncSession, user_id: int, mantra_id: int) -> bool:
        try:
            result = await db.execute(
                select(Like.like_id).where(Like.user_id == user_id, Like.mantra_id == mantra_id)
            )
            return result.first() is not None
        except SQLAlchemyError as e:
            logger.error("Database error checking like: %s", str(e))
            raise DatabaseError(message="Error checking like status")

    async def like(self, db: AsyncSession, user_id: int, mantra_id: int) -> bool:
        """
        Returns:
            True if the user had already liked the mantra, False if this
            call created the like.
        """
        await mantra_service.get_active(db, mantra_id)

        if await self.has_liked(db, user_id, mantra_id):
            return True

        try:
            await db.execute(insert(Like).values(user_id=user_id, mantra_id=mantra_id))
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                logger.info("Concurrent like of mantra %s by user %s", mantra_id, user_id)
                return True
            logger.error("Integrity error liking mantra %s: %s", mantra_id, str(e))
            raise DatabaseError(message="Error liking mantra")
        except SQLAlchemyError as e:
            logger.error("Database error liking mantra %s: %s", mantra_id, str(e), exc_info=True)
            raise DatabaseError(message="Error liking mantra")

        return False

    async def unlike(self, db: AsyncSession, user_id: int, mantra_id: int) -> None:
        try:
            result = await db.execute(
                delete(Like).where(Like.user_id == user_id, Like.mantra_id == mantra_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error unliking mantra %s: %s", mantra_id, str(e))
            raise DatabaseError(message="Error unliking mantra")

        if result.rowcount == 0:
            raise NotFoundError(resource="like", resource_id=mantra_id)

    async def liked_mantras(self, db: AsyncSession, user_id: int) -> List[Mantra]:
        """The user's liked active mantras, most recently liked first."""
        try:
            result = await db.execute(
                select(Mantra)
                .join(Like, Like.mantra_id == Mantra.mantra_id)
                .where(Like.user_id == user_id, Mantra.is_active.is_(True))
                .order_by(Like.created_at.desc(), Like.like_id.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing liked mantras: %s", str(e))
            raise DatabaseError(message="Error retrieving liked mantras")


like_service = LikeService()
