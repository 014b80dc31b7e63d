"""
MeMantra Backend — Mantra Service
===================================

What:  Read paths for the mantra catalogue (list/search, detail, popular,
       personalised feed), admin management, and the save/unsave bookmark
       flow.
Who:   Called by /api/mantras and /api/likes routes.

Save flow:
    "Saving" a mantra is membership in the caller's "Saved Mantras"
    collection. The collection is created lazily on first save, then the
    mantra is added through CollectionService.add_mantra, so saving gets the
    same idempotent semantics as adding to any collection.

    A partial unique index allows one "Saved Mantras" collection per user.
    When two first saves race, the loser's insert hits that index; it rolls
    back and re-reads the winner's collection instead of failing.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, DatabaseError, NotFoundError
from app.models.collection import (
    SAVED_COLLECTION_DESCRIPTION,
    SAVED_COLLECTION_NAME,
    Collection,
    CollectionMantra,
)
from app.models.like import Like
from app.models.mantra import Mantra
from app.services.collection_service import collection_service

logger = logging.getLogger(__name__)


class MantraService:

    async def list_mantras(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Mantra]:
        """
        Active mantras, newest first.

        `search` is a case-insensitive substring match against title and
        key takeaway.
        """
        query = select(Mantra).where(Mantra.is_active.is_(True))
        if search:
            term = f"%{search}%"
            query = query.where(
                or_(Mantra.title.ilike(term), Mantra.key_takeaway.ilike(term))
            )
        query = (
            query.order_by(desc(Mantra.created_at), desc(Mantra.mantra_id))
            .limit(limit)
            .offset(offset)
        )
        try:
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing mantras: %s", str(e), exc_info=True)
            raise DatabaseError(message="Error retrieving mantras")

    async def get_active(self, db: AsyncSession, mantra_id: int) -> Mantra:
        """Raises NotFoundError for unknown or soft-deleted mantras."""
        try:
            mantra = await db.get(Mantra, mantra_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching mantra %s: %s", mantra_id, str(e))
            raise DatabaseError(message="Error retrieving mantra")

        if mantra is None or not mantra.is_active:
            raise NotFoundError(resource="mantra", resource_id=mantra_id)
        return mantra

    async def popular(self, db: AsyncSession, limit: int = 10) -> List[Tuple[Mantra, int]]:
        """Active mantras with their like counts, most liked first."""
        like_count = func.count(Like.like_id).label("like_count")
        try:
            result = await db.execute(
                select(Mantra, like_count)
                .outerjoin(Like, Like.mantra_id == Mantra.mantra_id)
                .where(Mantra.is_active.is_(True))
                .group_by(Mantra.mantra_id)
                .order_by(desc(like_count), Mantra.mantra_id)
                .limit(limit)
            )
            return [(mantra, int(count)) for mantra, count in result.all()]
        except SQLAlchemyError as e:
            logger.error("Database error fetching popular mantras: %s", str(e), exc_info=True)
            raise DatabaseError(message="Error retrieving popular mantras")

    async def feed(
        self,
        db: AsyncSession,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Tuple[Mantra, bool, bool]]:
        """
        Home feed: (mantra, is_liked, is_saved) for the caller.

        A mantra counts as saved when it is in any of the caller's
        collections, not only "Saved Mantras".
        """
        mantras = await self.list_mantras(db, limit=limit, offset=offset)
        try:
            liked = await db.execute(select(Like.mantra_id).where(Like.user_id == user_id))
            liked_ids: Set[int] = set(liked.scalars().all())

            saved = await db.execute(
                select(CollectionMantra.mantra_id)
                .join(Collection, Collection.collection_id == CollectionMantra.collection_id)
                .where(Collection.user_id == user_id)
            )
            saved_ids: Set[int] = set(saved.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error building feed for user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error retrieving feed mantras")

        return [
            (m, m.mantra_id in liked_ids, m.mantra_id in saved_ids)
            for m in mantras
        ]

    # ── Admin management ──────────────────────────────────────────────────
    async def create(
        self, db: AsyncSession, data: Dict[str, Any], created_by: int
    ) -> Mantra:
        mantra = Mantra(**data, created_by=created_by, is_active=True)
        try:
            db.add(mantra)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating mantra: %s", str(e), exc_info=True)
            raise DatabaseError(message="Error creating mantra")
        logger.info("Mantra %s created by user %s", mantra.mantra_id, created_by)
        return mantra

    async def update(
        self, db: AsyncSession, mantra_id: int, updates: Dict[str, Any]
    ) -> Mantra:
        mantra = await self.get_active(db, mantra_id)
        for field, value in updates.items():
            setattr(mantra, field, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating mantra %s: %s", mantra_id, str(e))
            raise DatabaseError(message="Error updating mantra")
        return mantra

    async def soft_delete(self, db: AsyncSession, mantra_id: int) -> None:
        """Hides the mantra; likes and memberships pointing at it are kept."""
        mantra = await self.get_active(db, mantra_id)
        mantra.is_active = False
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting mantra %s: %s", mantra_id, str(e))
            raise DatabaseError(message="Error deleting mantra")
        logger.info("Mantra %s soft-deleted", mantra_id)

    # ── Save / Unsave ─────────────────────────────────────────────────────
    async def get_or_create_saved_collection(
        self, db: AsyncSession, user_id: int
    ) -> Collection:
        saved = await collection_service.find_by_name(db, user_id, SAVED_COLLECTION_NAME)
        if saved is not None:
            return saved

        try:
            saved = await collection_service.create(
                db, user_id, SAVED_COLLECTION_NAME, SAVED_COLLECTION_DESCRIPTION
            )
            # Commit so a lost membership insert race cannot roll the new
            # collection back
            await db.commit()
            return saved
        except ConflictError:
            # A concurrent first save created it; create() already rolled back
            logger.info("Saved collection for user %s created concurrently", user_id)
        except SQLAlchemyError as e:
            logger.error("Database error creating saved collection: %s", str(e))
            raise DatabaseError(message="Error saving mantra")

        saved = await collection_service.find_by_name(db, user_id, SAVED_COLLECTION_NAME)
        if saved is None:
            raise DatabaseError(
                message="Error saving mantra", context={"user_id": user_id}
            )
        return saved

    async def save(self, db: AsyncSession, user_id: int, mantra_id: int) -> bool:
        """
        Adds the mantra to the caller's "Saved Mantras" collection.

        Returns:
            True if it was already saved, False if this call saved it.
        """
        await self.get_active(db, mantra_id)
        saved = await self.get_or_create_saved_collection(db, user_id)
        return await collection_service.add_mantra(
            db, saved.collection_id, mantra_id, user_id
        )

    async def unsave(self, db: AsyncSession, user_id: int, mantra_id: int) -> None:
        saved = await collection_service.find_by_name(db, user_id, SAVED_COLLECTION_NAME)
        if saved is None:
            raise NotFoundError(
                resource="collection", message="No saved mantras collection found"
            )

        try:
            is_saved = await collection_service.membership_exists(
                db, saved.collection_id, mantra_id
            )
        except SQLAlchemyError as e:
            logger.error("Database error checking saved mantra %s: %s", mantra_id, str(e))
            raise DatabaseError(message="Error unsaving mantra")

        if not is_saved:
            raise NotFoundError(
                resource="mantra", message="Mantra not found in saved collection"
            )

        await collection_service.remove_mantra(db, saved.collection_id, mantra_id, user_id)


mantra_service = MantraService()
