"""
MeMantra Backend — Collection Service
=======================================

What:  Collection CRUD, the ownership guard, and the membership mutator
       (add/remove a mantra to/from a collection).
Who:   Called by /api/collections routes and by MantraService's save flow.

Ownership guard:
    Every operation on an existing collection starts with
    `get_owned_collection`: missing → NotFoundError (404), owned by someone
    else → ForbiddenError (403). Not-found is checked first. Ownership never
    changes once a collection exists, so there is no gap between the check
    and the mutation that follows it.

Idempotent add:
    1. Guard the collection.
    2. If the membership row exists → already_exists=True, no write.
    3. Otherwise INSERT.
       - success → already_exists=False
       - unique violation: a concurrent request inserted the same pair
         between steps 2 and 3 → roll back, already_exists=True
       - anything else (unknown mantra FK, connectivity) → DatabaseError (500)

    The existence check is kept (rather than a single INSERT ... ON CONFLICT
    DO NOTHING) because it is the common double-tap path and needs no write.
    Which of two racing requests sees already_exists=False is decided by
    whichever INSERT the database applies first.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import is_unique_violation
from app.exceptions import ConflictError, DatabaseError, ForbiddenError, NotFoundError
from app.models.collection import SAVED_COLLECTION_NAME, Collection, CollectionMantra
from app.models.mantra import Mantra

logger = logging.getLogger(__name__)


def _saved_collection_conflict(user_id: int) -> ConflictError:
    return ConflictError(
        message=f"You already have a '{SAVED_COLLECTION_NAME}' collection",
        context={"user_id": user_id, "field": "name"},
    )


class CollectionService:

    # ── Ownership Guard ───────────────────────────────────────────────────
    async def get_owned_collection(
        self, db: AsyncSession, collection_id: int, user_id: int
    ) -> Collection:
        """
        Fetches a collection and verifies `user_id` owns it.

        Raises:
            NotFoundError: no collection with that id (→ 404)
            ForbiddenError: collection belongs to another user (→ 403)
            DatabaseError: lookup failed (→ 500)
        """
        try:
            collection = await db.get(Collection, collection_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading collection %s: %s", collection_id, str(e))
            raise DatabaseError(
                message="Error retrieving collection",
                context={"collection_id": collection_id},
            )

        if collection is None:
            raise NotFoundError(resource="collection", resource_id=collection_id)

        if collection.user_id != user_id:
            logger.warning(
                "User %s denied access to collection %s (owner %s)",
                user_id, collection_id, collection.user_id,
            )
            raise ForbiddenError(
                context={"collection_id": collection_id, "user_id": user_id},
            )

        return collection

    # ── CRUD ──────────────────────────────────────────────────────────────
    async def list_for_user(self, db: AsyncSession, user_id: int) -> List[Collection]:
        try:
            result = await db.execute(
                select(Collection)
                .where(Collection.user_id == user_id)
                .order_by(Collection.created_at.desc(), Collection.collection_id.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing collections for user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error retrieving collections")

    async def find_by_name(
        self, db: AsyncSession, user_id: int, name: str
    ) -> Optional[Collection]:
        """Oldest of the user's collections with exactly this name, if any."""
        try:
            result = await db.execute(
                select(Collection)
                .where(Collection.user_id == user_id, Collection.name == name)
                .order_by(Collection.collection_id)
                .limit(1)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error finding collection '%s': %s", name, str(e))
            raise DatabaseError(message="Error retrieving collections")

    async def get_with_mantras(
        self, db: AsyncSession, collection_id: int, user_id: int
    ) -> Tuple[Collection, List[Mantra]]:
        """Guarded detail view: the collection and its active mantras, newest first."""
        collection = await self.get_owned_collection(db, collection_id, user_id)
        try:
            result = await db.execute(
                select(Mantra)
                .join(CollectionMantra, CollectionMantra.mantra_id == Mantra.mantra_id)
                .where(
                    CollectionMantra.collection_id == collection_id,
                    Mantra.is_active.is_(True),
                )
                .order_by(CollectionMantra.added_at.desc(), Mantra.mantra_id.desc())
            )
            return collection, list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error loading mantras of collection %s: %s", collection_id, str(e))
            raise DatabaseError(message="Error retrieving collection")

    async def create(
        self,
        db: AsyncSession,
        user_id: int,
        name: str,
        description: Optional[str] = None,
    ) -> Collection:
        """
        Raises:
            ConflictError: the user already has a "Saved Mantras" collection
                and `name` would create a second one (→ 400)
        """
        collection = Collection(user_id=user_id, name=name, description=description)
        try:
            db.add(collection)
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise _saved_collection_conflict(user_id)
            logger.error("Integrity error creating collection: %s", str(e))
            raise DatabaseError(message="Error creating collection")
        except SQLAlchemyError as e:
            logger.error("Database error creating collection: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Error creating collection",
                context={"user_id": user_id, "error_type": type(e).__name__},
            )
        logger.info("Collection %s created for user %s", collection.collection_id, user_id)
        return collection

    async def update(
        self,
        db: AsyncSession,
        collection_id: int,
        user_id: int,
        updates: Dict[str, Any],
    ) -> Collection:
        """Applies only the keys present in `updates` (name, description)."""
        collection = await self.get_owned_collection(db, collection_id, user_id)
        for field in ("name", "description"):
            if field in updates:
                setattr(collection, field, updates[field])
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise _saved_collection_conflict(user_id)
            logger.error("Integrity error updating collection %s: %s", collection_id, str(e))
            raise DatabaseError(message="Error updating collection")
        except SQLAlchemyError as e:
            logger.error("Database error updating collection %s: %s", collection_id, str(e))
            raise DatabaseError(message="Error updating collection")
        return collection

    async def delete(self, db: AsyncSession, collection_id: int, user_id: int) -> None:
        """Deletes the collection; the store cascades its membership rows."""
        collection = await self.get_owned_collection(db, collection_id, user_id)
        try:
            await db.delete(collection)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting collection %s: %s", collection_id, str(e))
            raise DatabaseError(message="Error deleting collection")
        logger.info("Collection %s deleted by user %s", collection_id, user_id)

    # ── Membership ────────────────────────────────────────────────────────
    async def membership_exists(
        self, db: AsyncSession, collection_id: int, mantra_id: int
    ) -> bool:
        result = await db.execute(
            select(CollectionMantra.mantra_id).where(
                CollectionMantra.collection_id == collection_id,
                CollectionMantra.mantra_id == mantra_id,
            )
        )
        return result.first() is not None

    async def add_mantra(
        self,
        db: AsyncSession,
        collection_id: int,
        mantra_id: int,
        user_id: int,
    ) -> bool:
        """
        Adds a mantra to one of the caller's collections.

        Returns:
            True if the mantra was already in the collection (nothing written),
            False if this call inserted it.

        Raises:
            NotFoundError / ForbiddenError: from the ownership guard
            DatabaseError: insert failed for a reason other than a duplicate,
                e.g. the mantra id does not exist
        """
        await self.get_owned_collection(db, collection_id, user_id)

        try:
            if await self.membership_exists(db, collection_id, mantra_id):
                return True

            await db.execute(
                insert(CollectionMantra).values(
                    collection_id=collection_id,
                    mantra_id=mantra_id,
                    added_by=user_id,
                )
            )
        except IntegrityError as e:
            # The failed INSERT leaves the transaction unusable; nothing else
            # was written in it, so a full rollback loses no work
            await db.rollback()
            if is_unique_violation(e):
                logger.info(
                    "Concurrent add of mantra %s to collection %s; treating as already present",
                    mantra_id, collection_id,
                )
                return True
            logger.error(
                "Integrity error adding mantra %s to collection %s: %s",
                mantra_id, collection_id, str(e),
            )
            raise DatabaseError(
                message="Error adding mantra to collection",
                context={"collection_id": collection_id, "mantra_id": mantra_id},
            )
        except SQLAlchemyError as e:
            logger.error(
                "Database error adding mantra %s to collection %s: %s",
                mantra_id, collection_id, str(e), exc_info=True,
            )
            raise DatabaseError(
                message="Error adding mantra to collection",
                context={"error_type": type(e).__name__},
            )

        logger.info("Mantra %s added to collection %s", mantra_id, collection_id)
        return False

    async def remove_mantra(
        self,
        db: AsyncSession,
        collection_id: int,
        mantra_id: int,
        user_id: int,
    ) -> None:
        """
        Raises:
            NotFoundError: collection missing, or the mantra was not in it
                ("Mantra not found in collection")
            ForbiddenError: caller does not own the collection
        """
        await self.get_owned_collection(db, collection_id, user_id)

        try:
            result = await db.execute(
                delete(CollectionMantra).where(
                    CollectionMantra.collection_id == collection_id,
                    CollectionMantra.mantra_id == mantra_id,
                )
            )
        except SQLAlchemyError as e:
            logger.error(
                "Database error removing mantra %s from collection %s: %s",
                mantra_id, collection_id, str(e),
            )
            raise DatabaseError(message="Error removing mantra from collection")

        if result.rowcount == 0:
            raise NotFoundError(
                resource="membership",
                message="Mantra not found in collection",
                context={"collection_id": collection_id, "mantra_id": mantra_id},
            )
        logger.info("Mantra %s removed from collection %s", mantra_id, collection_id)


collection_service = CollectionService()
