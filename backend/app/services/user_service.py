"""
MeMantra Backend — User Service
=================================

What:  Admin management of user accounts: list, inspect, create, edit and
       delete any user.
Who:   Called by the admin-only /api/users routes. Uniqueness checks, hashing
       and the insert itself are shared with self-registration through
       AuthService.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import is_unique_violation
from app.exceptions import (
    ConflictError,
    DatabaseError,
    MeMantraError,
    NotFoundError,
    ValidationError,
)
from app.models.user import User
from app.services.auth_service import auth_service

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("username", "email", "first_name", "last_name")


class UserService:

    async def list_users(self, db: AsyncSession) -> List[User]:
        try:
            result = await db.execute(select(User).order_by(User.user_id))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e))
            raise DatabaseError(message="Error retrieving users")

    async def get_user(self, db: AsyncSession, user_id: int) -> User:
        user = await auth_service.get_user(db, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def create_user(self, db: AsyncSession, data: Dict[str, Any]) -> User:
        return await auth_service.create_user(db, **data)

    async def update_user(
        self, db: AsyncSession, user_id: int, updates: Dict[str, Any]
    ) -> User:
        """
        Applies the non-null keys of `updates`. A new password is hashed; a
        new email or username must not belong to another user.

        Raises:
            NotFoundError: no such user (→ 404)
            ConflictError: email or username taken by someone else (→ 400)
        """
        user = await self.get_user(db, user_id)
        updates = {k: v for k, v in updates.items() if v is not None}

        try:
            await auth_service.ensure_available(
                db,
                email=updates.get("email"),
                username=updates.get("username"),
                exclude_user_id=user_id,
            )
            for field in _PROFILE_FIELDS:
                if field in updates:
                    setattr(user, field, updates[field])
            if "password" in updates:
                user.password_hash = auth_service.hash_password(updates["password"])
            await db.flush()

        except MeMantraError:
            raise
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError(message="Email or username already in use")
            logger.error("Integrity error updating user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error updating user")
        except SQLAlchemyError as e:
            logger.error("Database error updating user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error updating user")

        logger.info("User %s updated by an admin (fields: %s)", user_id, sorted(updates))
        return user

    async def delete_user(self, db: AsyncSession, user_id: int, acting_user_id: int) -> None:
        """
        Raises:
            NotFoundError: no such user (→ 404)
            ValidationError: an admin deleting themselves here (→ 400); their
                own account goes through DELETE /api/auth/account
        """
        user = await self.get_user(db, user_id)
        if user_id == acting_user_id:
            raise ValidationError(message="Cannot delete your own account")

        try:
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error deleting user")
        logger.info("User %s deleted by admin %s", user_id, acting_user_id)


user_service = UserService()
