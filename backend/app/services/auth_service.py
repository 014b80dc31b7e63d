"""
MeMantra Backend — Auth Service
=================================

What:  Password hashing, JWT minting/decoding, registration, login and
       the signed-in user's own account changes (email, password, delete).
How:   argon2 (argon2-cffi) for password hashes; HS256 JWTs (python-jose)
       whose `sub` claim is the user id as a string.
Who:   Called by the /api/auth routes, by the `get_current_user`
       dependency that every protected route uses, and by UserService for
       admin-created accounts.

Token payload:
    {"sub": "42", "email": "a@b.com", "iat": <unix>, "exp": <unix>}
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import is_unique_violation
from app.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidCredentialsError,
    MeMantraError,
    UnauthenticatedError,
    ValidationError,
)
from app.models.user import User
from app.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)

_password_hasher = PasswordHasher()


class AuthService:
    """Stateless; every DB operation receives the request's session."""

    # ── Passwords ─────────────────────────────────────────────────────────
    @staticmethod
    def hash_password(password: str) -> str:
        return _password_hasher.hash(password)

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        try:
            return _password_hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    # ── Tokens ────────────────────────────────────────────────────────────
    @staticmethod
    def create_access_token(
        user_id: int,
        email: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.jwt_expire_minutes)
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + expires_delta).timestamp()),
        }
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """
        Validates signature and expiry and returns the payload.

        Raises:
            UnauthenticatedError: token is malformed, tampered with, expired,
                or has no usable `sub` claim.
        """
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
            )
        except JWTError as e:
            raise UnauthenticatedError(context={"reason": type(e).__name__})

        sub = payload.get("sub")
        if sub is None or not str(sub).isdigit():
            raise UnauthenticatedError(context={"reason": "missing_sub"})
        return payload

    # ── Users ─────────────────────────────────────────────────────────────
    async def get_user(self, db: AsyncSession, user_id: int) -> Optional[User]:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Error verifying authentication",
                context={"user_id": user_id},
            )

    async def ensure_available(
        self,
        db: AsyncSession,
        email: Optional[str] = None,
        username: Optional[str] = None,
        exclude_user_id: Optional[int] = None,
    ) -> None:
        """
        Raises ConflictError if another user already holds `email` or
        `username`. `exclude_user_id` lets a user keep their own values.
        """
        checks = (
            (email, User.email, "email", "Email already in use"),
            (username, User.username, "username", "Username already taken"),
        )
        for value, column, field, message in checks:
            if value is None:
                continue
            query = select(User.user_id).where(column == value)
            if exclude_user_id is not None:
                query = query.where(User.user_id != exclude_user_id)
            if await db.scalar(query) is not None:
                raise ConflictError(message=message, context={"field": field})

    async def create_user(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """
        Raises:
            ConflictError: email or username already taken (→ 400)
            DatabaseError: insert failed for any other reason (→ 500)
        """
        try:
            await self.ensure_available(db, email=email, username=username)
            user = User(
                username=username,
                email=email,
                password_hash=self.hash_password(password),
                first_name=first_name,
                last_name=last_name,
            )
            db.add(user)
            await db.flush()

        except MeMantraError:
            raise
        except IntegrityError as e:
            # Two signups for the same email/username raced past the checks
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError(message="Email or username already in use")
            logger.error("Integrity error creating user: %s", str(e))
            raise DatabaseError(message="Error creating user")
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Error creating user",
                context={"error_type": type(e).__name__},
            )

        logger.info("User created: user_id=%s", user.user_id)
        return user

    async def register(self, db: AsyncSession, data: RegisterRequest) -> Tuple[User, str]:
        """Creates a user and returns it with a fresh access token."""
        user = await self.create_user(
            db,
            username=data.username,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        return user, self.create_access_token(user.user_id, user.email)

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        try:
            user = await db.scalar(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise DatabaseError(message="Error logging in")

        if user is None or not self.verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        return user, self.create_access_token(user.user_id, user.email)

    # ── Own Account ───────────────────────────────────────────────────────
    async def update_email(self, db: AsyncSession, user: User, email: str) -> User:
        """
        Raises:
            ConflictError: another user already has this email (→ 400)
        """
        user_id = user.user_id
        try:
            await self.ensure_available(db, email=email, exclude_user_id=user_id)
            user.email = email
            await db.flush()
        except MeMantraError:
            raise
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise ConflictError(message="Email already in use", context={"field": "email"})
            logger.error("Integrity error updating email of user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error updating email")
        except SQLAlchemyError as e:
            logger.error("Database error updating email of user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error updating email")
        logger.info("User %s changed their email", user_id)
        return user

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: str,
        new_password: str,
    ) -> None:
        """
        Raises:
            ValidationError: `current_password` does not match (→ 400)
        """
        if not self.verify_password(current_password, user.password_hash):
            raise ValidationError(
                message="Current password is incorrect", field="current_password"
            )
        user.password_hash = self.hash_password(new_password)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating password of user %s: %s", user.user_id, str(e))
            raise DatabaseError(message="Error updating password")
        logger.info("User %s changed their password", user.user_id)

    async def delete_account(self, db: AsyncSession, user: User) -> None:
        """
        Deletes the user. The store cascades their collections, likes,
        conversations, messages and reactions, and nulls their authorship
        of mantras and membership rows.
        """
        user_id = user.user_id
        try:
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error deleting account")
        logger.info("User %s deleted their account", user_id)


auth_service = AuthService()
