"""
MeMantra Backend — Chat Service
=================================

What:  One-to-one conversations, messages, read receipts and emoji
       reactions.
Who:   Called by /api/chat routes.

Participant guard:
    Every operation on an existing conversation starts with
    `get_participant_conversation`: missing → NotFoundError (404), caller is
    neither of the two users → ForbiddenError (403). Message-level
    operations first resolve the message (404 "Message not found") and then
    guard its conversation. Participants never change, so the check holds
    for the mutation that follows it.

Starting a conversation is idempotent: the pair is stored in canonical
order under a unique constraint, and a lost insert race is reported as
"already exists" with the winner's row, the same way membership adds are.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import is_unique_violation
from app.exceptions import (
    DatabaseError,
    ForbiddenError,
    MeMantraError,
    NotFoundError,
    ValidationError,
)
from app.models.conversation import Conversation
from app.models.message import Message, MessageReaction
from app.models.user import User

logger = logging.getLogger(__name__)


class ChatService:

    # ── Participant Guard ─────────────────────────────────────────────────
    async def get_participant_conversation(
        self, db: AsyncSession, conversation_id: int, user_id: int
    ) -> Conversation:
        """
        Raises:
            NotFoundError: no conversation with that id (→ 404)
            ForbiddenError: caller is not one of its two users (→ 403)
            DatabaseError: lookup failed (→ 500)
        """
        try:
            conversation = await db.get(Conversation, conversation_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading conversation %s: %s", conversation_id, str(e))
            raise DatabaseError(message="Error retrieving conversation")

        if conversation is None:
            raise NotFoundError(resource="conversation", resource_id=conversation_id)

        if user_id not in conversation.participants():
            logger.warning(
                "User %s denied access to conversation %s", user_id, conversation_id
            )
            raise ForbiddenError(
                context={"conversation_id": conversation_id, "user_id": user_id},
            )
        return conversation

    async def get_participant_message(
        self, db: AsyncSession, message_id: int, user_id: int
    ) -> Message:
        try:
            message = await db.get(Message, message_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading message %s: %s", message_id, str(e))
            raise DatabaseError(message="Error retrieving message")

        if message is None:
            raise NotFoundError(resource="message", resource_id=message_id)

        await self.get_participant_conversation(db, message.conversation_id, user_id)
        return message

    # ── Users & Conversations ─────────────────────────────────────────────
    async def list_other_users(self, db: AsyncSession, user_id: int) -> List[User]:
        """Everyone the caller could start a conversation with."""
        try:
            result = await db.execute(
                select(User).where(User.user_id != user_id).order_by(User.username)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing chat users: %s", str(e))
            raise DatabaseError(message="Error retrieving users")

    async def list_conversations(
        self, db: AsyncSession, user_id: int
    ) -> List[Dict[str, Any]]:
        """
        The caller's inbox: one summary per conversation with the other
        user's details, the latest message and how many of the other user's
        messages are unread. Most recent activity first.
        """
        try:
            result = await db.execute(
                select(Conversation).where(
                    or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id)
                )
            )
            conversations = list(result.scalars().all())
            if not conversations:
                return []

            conversation_ids = [c.conversation_id for c in conversations]
            other_ids = {c.other_participant(user_id) for c in conversations}

            result = await db.execute(select(User).where(User.user_id.in_(other_ids)))
            others = {u.user_id: u for u in result.scalars().all()}

            result = await db.execute(
                select(Message.conversation_id, func.count())
                .where(
                    Message.conversation_id.in_(conversation_ids),
                    Message.sender_id != user_id,
                    Message.read.is_(False),
                )
                .group_by(Message.conversation_id)
            )
            unread = {cid: n for cid, n in result.all()}

            summaries = []
            for conversation in conversations:
                last = await db.scalar(
                    select(Message)
                    .where(Message.conversation_id == conversation.conversation_id)
                    .order_by(Message.created_at.desc(), Message.message_id.desc())
                    .limit(1)
                )
                other = others[conversation.other_participant(user_id)]
                summaries.append({
                    "conversation_id": conversation.conversation_id,
                    "participant_id": other.user_id,
                    "participant_username": other.username,
                    "participant_email": other.email,
                    "last_message": last.content if last else "",
                    "last_message_time": last.created_at if last else conversation.created_at,
                    "unread_count": unread.get(conversation.conversation_id, 0),
                    "created_at": conversation.created_at,
                    "updated_at": conversation.updated_at,
                })
        except SQLAlchemyError as e:
            logger.error("Database error listing conversations for user %s: %s", user_id, str(e))
            raise DatabaseError(message="Error retrieving conversations")

        summaries.sort(
            key=lambda s: (s["last_message_time"], s["conversation_id"]), reverse=True
        )
        return summaries

    async def start_conversation(
        self, db: AsyncSession, user_id: int, participant_id: int
    ) -> Tuple[Conversation, bool]:
        """
        Returns:
            (conversation, created): created is False when the two users
            already had a conversation, whichever of them opened it.

        Raises:
            ValidationError: participant is the caller (→ 400)
            NotFoundError: participant does not exist (→ 404)
        """
        if participant_id == user_id:
            raise ValidationError(
                message="Cannot create conversation with yourself", field="participant_id"
            )

        user1_id, user2_id = sorted((user_id, participant_id))
        pair = (Conversation.user1_id == user1_id, Conversation.user2_id == user2_id)

        try:
            if await db.get(User, participant_id) is None:
                raise NotFoundError(resource="user", resource_id=participant_id)

            existing = await db.scalar(select(Conversation).where(*pair))
            if existing is not None:
                return existing, False

            conversation = Conversation(user1_id=user1_id, user2_id=user2_id)
            db.add(conversation)
            await db.flush()

        except MeMantraError:
            raise
        except IntegrityError as e:
            await db.rollback()
            if not is_unique_violation(e):
                logger.error("Integrity error creating conversation: %s", str(e))
                raise DatabaseError(message="Error creating conversation")
            logger.info(
                "Concurrent start of conversation %s/%s; returning the existing one",
                user1_id, user2_id,
            )
            try:
                existing = await db.scalar(select(Conversation).where(*pair))
            except SQLAlchemyError as e:
                logger.error("Database error reloading conversation: %s", str(e))
                raise DatabaseError(message="Error creating conversation")
            if existing is None:
                raise DatabaseError(message="Error creating conversation")
            return existing, False
        except SQLAlchemyError as e:
            logger.error("Database error creating conversation: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Error creating conversation",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Conversation %s started by user %s with user %s",
            conversation.conversation_id, user_id, participant_id,
        )
        return conversation, True

    async def delete_conversation(
        self, db: AsyncSession, conversation_id: int, user_id: int
    ) -> None:
        """Either participant may delete; the store cascades messages and reactions."""
        conversation = await self.get_participant_conversation(db, conversation_id, user_id)
        try:
            await db.delete(conversation)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting conversation %s: %s", conversation_id, str(e))
            raise DatabaseError(message="Error deleting conversation")
        logger.info("Conversation %s deleted by user %s", conversation_id, user_id)

    # ── Messages ──────────────────────────────────────────────────────────
    async def list_messages(
        self, db: AsyncSession, conversation_id: int, user_id: int
    ) -> List[Message]:
        """Oldest first, the order a chat screen renders them."""
        await self.get_participant_conversation(db, conversation_id, user_id)
        try:
            result = await db.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at, Message.message_id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error loading messages of %s: %s", conversation_id, str(e))
            raise DatabaseError(message="Error retrieving messages")

    async def send_message(
        self,
        db: AsyncSession,
        user_id: int,
        conversation_id: int,
        content: str,
        reply_to_message_id: Optional[int] = None,
    ) -> Message:
        """
        Raises:
            NotFoundError / ForbiddenError: from the participant guard, or
                "Message to reply to not found"
            ValidationError: the replied-to message is in another conversation
        """
        conversation = await self.get_participant_conversation(db, conversation_id, user_id)

        try:
            if reply_to_message_id is not None:
                target = await db.get(Message, reply_to_message_id)
                if target is None:
                    raise NotFoundError(
                        resource="message",
                        resource_id=reply_to_message_id,
                        message="Message to reply to not found",
                    )
                if target.conversation_id != conversation_id:
                    raise ValidationError(
                        message="Cannot reply to a message from a different conversation",
                        field="reply_to_message_id",
                    )

            message = Message(
                conversation_id=conversation_id,
                sender_id=user_id,
                content=content,
                read=False,
                reply_to_message_id=reply_to_message_id,
            )
            db.add(message)
            conversation.updated_at = datetime.now(timezone.utc)
            await db.flush()

        except MeMantraError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "Database error sending message to conversation %s: %s",
                conversation_id, str(e), exc_info=True,
            )
            raise DatabaseError(
                message="Error sending message",
                context={"error_type": type(e).__name__},
            )

        return message

    async def mark_read(self, db: AsyncSession, conversation_id: int, user_id: int) -> int:
        """Marks the other user's unread messages as read; returns how many changed."""
        await self.get_participant_conversation(db, conversation_id, user_id)
        try:
            result = await db.execute(
                update(Message)
                .where(
                    Message.conversation_id == conversation_id,
                    Message.sender_id != user_id,
                    Message.read.is_(False),
                )
                .values(read=True)
            )
        except SQLAlchemyError as e:
            logger.error("Database error marking %s read: %s", conversation_id, str(e))
            raise DatabaseError(message="Error marking messages as read")
        return result.rowcount

    # ── Reactions ─────────────────────────────────────────────────────────
    async def toggle_reaction(
        self, db: AsyncSession, message_id: int, user_id: int, emoji: str
    ) -> Tuple[Optional[MessageReaction], bool]:
        """
        Adds the caller's `emoji` to a message, or removes it if already there.

        Returns:
            (reaction, True) when the reaction is now present,
            (None, False) when this call removed it.

        A concurrent add of the same reaction counts as added: the caller
        asked for it to be present, and it is.
        """
        await self.get_participant_message(db, message_id, user_id)
        match = (
            MessageReaction.message_id == message_id,
            MessageReaction.user_id == user_id,
            MessageReaction.emoji == emoji,
        )

        try:
            existing = await db.scalar(select(MessageReaction).where(*match))
            if existing is not None:
                await db.delete(existing)
                await db.flush()
                return None, False

            reaction = MessageReaction(message_id=message_id, user_id=user_id, emoji=emoji)
            db.add(reaction)
            await db.flush()
            return reaction, True

        except IntegrityError as e:
            await db.rollback()
            if not is_unique_violation(e):
                logger.error("Integrity error reacting to message %s: %s", message_id, str(e))
                raise DatabaseError(message="Error toggling reaction")
            try:
                existing = await db.scalar(select(MessageReaction).where(*match))
            except SQLAlchemyError as e:
                logger.error("Database error reloading reaction: %s", str(e))
                raise DatabaseError(message="Error toggling reaction")
            if existing is None:
                raise DatabaseError(message="Error toggling reaction")
            return existing, True
        except SQLAlchemyError as e:
            logger.error("Database error reacting to message %s: %s", message_id, str(e))
            raise DatabaseError(
                message="Error toggling reaction",
                context={"error_type": type(e).__name__},
            )

    async def list_reactions(
        self, db: AsyncSession, message_id: int, user_id: int
    ) -> List[Dict[str, Any]]:
        """Reactions grouped by emoji, in the order each emoji first appeared."""
        await self.get_participant_message(db, message_id, user_id)
        try:
            result = await db.execute(
                select(MessageReaction)
                .where(MessageReaction.message_id == message_id)
                .order_by(MessageReaction.created_at, MessageReaction.reaction_id)
            )
            reactions = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error loading reactions of %s: %s", message_id, str(e))
            raise DatabaseError(message="Error retrieving reactions")

        groups: Dict[str, List[int]] = {}
        for reaction in reactions:
            groups.setdefault(reaction.emoji, []).append(reaction.user_id)
        return [
            {"emoji": emoji, "count": len(users), "users": users}
            for emoji, users in groups.items()
        ]


chat_service = ChatService()
