"""
MeMantra Backend — Message & Reaction Models
==============================================

What:  `messages` (chat messages inside a conversation) and
       `message_reactions` (one emoji from one user on one message).

Invariants enforced by the schema:
    - Deleting a conversation deletes its messages, and deleting a message
      deletes its reactions (ON DELETE CASCADE).
    - A reply keeps working if the message it answered is deleted; the link
      is cleared (ON DELETE SET NULL).
    - A (message_id, user_id, emoji) triple appears at most once, so racing
      "react" requests leave a single row.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Message(Base):
    __tablename__ = "messages"

    message_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conversations.conversation_id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    reply_to_message_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("messages.message_id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Message(message_id={self.message_id}, "
            f"conversation_id={self.conversation_id}, sender_id={self.sender_id})>"
        )


class MessageReaction(Base):
    __tablename__ = "message_reactions"

    reaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("messages.message_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint(
            "message_id", "user_id", "emoji", name="uq_message_reactions_message_user_emoji"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<MessageReaction(message_id={self.message_id}, "
            f"user_id={self.user_id}, emoji='{self.emoji}')>"
        )
