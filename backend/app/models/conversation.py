"""
MeMantra Backend — Conversation Model
=======================================

A one-to-one chat thread between two users.

The pair is stored in canonical order (`user1_id` < `user2_id`), so a
conversation between A and B is the same row whichever of them opened it.
The unique constraint on the pair is what leaves a single row when both
users open the conversation at the same moment.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    conversation_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user1_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    user2_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    # Bumped on every new message
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_conversations_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_conversations_ordered_pair"),
        Index("idx_conversations_user2_id", "user2_id"),
    )

    def participants(self) -> tuple:
        return (self.user1_id, self.user2_id)

    def other_participant(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def __repr__(self) -> str:
        return (
            f"<Conversation(conversation_id={self.conversation_id}, "
            f"users=({self.user1_id}, {self.user2_id}))>"
        )
