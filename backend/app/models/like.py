"""
MeMantra Backend — Like Model
===============================

One row per (user, mantra) like. The unique constraint plays the same role
as the membership primary key: racing "like" requests leave a single row.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Like(Base):
    __tablename__ = "likes"

    like_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    mantra_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("mantras.mantra_id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "mantra_id", name="uq_likes_user_mantra"),
    )

    def __repr__(self) -> str:
        return f"<Like(user_id={self.user_id}, mantra_id={self.mantra_id})>"
