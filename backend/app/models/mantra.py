"""
MeMantra Backend — Mantra Model
=================================

What:  ORM model for the `mantras` table, the app's core content type.
Who:   Read by MantraService, CollectionService and LikeService.

Table Design:
    - Mantras are shared content. `created_by` records the admin who wrote
      one but grants no ownership; it is nulled if that user is deleted.
    - Deletion is soft (`is_active = false`) so existing likes and
      collection memberships keep pointing at a valid row. Every public
      query filters on `is_active`.
    - The narrative fields are optional free text shown on the detail view.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text, true
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Mantra(Base):
    __tablename__ = "mantras"

    mantra_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Content ───────────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    key_takeaway: Mapped[str] = mapped_column(Text, nullable=False)
    background_author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    background_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    jamie_take: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    when_where: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    negative_thoughts: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cbt_principles: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    references: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Bookkeeping ───────────────────────────────────────────────────────
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_mantras_active_created_at", "is_active", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Mantra(mantra_id={self.mantra_id}, title='{self.title}')>"
