"""
MeMantra Backend — Category Models
====================================

`categories` groups mantras by theme (e.g. "Anxiety", "Focus") for the
browse screens; `mantra_categories` is the many-to-many link. Categories
are curated content, so like mantras they are hidden with `is_active`
rather than deleted.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, text, true
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Category(Base):
    __tablename__ = "categories"

    category_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

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

    def __repr__(self) -> str:
        return f"<Category(category_id={self.category_id}, name='{self.name}')>"


class MantraCategory(Base):
    __tablename__ = "mantra_categories"

    mantra_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("mantras.mantra_id", ondelete="CASCADE"),
        primary_key=True,
    )
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.category_id", ondelete="CASCADE"),
        primary_key=True,
    )

    __table_args__ = (
        Index("idx_mantra_categories_category_id", "category_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MantraCategory(mantra_id={self.mantra_id}, "
            f"category_id={self.category_id})>"
        )
