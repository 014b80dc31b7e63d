"""
MeMantra Backend — Collection & Membership Models
===================================================

What:  `collections` (user-owned named groupings) and `collection_mantras`
       (the membership relation between a collection and a mantra).

Invariants enforced by the schema, not by application code:
    - Every collection has exactly one owner (`user_id` NOT NULL).
    - A (collection_id, mantra_id) pair appears at most once: it is the
      composite primary key of `collection_mantras`. Concurrent "add" requests
      for the same pair rely on this constraint to leave exactly one row.
    - Deleting a collection deletes its membership rows (ON DELETE CASCADE).
    - Membership rows are inserted and deleted, never updated.
    - A user has at most one "Saved Mantras" collection (partial unique
      index). Lazy creation on first save relies on it when two saves race.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

SAVED_COLLECTION_NAME = "Saved Mantras"
SAVED_COLLECTION_DESCRIPTION = "Your saved mantras"
SAVED_COLLECTION_WHERE = f"name = '{SAVED_COLLECTION_NAME}'"


class Collection(Base):
    __tablename__ = "collections"

    collection_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        # Listing a user's collections is the hot query
        Index("idx_collections_user_id", "user_id"),
        Index(
            "uq_collections_saved_per_user",
            "user_id",
            unique=True,
            postgresql_where=text(SAVED_COLLECTION_WHERE),
            sqlite_where=text(SAVED_COLLECTION_WHERE),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Collection(collection_id={self.collection_id}, "
            f"user_id={self.user_id}, name='{self.name}')>"
        )


class CollectionMantra(Base):
    __tablename__ = "collection_mantras"

    collection_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("collections.collection_id", ondelete="CASCADE"),
        primary_key=True,
    )
    mantra_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("mantras.mantra_id", ondelete="CASCADE"),
        primary_key=True,
    )

    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    added_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("idx_collection_mantras_mantra_id", "mantra_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CollectionMantra(collection_id={self.collection_id}, "
            f"mantra_id={self.mantra_id})>"
        )
