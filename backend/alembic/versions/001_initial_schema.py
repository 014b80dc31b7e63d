"""Initial schema: users, mantras, collections, collection_mantras, likes

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

Constraints that concurrent writes depend on:
    - collection_mantras PRIMARY KEY (collection_id, mantra_id)
    - likes UNIQUE (user_id, mantra_id)
    - users UNIQUE (email), UNIQUE (username)

Cascades:
    - deleting a user deletes their collections and likes
    - deleting a collection deletes its membership rows
    - deleting a mantra row (never done by the API; it soft-deletes) deletes
      its memberships and likes

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("username", name="users_username_key"),
        sa.UniqueConstraint("email", name="users_email_key"),
    )

    op.create_table(
        "mantras",
        sa.Column("mantra_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("key_takeaway", sa.Text(), nullable=False),
        sa.Column("background_author", sa.String(255), nullable=True),
        sa.Column("background_description", sa.Text(), nullable=True),
        sa.Column("jamie_take", sa.Text(), nullable=True),
        sa.Column("when_where", sa.Text(), nullable=True),
        sa.Column("negative_thoughts", sa.Text(), nullable=True),
        sa.Column("cbt_principles", sa.Text(), nullable=True),
        sa.Column("references", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("mantra_id"),
        sa.ForeignKeyConstraint(["created_by"], ["users.user_id"], ondelete="SET NULL"),
    )
    # Public listings filter on is_active and sort by created_at
    op.create_index("idx_mantras_active_created_at", "mantras", ["is_active", "created_at"])

    op.create_table(
        "collections",
        sa.Column("collection_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("collection_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_collections_user_id", "collections", ["user_id"])

    op.create_table(
        "collection_mantras",
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("mantra_id", sa.Integer(), nullable=False),
        _created_at("added_at"),
        sa.Column("added_by", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("collection_id", "mantra_id"),
        sa.ForeignKeyConstraint(
            ["collection_id"], ["collections.collection_id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["mantra_id"], ["mantras.mantra_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["added_by"], ["users.user_id"], ondelete="SET NULL"),
    )
    op.create_index("idx_collection_mantras_mantra_id", "collection_mantras", ["mantra_id"])

    op.create_table(
        "likes",
        sa.Column("like_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("mantra_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("like_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["mantra_id"], ["mantras.mantra_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "mantra_id", name="uq_likes_user_mantra"),
    )


def downgrade() -> None:
    op.drop_table("likes")
    op.drop_index("idx_collection_mantras_mantra_id", table_name="collection_mantras")
    op.drop_table("collection_mantras")
    op.drop_index("idx_collections_user_id", table_name="collections")
    op.drop_table("collections")
    op.drop_index("idx_mantras_active_created_at", table_name="mantras")
    op.drop_table("mantras")
    op.drop_table("users")
