"""Chat tables, categories, and one Saved Mantras collection per user

Revision ID: 002
Revises: 001
Create Date: 2025-02-01 00:00:00.000000+00:00

Constraints that concurrent writes depend on:
    - conversations UNIQUE (user1_id, user2_id) with user1_id < user2_id
    - message_reactions UNIQUE (message_id, user_id, emoji)
    - collections partial UNIQUE (user_id) WHERE name = 'Saved Mantras'

Before the partial index is created, users with more than one "Saved
Mantras" collection have them merged into their oldest one.

Cascades:
    - deleting a user deletes their conversations, messages and reactions
    - deleting a conversation deletes its messages; deleting a message
      deletes its reactions and clears replies pointing at it
    - deleting a category or mantra deletes the link rows between them

Rollback: downgrade() drops the new tables and the partial index; merged
Saved Mantras collections are not split again.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SAVED_WHERE = "name = 'Saved Mantras'"


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _merge_duplicate_saved_collections() -> None:
    op.execute(
        f"""
        WITH ranked AS (
            SELECT collection_id,
                   MIN(collection_id) OVER (PARTITION BY user_id) AS keep_id
            FROM collections
            WHERE {SAVED_WHERE}
        )
        INSERT INTO collection_mantras (collection_id, mantra_id, added_at, added_by)
        SELECT r.keep_id, cm.mantra_id, cm.added_at, cm.added_by
        FROM collection_mantras cm
        JOIN ranked r ON r.collection_id = cm.collection_id
        WHERE r.collection_id <> r.keep_id
        ON CONFLICT DO NOTHING
        """
    )
    op.execute(
        """
        DELETE FROM collections c
        USING collections keep
        WHERE c.name = 'Saved Mantras'
          AND keep.name = 'Saved Mantras'
          AND c.user_id = keep.user_id
          AND c.collection_id > keep.collection_id
        """
    )


def upgrade() -> None:
    _merge_duplicate_saved_collections()
    op.create_index(
        "uq_collections_saved_per_user",
        "collections",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text(SAVED_WHERE),
        sqlite_where=sa.text(SAVED_WHERE),
    )

    op.create_table(
        "categories",
        sa.Column("category_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category_type", sa.String(50), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("category_id"),
        sa.UniqueConstraint("name", name="categories_name_key"),
    )

    op.create_table(
        "mantra_categories",
        sa.Column("mantra_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["mantra_id"], ["mantras.mantra_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["category_id"], ["categories.category_id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("mantra_id", "category_id"),
    )
    op.create_index(
        "idx_mantra_categories_category_id", "mantra_categories", ["category_id"]
    )

    op.create_table(
        "conversations",
        sa.Column("conversation_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user1_id", sa.Integer(), nullable=False),
        sa.Column("user2_id", sa.Integer(), nullable=False),
        _created_at(),
        _created_at("updated_at"),
        sa.ForeignKeyConstraint(["user1_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user2_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("conversation_id"),
        sa.UniqueConstraint("user1_id", "user2_id", name="uq_conversations_pair"),
        sa.CheckConstraint("user1_id < user2_id", name="ck_conversations_ordered_pair"),
    )
    op.create_index("idx_conversations_user2_id", "conversations", ["user2_id"])

    op.create_table(
        "messages",
        sa.Column("message_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("reply_to_message_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["conversations.conversation_id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["sender_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["reply_to_message_id"], ["messages.message_id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("message_id"),
    )
    op.create_index(
        "idx_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )

    op.create_table(
        "message_reactions",
        sa.Column("reaction_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("emoji", sa.String(32), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["message_id"], ["messages.message_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("reaction_id"),
        sa.UniqueConstraint(
            "message_id", "user_id", "emoji", name="uq_message_reactions_message_user_emoji"
        ),
    )


def downgrade() -> None:
    op.drop_table("message_reactions")
    op.drop_index("idx_messages_conversation_created", table_name="messages")
    op.drop_table("messages")
    op.drop_index("idx_conversations_user2_id", table_name="conversations")
    op.drop_table("conversations")
    op.drop_index("idx_mantra_categories_category_id", table_name="mantra_categories")
    op.drop_table("mantra_categories")
    op.drop_table("categories")
    op.drop_index("uq_collections_saved_per_user", table_name="collections")
