"""reaction ledger and bundled content tables

Revision ID: 0001_reactions_and_content
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op


revision = "0001_reactions_and_content"
down_revision = None
branch_labels = None
depends_on = None


def _is_offline() -> bool:
    try:
        return bool(context.is_offline_mode())
    except Exception:
        return False


def _has_table(name: str) -> bool:
    if _is_offline():
        return False
    return bool(sa.inspect(op.get_bind()).has_table(name))


def _counter_columns():
    return [
        sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dislikes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    ]


_CONTENT_TABLES = {
    "videos": lambda: [
        sa.Column("title", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("artist", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("media_type", sa.String(length=32), nullable=False, server_default=""),
    ],
    "posts": lambda: [
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("hashtags", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("media_type", sa.String(length=32), nullable=False, server_default=""),
    ],
    "comments": lambda: [
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("author_id", sa.String(length=64), nullable=True),
    ],
    "memories": lambda: [
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
    ],
    "playlists": lambda: [
        sa.Column("name", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
    ],
    "podcasts": lambda: [
        sa.Column("title", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("host_name", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("guest_name", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
    ],
}


def upgrade() -> None:
    if not _has_table("reactions"):
        op.create_table(
            "reactions",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("entity_kind", sa.String(length=16), nullable=False),
            sa.Column("entity_id", sa.String(length=64), nullable=False),
            sa.Column("action", sa.String(length=16), nullable=False, server_default="LIKE"),
            sa.Column("video_ref", sa.String(length=64), nullable=True),
            sa.Column("post_ref", sa.String(length=64), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("modified_by", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint(
                "user_id", "entity_kind", "entity_id", name="uq_reactions_user_kind_entity"
            ),
        )
        op.create_index("ix_reactions_user_id", "reactions", ["user_id"])
        op.create_index("ix_reactions_created_at", "reactions", ["created_at"])
        op.create_index("ix_reactions_kind_entity", "reactions", ["entity_kind", "entity_id"])
        op.create_index(
            "ix_reactions_kind_entity_action", "reactions", ["entity_kind", "entity_id", "action"]
        )

    for table, columns in _CONTENT_TABLES.items():
        if _has_table(table):
            continue
        op.create_table(
            table,
            sa.Column("id", sa.String(length=64), primary_key=True),
            *columns(),
            *_counter_columns(),
        )
        if table == "comments":
            op.create_index("ix_comments_author_id", "comments", ["author_id"])

    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=64), primary_key=True),
            sa.Column("first_name", sa.String(length=128), nullable=False, server_default=""),
            sa.Column("last_name", sa.String(length=128), nullable=False, server_default=""),
            sa.Column("email", sa.String(length=256), nullable=False, server_default=""),
            sa.Column("avatar_url", sa.String(length=512), nullable=True),
        )
        op.create_index("ix_users_email", "users", ["email"])


def downgrade() -> None:
    for table in ["users", *reversed(list(_CONTENT_TABLES))]:
        if _has_table(table):
            op.drop_table(table)
    if _has_table("reactions"):
        op.drop_index("ix_reactions_kind_entity_action", table_name="reactions")
        op.drop_index("ix_reactions_kind_entity", table_name="reactions")
        op.drop_index("ix_reactions_created_at", table_name="reactions")
        op.drop_index("ix_reactions_user_id", table_name="reactions")
        op.drop_table("reactions")
