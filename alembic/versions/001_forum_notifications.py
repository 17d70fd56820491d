"""001_forum_notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the forum and notification tables:
  - profiles
  - forum_categories
  - forum_topics
  - forum_posts
  - forum_post_reactions
  - forum_notifications
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("profile_picture", sa.String(500), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
        sa.UniqueConstraint("username", name="uq_profiles_username"),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"])

    # ── forum_categories ──────────────────────────────────────────────────────
    op.create_table(
        "forum_categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_forum_categories"),
        sa.UniqueConstraint("slug", name="uq_forum_categories_slug"),
    )

    # ── forum_topics ──────────────────────────────────────────────────────────
    op.create_table(
        "forum_topics",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("slug", sa.String(320), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("created_at"),
        _timestamp("last_post_at"),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["forum_categories.id"],
            name="fk_forum_topics_category_id_forum_categories",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["profiles.id"],
            name="fk_forum_topics_user_id_profiles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_forum_topics"),
    )
    op.create_index("ix_forum_topics_category_id", "forum_topics", ["category_id"])
    op.create_index("ix_forum_topics_slug", "forum_topics", ["slug"])

    # ── forum_posts ───────────────────────────────────────────────────────────
    op.create_table(
        "forum_posts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("topic_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["topic_id"],
            ["forum_topics.id"],
            name="fk_forum_posts_topic_id_forum_topics",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["profiles.id"],
            name="fk_forum_posts_user_id_profiles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_forum_posts"),
    )
    op.create_index("ix_forum_posts_topic_id", "forum_posts", ["topic_id"])

    # ── forum_post_reactions ──────────────────────────────────────────────────
    op.create_table(
        "forum_post_reactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reaction_type", sa.String(20), nullable=False, server_default="like"),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(
            ["post_id"],
            ["forum_posts.id"],
            name="fk_forum_post_reactions_post_id_forum_posts",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["profiles.id"],
            name="fk_forum_post_reactions_user_id_profiles",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_forum_post_reactions"),
        sa.UniqueConstraint(
            "post_id", "user_id", "reaction_type",
            name="uq_forum_post_reactions_post_user_type",
        ),
    )
    op.create_index("ix_forum_post_reactions_post_id", "forum_post_reactions", ["post_id"])

    # ── forum_notifications ───────────────────────────────────────────────────
    op.create_table(
        "forum_notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("recipient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("topic_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("content_preview", sa.Text(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["recipient_id"],
            ["profiles.id"],
            name="fk_forum_notifications_recipient_id_profiles",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["actor_id"],
            ["profiles.id"],
            name="fk_forum_notifications_actor_id_profiles",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["topic_id"],
            ["forum_topics.id"],
            name="fk_forum_notifications_topic_id_forum_topics",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["post_id"],
            ["forum_posts.id"],
            name="fk_forum_notifications_post_id_forum_posts",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_forum_notifications"),
    )
    op.create_index(
        "ix_forum_notifications_recipient_id", "forum_notifications", ["recipient_id"]
    )
    op.create_index(
        "ix_forum_notifications_recipient_read",
        "forum_notifications",
        ["recipient_id", "read"],
    )
    op.create_index(
        "ix_forum_notifications_created_at", "forum_notifications", ["created_at"]
    )


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("forum_notifications")
    op.drop_table("forum_post_reactions")
    op.drop_table("forum_posts")
    op.drop_table("forum_topics")
    op.drop_table("forum_categories")
    op.drop_table("profiles")
