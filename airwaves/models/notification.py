"""
Forum notification ORM model.
One row per notification-worthy event; only ``read`` is mutated after insert.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from airwaves.db.base import Base, JSONType
from airwaves.utils.dates import utcnow


class ForumNotification(Base):
    __tablename__ = "forum_notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Free-form: unknown kinds must still load.
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="system")
    topic_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("forum_topics.id", ondelete="SET NULL"),
        nullable=True,
    )
    post_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("forum_posts.id", ondelete="SET NULL"),
        nullable=True,
    )
    content_preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    actor: Mapped["Profile | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Profile",
        foreign_keys=[actor_id],
        lazy="raise",
    )
    topic: Mapped["ForumTopic | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "ForumTopic",
        foreign_keys=[topic_id],
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_forum_notifications_recipient_id", "recipient_id"),
        Index("ix_forum_notifications_recipient_read", "recipient_id", "read"),
        Index("ix_forum_notifications_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ForumNotification id={self.id} recipient_id={self.recipient_id} "
            f"type={self.type}>"
        )
