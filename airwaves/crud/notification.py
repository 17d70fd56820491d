"""
Forum notification CRUD operations.
"""
from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from airwaves.crud.base import CRUDBase, as_uuid
from airwaves.models.forum import ForumTopic
from airwaves.models.notification import ForumNotification
from airwaves.utils.dates import utcnow


def _with_context():
    """Eager-load actor profile and topic → category for one round trip."""
    return (
        joinedload(ForumNotification.actor),
        joinedload(ForumNotification.topic).joinedload(ForumTopic.category),
    )


class CRUDNotification(CRUDBase[ForumNotification]):

    async def create_notification(
        self,
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        type: str,
        topic_id: uuid.UUID | None = None,
        post_id: uuid.UUID | None = None,
        content_preview: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ForumNotification:
        notification = ForumNotification(
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=type,
            topic_id=topic_id,
            post_id=post_id,
            content_preview=content_preview,
            details=details,
        )
        db.add(notification)
        await db.flush()
        await db.refresh(notification)
        return notification

    async def list_for_recipient(
        self,
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID | str,
        skip: int = 0,
        limit: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[ForumNotification], int]:
        """Return a newest-first page with actor and topic context joined, plus the total."""
        key = as_uuid(recipient_id)
        if key is None:
            return [], 0

        query = (
            select(ForumNotification)
            .options(*_with_context())
            .where(ForumNotification.recipient_id == key)
        )
        count_query = (
            select(func.count())
            .select_from(ForumNotification)
            .where(ForumNotification.recipient_id == key)
        )

        if unread_only:
            query = query.where(ForumNotification.read.is_(False))
            count_query = count_query.where(ForumNotification.read.is_(False))

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        result = await db.execute(
            query.order_by(
                ForumNotification.created_at.desc(), ForumNotification.id.desc()
            )
            .offset(skip)
            .limit(limit)
        )
        return list(result.unique().scalars().all()), total

    async def get_with_context(
        self,
        db: AsyncSession,
        *,
        notification_id: uuid.UUID | str,
        recipient_id: uuid.UUID | str,
    ) -> ForumNotification | None:
        """Fetch one notification with actor, topic and category in a single query."""
        key = as_uuid(notification_id)
        owner = as_uuid(recipient_id)
        if key is None or owner is None:
            return None
        result = await db.execute(
            select(ForumNotification)
            .options(*_with_context())
            .where(
                ForumNotification.id == key,
                ForumNotification.recipient_id == owner,
            )
        )
        return result.unique().scalar_one_or_none()

    async def mark_as_read(
        self,
        db: AsyncSession,
        *,
        notification_id: uuid.UUID | str,
        recipient_id: uuid.UUID | str,
    ) -> ForumNotification | None:
        key = as_uuid(notification_id)
        owner = as_uuid(recipient_id)
        if key is None or owner is None:
            return None
        result = await db.execute(
            select(ForumNotification).where(
                ForumNotification.id == key,
                ForumNotification.recipient_id == owner,
            )
        )
        obj = result.scalar_one_or_none()
        if obj is None:
            return None
        if not obj.read:
            obj.read = True
            obj.updated_at = utcnow()
            db.add(obj)
            await db.flush()
        return obj

    async def mark_all_read(
        self, db: AsyncSession, *, recipient_id: uuid.UUID | str
    ) -> int:
        """Mark all unread notifications for a recipient as read. Returns count updated."""
        owner = as_uuid(recipient_id)
        if owner is None:
            return 0
        result = await db.execute(
            update(ForumNotification)
            .where(
                ForumNotification.recipient_id == owner,
                ForumNotification.read.is_(False),
            )
            .values(read=True, updated_at=utcnow())
        )
        return result.rowcount  # type: ignore[return-value]

    async def count_unread(
        self, db: AsyncSession, *, recipient_id: uuid.UUID | str
    ) -> int:
        owner = as_uuid(recipient_id)
        if owner is None:
            return 0
        result = await db.execute(
            select(func.count())
            .select_from(ForumNotification)
            .where(
                ForumNotification.recipient_id == owner,
                ForumNotification.read.is_(False),
            )
        )
        return result.scalar_one()


crud_notification = CRUDNotification(ForumNotification)
