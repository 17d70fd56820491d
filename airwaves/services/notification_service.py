"""
Notification detection service.
Creates forum notification rows for replies, likes, mentions and quotes and
stages them on the change feed so subscribers receive them once committed.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from airwaves.core.config import settings
from airwaves.crud.forum import crud_topic
from airwaves.crud.notification import crud_notification
from airwaves.crud.profile import crud_profile
from airwaves.models.forum import ForumPost, ForumTopic
from airwaves.models.notification import ForumNotification
from airwaves.models.profile import Profile
from airwaves.services.change_feed import ChangeFeed, change_feed
from airwaves.utils.mentions import (
    extract_mentioned_user_ids,
    extract_mentioned_usernames,
    make_preview,
)

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self._feed = feed or change_feed

    async def notify(
        self,
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        kind: str,
        topic_id: uuid.UUID | None = None,
        post_id: uuid.UUID | None = None,
        content_preview: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ForumNotification | None:
        """
        Persist a notification and stage it for realtime delivery.
        Users are never notified about their own actions.
        """
        if actor_id is not None and recipient_id == actor_id:
            logger.debug("Skipping %s notification to self: user_id=%s", kind, actor_id)
            return None

        notification = await crud_notification.create_notification(
            db,
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=kind,
            topic_id=topic_id,
            post_id=post_id,
            content_preview=content_preview,
            details=details,
        )
        self._feed.stage_insert(db, notification)
        logger.debug(
            "Created %s notification %s for recipient %s", kind, notification.id, recipient_id
        )
        return notification

    async def topic_details(self, db: AsyncSession, topic: ForumTopic) -> dict[str, Any]:
        """Topic context captured at write time so readers can skip the lookup."""
        details: dict[str, Any] = {"topic_title": topic.title, "topic_slug": topic.slug}
        try:
            context = await crud_topic.lookup_context(db, topic.id)
        except Exception as exc:
            logger.warning("Could not resolve category for topic %s: %s", topic.id, exc)
            return details
        if context is not None and context.category_slug:
            details["category_slug"] = context.category_slug
        return details

    # ── Detection ─────────────────────────────────────────────────────────────

    async def notify_reply(
        self,
        db: AsyncSession,
        *,
        topic: ForumTopic,
        post: ForumPost,
        actor: Profile,
    ) -> ForumNotification | None:
        """Tell the topic author someone replied."""
        return await self.notify(
            db,
            recipient_id=topic.user_id,
            actor_id=actor.id,
            kind="reply",
            topic_id=topic.id,
            post_id=post.id,
            content_preview=make_preview(post.content, settings.CONTENT_PREVIEW_LENGTH),
            details=await self.topic_details(db, topic),
        )

    async def notify_like(
        self,
        db: AsyncSession,
        *,
        topic: ForumTopic,
        post: ForumPost,
        actor: Profile,
    ) -> ForumNotification | None:
        return await self.notify(
            db,
            recipient_id=post.user_id,
            actor_id=actor.id,
            kind="like",
            topic_id=topic.id,
            post_id=post.id,
            content_preview=make_preview(post.content, settings.CONTENT_PREVIEW_LENGTH),
            details=await self.topic_details(db, topic),
        )

    async def notify_mentions(
        self,
        db: AsyncSession,
        *,
        kind: str,
        topic: ForumTopic,
        post: ForumPost,
        actor: Profile,
        previous_content: str | None = None,
        exclude: Iterable[uuid.UUID] = (),
    ) -> list[ForumNotification]:
        """
        Notify every user mentioned in ``post``. With ``previous_content``
        (an edit), only users who were not mentioned before are notified.
        """
        mentioned = await self.resolve_mentions(db, post.content)
        if previous_content is not None:
            mentioned -= await self.resolve_mentions(db, previous_content)
        mentioned -= set(exclude)
        if not mentioned:
            return []

        details = await self.topic_details(db, topic)
        preview = make_preview(post.content, settings.CONTENT_PREVIEW_LENGTH)
        created = []
        for recipient_id in sorted(mentioned, key=str):
            notification = await self.notify(
                db,
                recipient_id=recipient_id,
                actor_id=actor.id,
                kind=kind,
                topic_id=topic.id,
                post_id=post.id,
                content_preview=preview,
                details=dict(details),
            )
            if notification is not None:
                created.append(notification)
        return created

    async def notify_quote(
        self,
        db: AsyncSession,
        *,
        topic: ForumTopic,
        reply: ForumPost,
        quoted: ForumPost,
        actor: Profile,
    ) -> ForumNotification | None:
        """Tell the author of ``quoted`` that ``reply`` quotes them; links to the quoted post."""
        details = await self.topic_details(db, topic)
        details["quoted_post_id"] = str(quoted.id)
        return await self.notify(
            db,
            recipient_id=quoted.user_id,
            actor_id=actor.id,
            kind="quote",
            topic_id=topic.id,
            post_id=reply.id,
            content_preview=make_preview(quoted.content, settings.CONTENT_PREVIEW_LENGTH),
            details=details,
        )

    async def resolve_mentions(self, db: AsyncSession, content: str) -> set[uuid.UUID]:
        ids = set(await crud_profile.existing_ids(db, extract_mentioned_user_ids(content)))
        ids.update(await crud_profile.ids_for_usernames(db, extract_mentioned_usernames(content)))
        return ids


notification_service = NotificationService()
