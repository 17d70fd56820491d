"""
Forum write business logic.
Enforces topic/post rules and fires reply, like, mention and quote notifications.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from airwaves.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from airwaves.crud.forum import crud_category, crud_post, crud_reaction, crud_topic
from airwaves.models.forum import ForumPost, ForumPostReaction, ForumTopic
from airwaves.models.profile import Profile
from airwaves.schemas.forum import PostCreate, PostUpdate, TopicCreate
from airwaves.services.notification_service import notification_service
from airwaves.utils.mentions import extract_quoted_post_ids
from airwaves.utils.slugs import generate_slug

logger = logging.getLogger(__name__)


class ForumService:

    async def create_topic(
        self,
        db: AsyncSession,
        *,
        topic_in: TopicCreate,
        current_user: Profile,
    ) -> tuple[ForumTopic, ForumPost]:
        """
        Create a topic and its first post.
        Users mentioned in the first post get a ``mention_post`` notification.
        """
        if topic_in.category_id is not None:
            category = await crud_category.get(db, topic_in.category_id)
            if category is None:
                raise NotFoundException("Category", str(topic_in.category_id))

        topic = await crud_topic.create_topic(
            db,
            user_id=current_user.id,
            title=topic_in.title,
            slug=generate_slug(topic_in.title),
            category_id=topic_in.category_id,
        )
        first_post = await crud_post.create_post(
            db, topic_id=topic.id, user_id=current_user.id, content=topic_in.content
        )

        await notification_service.notify_mentions(
            db,
            kind="mention_post",
            topic=topic,
            post=first_post,
            actor=current_user,
        )
        return topic, first_post

    async def create_post(
        self,
        db: AsyncSession,
        *,
        topic_id: uuid.UUID,
        post_in: PostCreate,
        current_user: Profile,
    ) -> ForumPost:
        """
        Reply to a topic.
        Notifies the topic author (reply), mentioned users (mention_reply) and
        the authors of quoted posts (quote).
        """
        topic = await crud_topic.get(db, topic_id)
        if topic is None:
            raise NotFoundException("Topic", str(topic_id))
        if topic.is_locked:
            raise ForbiddenException("This topic is locked")

        post = await crud_post.create_post(
            db, topic_id=topic.id, user_id=current_user.id, content=post_in.content
        )
        await crud_topic.touch(db, topic=topic)

        await notification_service.notify_reply(
            db, topic=topic, post=post, actor=current_user
        )
        # The topic author already hears about this reply.
        await notification_service.notify_mentions(
            db,
            kind="mention_reply",
            topic=topic,
            post=post,
            actor=current_user,
            exclude=[topic.user_id],
        )
        await self._notify_quotes(db, topic=topic, reply=post, actor=current_user)
        return post

    async def update_post(
        self,
        db: AsyncSession,
        *,
        post_id: uuid.UUID,
        post_in: PostUpdate,
        current_user: Profile,
    ) -> ForumPost:
        """Edit a post. Only users newly mentioned by the edit are notified."""
        post = await crud_post.get(db, post_id)
        if post is None:
            raise NotFoundException("Post", str(post_id))
        if post.user_id != current_user.id:
            raise ForbiddenException("You can only edit your own posts")

        previous_content = post.content
        updated = await crud_post.update_content(db, post=post, content=post_in.content)

        topic = await crud_topic.get(db, updated.topic_id)
        if topic is not None:
            await notification_service.notify_mentions(
                db,
                kind="mention_reply",
                topic=topic,
                post=updated,
                actor=current_user,
                previous_content=previous_content,
            )
        return updated

    async def add_reaction(
        self,
        db: AsyncSession,
        *,
        post_id: uuid.UUID,
        current_user: Profile,
    ) -> ForumPostReaction:
        """Like a post and notify its author."""
        post = await crud_post.get(db, post_id)
        if post is None:
            raise NotFoundException("Post", str(post_id))

        reaction = await crud_reaction.add_reaction(
            db, post_id=post.id, user_id=current_user.id
        )
        if reaction is None:
            raise ConflictException("You have already liked this post")

        topic = await crud_topic.get(db, post.topic_id)
        if topic is None:
            logger.warning("Post %s has no topic; like notification skipped", post.id)
            return reaction
        await notification_service.notify_like(
            db, topic=topic, post=post, actor=current_user
        )
        return reaction

    async def remove_reaction(
        self,
        db: AsyncSession,
        *,
        post_id: uuid.UUID,
        current_user: Profile,
    ) -> None:
        removed = await crud_reaction.remove_reaction(
            db, post_id=post_id, user_id=current_user.id
        )
        if not removed:
            raise NotFoundException("Reaction")

    async def _notify_quotes(
        self,
        db: AsyncSession,
        *,
        topic: ForumTopic,
        reply: ForumPost,
        actor: Profile,
    ) -> None:
        for quoted_id in extract_quoted_post_ids(reply.content):
            quoted = await crud_post.get(db, quoted_id)
            if quoted is None:
                logger.debug("Quoted post %s not found; skipping quote notification", quoted_id)
                continue
            await notification_service.notify_quote(
                db, topic=topic, reply=reply, quoted=quoted, actor=actor
            )


forum_service = ForumService()
