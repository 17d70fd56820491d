"""
Forum CRUD operations: topics, categories, posts and reactions.
Includes the context lookups used to enrich notifications.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airwaves.crud.base import CRUDBase, as_uuid
from airwaves.models.forum import ForumCategory, ForumPost, ForumPostReaction, ForumTopic
from airwaves.schemas.notification import TopicContext
from airwaves.utils.dates import utcnow


class CRUDCategory(CRUDBase[ForumCategory]):

    async def lookup_slug(
        self, db: AsyncSession, category_id: uuid.UUID | str
    ) -> str | None:
        key = as_uuid(category_id)
        if key is None:
            return None
        result = await db.execute(
            select(ForumCategory.slug).where(ForumCategory.id == key)
        )
        return result.scalar_one_or_none()


class CRUDTopic(CRUDBase[ForumTopic]):

    async def create_topic(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        title: str,
        slug: str,
        category_id: uuid.UUID | None = None,
    ) -> ForumTopic:
        topic = ForumTopic(
            user_id=user_id,
            title=title,
            slug=slug,
            category_id=category_id,
        )
        db.add(topic)
        await db.flush()
        await db.refresh(topic)
        return topic

    async def lookup_context(
        self, db: AsyncSession, topic_id: uuid.UUID | str
    ) -> TopicContext | None:
        """
        Return title, slug and category slug for a topic in one query.
        The category is outer-joined: a topic without one still resolves.
        """
        key = as_uuid(topic_id)
        if key is None:
            return None
        result = await db.execute(
            select(
                ForumTopic.title,
                ForumTopic.slug,
                ForumTopic.category_id,
                ForumCategory.slug.label("category_slug"),
            )
            .outerjoin(ForumCategory, ForumTopic.category_id == ForumCategory.id)
            .where(ForumTopic.id == key)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return TopicContext(
            title=row.title,
            slug=row.slug,
            category_id=row.category_id,
            category_slug=row.category_slug,
        )

    async def touch(self, db: AsyncSession, *, topic: ForumTopic) -> None:
        topic.last_post_at = utcnow()
        db.add(topic)
        await db.flush()


class CRUDPost(CRUDBase[ForumPost]):

    async def create_post(
        self,
        db: AsyncSession,
        *,
        topic_id: uuid.UUID,
        user_id: uuid.UUID,
        content: str,
    ) -> ForumPost:
        post = ForumPost(topic_id=topic_id, user_id=user_id, content=content)
        db.add(post)
        await db.flush()
        await db.refresh(post)
        return post

    async def update_content(
        self, db: AsyncSession, *, post: ForumPost, content: str
    ) -> ForumPost:
        post.content = content
        post.is_edited = True
        db.add(post)
        await db.flush()
        await db.refresh(post)
        return post


class CRUDReaction(CRUDBase[ForumPostReaction]):

    async def add_reaction(
        self,
        db: AsyncSession,
        *,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        reaction_type: str = "like",
    ) -> ForumPostReaction | None:
        """Insert a reaction. Returns None when the user already reacted."""
        if await self.exists(
            db, post_id=post_id, user_id=user_id, reaction_type=reaction_type
        ):
            return None
        reaction = ForumPostReaction(
            post_id=post_id, user_id=user_id, reaction_type=reaction_type
        )
        db.add(reaction)
        await db.flush()
        await db.refresh(reaction)
        return reaction

    async def remove_reaction(
        self,
        db: AsyncSession,
        *,
        post_id: uuid.UUID,
        user_id: uuid.UUID,
        reaction_type: str = "like",
    ) -> bool:
        result = await db.execute(
            select(ForumPostReaction).where(
                ForumPostReaction.post_id == post_id,
                ForumPostReaction.user_id == user_id,
                ForumPostReaction.reaction_type == reaction_type,
            )
        )
        reaction = result.scalar_one_or_none()
        if reaction is None:
            return False
        await db.delete(reaction)
        await db.flush()
        return True


crud_category = CRUDCategory(ForumCategory)
crud_topic = CRUDTopic(ForumTopic)
crud_post = CRUDPost(ForumPost)
crud_reaction = CRUDReaction(ForumPostReaction)
