"""
Context enrichment for raw notification rows.

Each field of the context is resolved by an ordered list of steps; the first
step that produces a value wins. Lookups run in their own short-lived
sessions and a failing lookup only degrades the field it was resolving.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from airwaves.crud.forum import crud_category, crud_topic
from airwaves.crud.profile import crud_profile
from airwaves.schemas.notification import (
    ActorProfile,
    EnrichedContext,
    NotificationActor,
    RawNotificationEvent,
    TopicContext,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ACTOR_NAME = "User"

Step = Callable[[], Awaitable[T | None]]


async def first_resolved(steps: Sequence[Step[T]]) -> T | None:
    """Run ``steps`` in order and return the first non-empty result."""
    for step in steps:
        value = await step()
        if value not in (None, ""):
            return value
    return None


def actor_from_profile(profile: ActorProfile, fallback_id: str | None) -> NotificationActor:
    return NotificationActor(
        id=profile.id or fallback_id or "",
        name=profile.display_name or profile.username or DEFAULT_ACTOR_NAME,
        avatar=profile.profile_picture or None,
    )


class ContextEnricher:
    """
    Resolve actor, topic and link-target context for a raw notification.

    ``enrich`` never raises: at most three lookups are issued (actor profile,
    topic with category, category alone) and any of them may fail on its own.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        profiles: Any = crud_profile,
        topics: Any = crud_topic,
        categories: Any = crud_category,
    ) -> None:
        if session_factory is None:
            from airwaves.db.session import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self._session_factory = session_factory
        self.profiles = profiles
        self.topics = topics
        self.categories = categories

    async def enrich(self, raw: RawNotificationEvent) -> EnrichedContext:
        run = _EnrichmentRun(self, raw)
        return EnrichedContext(
            actor=await run.actor(),
            topic_title=await run.topic_title(),
            topic_slug=await run.topic_slug(),
            category_slug=await run.category_slug(),
            target_post_id=run.target_post_id(),
        )

    async def lookup(
        self,
        raw: RawNotificationEvent,
        what: str,
        fn: Callable[[AsyncSession], Awaitable[T | None]],
    ) -> T | None:
        try:
            async with self._session_factory() as db:
                return await fn(db)
        except Exception as exc:
            logger.warning(
                "Notification %s: %s lookup failed, continuing without it: %s",
                raw.id,
                what,
                exc,
            )
            return None


class _EnrichmentRun:
    """Per-notification resolution state; the topic lookup is shared by all steps."""

    def __init__(self, enricher: ContextEnricher, raw: RawNotificationEvent) -> None:
        self._enricher = enricher
        self._raw = raw
        self._topic: TopicContext | None = None
        self._topic_loaded = False

    # ── Actor ─────────────────────────────────────────────────────────────────

    async def actor(self) -> NotificationActor | None:
        return await first_resolved([self._embedded_actor, self._looked_up_actor])

    async def _embedded_actor(self) -> NotificationActor | None:
        if self._raw.actor is None:
            return None
        return actor_from_profile(self._raw.actor, self._raw.actor_id)

    async def _looked_up_actor(self) -> NotificationActor | None:
        actor_id = self._raw.actor_id
        if not actor_id:
            return None
        profile = await self._enricher.lookup(
            self._raw,
            "actor profile",
            lambda db: self._enricher.profiles.lookup(db, actor_id),
        )
        if profile is None:
            return NotificationActor(id=actor_id, name=DEFAULT_ACTOR_NAME)
        return actor_from_profile(profile, actor_id)

    # ── Topic ─────────────────────────────────────────────────────────────────

    def _details_pair(self) -> tuple[str, str] | None:
        title = self._raw.detail("topic_title")
        slug = self._raw.detail("topic_slug")
        if isinstance(title, str) and isinstance(slug, str):
            return title, slug
        return None

    async def _topic_context(self) -> TopicContext | None:
        if self._topic_loaded:
            return self._topic
        self._topic_loaded = True
        if self._raw.topic is not None:
            self._topic = self._raw.topic
        elif self._raw.topic_id:
            topic_id = self._raw.topic_id
            self._topic = await self._enricher.lookup(
                self._raw,
                "topic",
                lambda db: self._enricher.topics.lookup_context(db, topic_id),
            )
        return self._topic

    async def topic_title(self) -> str | None:
        pair = self._details_pair()
        if pair is not None:
            return pair[0]
        return await first_resolved([
            self._detail_step("topic_title"),
            self._topic_field("title"),
        ])

    async def topic_slug(self) -> str | None:
        pair = self._details_pair()
        if pair is not None:
            return pair[1]
        return await first_resolved([
            self._detail_step("topic_slug"),
            self._topic_field("slug"),
        ])

    async def category_slug(self) -> str | None:
        return await first_resolved([
            self._detail_step("category_slug"),
            self._topic_field("category_slug"),
            self._category_by_id,
        ])

    async def _category_by_id(self) -> str | None:
        topic = await self._topic_context()
        if topic is None or not topic.category_id:
            return None
        category_id = topic.category_id
        return await self._enricher.lookup(
            self._raw,
            "category",
            lambda db: self._enricher.categories.lookup_slug(db, category_id),
        )

    def _detail_step(self, key: str) -> Step[str]:
        async def step() -> str | None:
            value = self._raw.detail(key)
            return value if isinstance(value, str) else None

        return step

    def _topic_field(self, name: str) -> Step[str]:
        async def step() -> str | None:
            topic = await self._topic_context()
            if topic is None:
                return None
            return getattr(topic, name)

        return step

    # ── Link target ───────────────────────────────────────────────────────────

    def target_post_id(self) -> str | None:
        quoted = self._raw.detail("quoted_post_id")
        if quoted is not None:
            return str(quoted)
        return self._raw.post_id
