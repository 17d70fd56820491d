"""
Context enricher tests.
Lookups are replaced with in-memory fakes so call counts and failures can be controlled.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from airwaves.schemas.notification import ActorProfile, RawNotificationEvent, TopicContext
from airwaves.services.enricher import ContextEnricher
from airwaves.services.mapper import map_notification


@asynccontextmanager
async def _no_db():
    yield None


class FakeLookups:
    """Stands in for crud_profile, crud_topic and crud_category."""

    def __init__(
        self,
        profile: ActorProfile | None = None,
        topic: TopicContext | None = None,
        category_slug: str | None = None,
        fail: bool = False,
    ) -> None:
        self.profile = profile
        self.topic = topic
        self.category_slug = category_slug
        self.fail = fail
        self.calls: list[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise RuntimeError(f"{name} lookup unavailable")

    async def lookup(self, db: Any, user_id: str) -> ActorProfile | None:
        self._record("profile")
        return self.profile

    async def lookup_context(self, db: Any, topic_id: str) -> TopicContext | None:
        self._record("topic")
        return self.topic

    async def lookup_slug(self, db: Any, category_id: str) -> str | None:
        self._record("category")
        return self.category_slug


def _enricher(fake: FakeLookups) -> ContextEnricher:
    return ContextEnricher(_no_db, profiles=fake, topics=fake, categories=fake)


def _raw(**overrides: Any) -> RawNotificationEvent:
    data: dict[str, Any] = {
        "id": "n1",
        "recipient_id": "u-bob",
        "actor_id": "u-ann",
        "type": "like",
        "topic_id": "t1",
        "post_id": "p1",
        "created_at": datetime(2026, 10, 19, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return RawNotificationEvent.model_validate(data)


ANN = ActorProfile(id="u-ann", display_name="Ann", username="ann", profile_picture="ann.png")
SHOW_TIMES = TopicContext(
    title="Show Times", slug="show-times", category_id="c1", category_slug="station-talk"
)


class TestDegradation:
    async def test_every_lookup_failing_still_produces_context(self) -> None:
        fake = FakeLookups(fail=True)
        ctx = await _enricher(fake).enrich(_raw())

        assert ctx.actor is not None
        assert ctx.actor.id == "u-ann"
        assert ctx.actor.name == "User"
        assert ctx.topic_title is None
        assert ctx.category_slug is None
        display = map_notification(_raw(), ctx, base_path="/members/forum")
        assert display.content == "User liked a post."
        assert display.link == "/members/forum"

    async def test_missing_profile_uses_default_name(self) -> None:
        ctx = await _enricher(FakeLookups(topic=SHOW_TIMES)).enrich(_raw())
        assert ctx.actor is not None
        assert ctx.actor.name == "User"
        assert ctx.topic_title == "Show Times"

    async def test_no_actor_id_means_no_actor(self) -> None:
        fake = FakeLookups(topic=SHOW_TIMES)
        ctx = await _enricher(fake).enrich(_raw(actor_id=None))
        assert ctx.actor is None
        assert "profile" not in fake.calls


class TestResolution:
    async def test_full_lookup_path(self) -> None:
        fake = FakeLookups(profile=ANN, topic=SHOW_TIMES)
        ctx = await _enricher(fake).enrich(_raw())

        assert ctx.actor.name == "Ann"
        assert ctx.actor.avatar == "ann.png"
        assert ctx.topic_slug == "show-times"
        assert ctx.category_slug == "station-talk"
        assert fake.calls == ["profile", "topic"]
        display = map_notification(_raw(), ctx, base_path="/members/forum")
        assert display.content == 'Ann liked your post in: "Show Times"'
        assert display.link == "/members/forum/station-talk/show-times/p1"

    async def test_embedded_context_needs_no_lookups(self) -> None:
        fake = FakeLookups()
        raw = _raw(actor=ANN, topic=SHOW_TIMES)
        ctx = await _enricher(fake).enrich(raw)
        assert ctx.actor.name == "Ann"
        assert ctx.topic_title == "Show Times"
        assert fake.calls == []

    async def test_details_pair_and_category_skip_topic_lookup(self) -> None:
        fake = FakeLookups(profile=ANN, topic=SHOW_TIMES)
        raw = _raw(
            details={"topicTitle": "Playlist", "topicSlug": "playlist", "categorySlug": "music"}
        )
        ctx = await _enricher(fake).enrich(raw)
        assert (ctx.topic_title, ctx.topic_slug, ctx.category_slug) == (
            "Playlist",
            "playlist",
            "music",
        )
        assert fake.calls == ["profile"]

    async def test_category_falls_back_to_category_lookup(self) -> None:
        topic = TopicContext(title="Show Times", slug="show-times", category_id="c1")
        fake = FakeLookups(profile=ANN, topic=topic, category_slug="station-talk")
        ctx = await _enricher(fake).enrich(_raw())
        assert ctx.category_slug == "station-talk"
        assert fake.calls == ["profile", "topic", "category"]

    async def test_at_most_one_lookup_per_source(self) -> None:
        topic = TopicContext(title="Show Times", slug="show-times", category_id="c1")
        fake = FakeLookups(profile=ANN, topic=topic)
        await _enricher(fake).enrich(_raw())
        assert sorted(fake.calls) == ["category", "profile", "topic"]


class TestTargetPost:
    async def test_quoted_post_wins(self) -> None:
        raw = _raw(type="quote", post_id="p-reply", details={"quotedPostId": "p-quoted"})
        ctx = await _enricher(FakeLookups(profile=ANN, topic=SHOW_TIMES)).enrich(raw)
        assert ctx.target_post_id == "p-quoted"

    async def test_post_id_otherwise(self) -> None:
        ctx = await _enricher(FakeLookups(profile=ANN, topic=SHOW_TIMES)).enrich(_raw())
        assert ctx.target_post_id == "p1"
