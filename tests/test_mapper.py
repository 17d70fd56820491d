"""
Notification mapper tests.
Covers: message templates, fallback chain, link precedence, quote targets, toasts.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from airwaves.schemas.notification import (
    EnrichedContext,
    NotificationActor,
    RawNotificationEvent,
)
from airwaves.services.mapper import map_notification, toast_payload

BASE = "/members/forum"
ANN = NotificationActor(id="u-ann", name="Ann")


def _raw(kind: str = "like", **overrides: Any) -> RawNotificationEvent:
    data: dict[str, Any] = {
        "id": "n1",
        "recipient_id": "u-bob",
        "actor_id": "u-ann",
        "type": kind,
        "topic_id": "t1",
        "post_id": "p1",
        "created_at": datetime(2026, 10, 19, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return RawNotificationEvent.model_validate(data)


def _ctx(**overrides: Any) -> EnrichedContext:
    data: dict[str, Any] = {"actor": ANN, "topic_title": "Show Times", "target_post_id": "p1"}
    data.update(overrides)
    return EnrichedContext(**data)


class TestTemplates:
    def test_like_with_actor_and_topic(self) -> None:
        result = map_notification(_raw("like"), _ctx(), base_path=BASE)
        assert result.content == 'Ann liked your post in: "Show Times"'

    def test_reply_without_topic_title(self) -> None:
        result = map_notification(_raw("reply"), _ctx(topic_title=None), base_path=BASE)
        assert result.content == "Ann replied to a topic."

    def test_mentions(self) -> None:
        reply = map_notification(_raw("mention_reply"), _ctx(), base_path=BASE)
        post = map_notification(_raw("mention_post"), _ctx(), base_path=BASE)
        assert reply.content == 'Ann mentioned you in a reply on topic: "Show Times"'
        assert post.content == 'Ann mentioned you in a post on topic: "Show Times"'

    def test_quote_without_actor(self) -> None:
        result = map_notification(_raw("quote"), _ctx(actor=None), base_path=BASE)
        assert result.content == "Someone quoted your post."

    def test_known_kind_without_actor_uses_generic_text(self) -> None:
        result = map_notification(_raw("like"), _ctx(actor=None), base_path=BASE)
        assert result.content == "Notification type: like"

    def test_true_type_overrides_stored_kind(self) -> None:
        raw = _raw("system", details={"trueType": "reply"})
        result = map_notification(raw, _ctx(), base_path=BASE)
        assert result.kind == "reply"
        assert result.content == 'Ann replied to your topic: "Show Times"'

    def test_system_uses_preview_then_summary_then_default(self) -> None:
        with_preview = _raw("system", content_preview="Studio closed Friday")
        with_summary = _raw("system", details={"summary": "Maintenance tonight"})
        bare = _raw("system")
        assert map_notification(with_preview, _ctx(), base_path=BASE).content == "Studio closed Friday"
        assert map_notification(with_summary, _ctx(), base_path=BASE).content == "Maintenance tonight"
        assert map_notification(bare, _ctx(), base_path=BASE).content == "System notification"

    def test_unknown_kind(self) -> None:
        result = map_notification(_raw("poll_closed"), _ctx(), base_path=BASE)
        assert result.content == "Notification: poll_closed"


class TestLinks:
    def test_category_and_topic_slug_win(self) -> None:
        raw = _raw(details={"link_url": "/elsewhere"})
        ctx = _ctx(category_slug="station-talk", topic_slug="show-times")
        result = map_notification(raw, ctx, base_path=BASE)
        assert result.link == "/members/forum/station-talk/show-times/p1"

    def test_topic_slug_only_beats_explicit_link(self) -> None:
        raw = _raw(details={"link_url": "/elsewhere"})
        result = map_notification(raw, _ctx(topic_slug="show-times"), base_path=BASE)
        assert result.link == "/members/forum/topic/show-times/p1"

    def test_explicit_link_when_no_slugs(self) -> None:
        raw = _raw(details={"linkUrl": "/members/forum/legacy/42"})
        result = map_notification(raw, _ctx(), base_path=BASE)
        assert result.link == "/members/forum/legacy/42"

    def test_default_is_forum_home(self) -> None:
        result = map_notification(_raw(), _ctx(), base_path=BASE + "/")
        assert result.link == "/members/forum"

    def test_no_post_segment_without_target(self) -> None:
        ctx = _ctx(topic_slug="show-times", target_post_id=None)
        result = map_notification(_raw(post_id=None), ctx, base_path=BASE)
        assert result.link == "/members/forum/topic/show-times"

    def test_quote_links_to_quoted_post(self) -> None:
        ctx = _ctx(category_slug="station-talk", topic_slug="show-times", target_post_id="p-quoted")
        raw = _raw("quote", post_id="p-reply", details={"quoted_post_id": "p-quoted"})
        result = map_notification(raw, ctx, base_path=BASE)
        assert result.link.endswith("/show-times/p-quoted")
        assert result.post_id == "p-reply"


class TestToast:
    def test_description_is_truncated_content(self) -> None:
        result = map_notification(_raw("like"), _ctx(), base_path=BASE)
        toast = toast_payload(result)
        assert toast["title"] == "New Notification!"
        assert toast["description"] == result.content[:50] + "..."
