"""
Pure mapping from an enriched notification to its display form.
Message templates are table-driven by kind; links are resolved by an
ordered list of link builders.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

from airwaves.core.config import settings
from airwaves.schemas.notification import (
    DisplayNotification,
    EnrichedContext,
    RawNotificationEvent,
)

TOAST_TITLE = "New Notification!"


class Templates(NamedTuple):
    full: str
    actor_only: str
    anonymous: str | None = None


GENERIC_TEMPLATE = "Notification type: {kind}"

FORUM_TEMPLATES: dict[str, Templates] = {
    "reply": Templates(
        '{actor} replied to your topic: "{topic}"',
        "{actor} replied to a topic.",
    ),
    "like": Templates(
        '{actor} liked your post in: "{topic}"',
        "{actor} liked a post.",
    ),
    "mention_reply": Templates(
        '{actor} mentioned you in a reply on topic: "{topic}"',
        "{actor} mentioned you in a reply.",
    ),
    "mention_post": Templates(
        '{actor} mentioned you in a post on topic: "{topic}"',
        "{actor} mentioned you in a post.",
    ),
    "quote": Templates(
        '{actor} quoted your post in: "{topic}"',
        "{actor} quoted your post.",
        "Someone quoted your post.",
    ),
}


def _summary(raw: RawNotificationEvent) -> str | None:
    if raw.content_preview:
        return raw.content_preview
    summary = raw.detail("summary")
    return summary if isinstance(summary, str) else None


def render_content(kind: str, raw: RawNotificationEvent, ctx: EnrichedContext) -> str:
    templates = FORUM_TEMPLATES.get(kind)
    if templates is None:
        if kind == "system":
            return _summary(raw) or "System notification"
        return _summary(raw) or f"Notification: {kind}"

    actor = ctx.actor.name if ctx.actor is not None else None
    if actor and ctx.topic_title:
        return templates.full.format(actor=actor, topic=ctx.topic_title)
    if actor:
        return templates.actor_only.format(actor=actor)
    return templates.anonymous or GENERIC_TEMPLATE.format(kind=kind)


# ── Links ─────────────────────────────────────────────────────────────────────

LinkBuilder = Callable[[RawNotificationEvent, EnrichedContext, str], "str | None"]


def _with_post(path: str, ctx: EnrichedContext) -> str:
    if ctx.target_post_id:
        return f"{path}/{ctx.target_post_id}"
    return path


def _category_topic_link(raw: RawNotificationEvent, ctx: EnrichedContext, base: str) -> str | None:
    if ctx.category_slug and ctx.topic_slug:
        return _with_post(f"{base}/{ctx.category_slug}/{ctx.topic_slug}", ctx)
    return None


def _topic_link(raw: RawNotificationEvent, ctx: EnrichedContext, base: str) -> str | None:
    if ctx.topic_slug:
        return _with_post(f"{base}/topic/{ctx.topic_slug}", ctx)
    return None


def _explicit_link(raw: RawNotificationEvent, ctx: EnrichedContext, base: str) -> str | None:
    link_url = raw.detail("link_url")
    return link_url if isinstance(link_url, str) else None


# Canonical category links beat everything; several older rows only carry
# ``link_url``, which must not override a fully resolved slug pair.
LINK_BUILDERS: tuple[LinkBuilder, ...] = (
    _category_topic_link,
    _topic_link,
    _explicit_link,
)


def build_link(raw: RawNotificationEvent, ctx: EnrichedContext, base: str | None = None) -> str:
    base_path = (base or settings.FORUM_BASE_PATH).rstrip("/")
    for builder in LINK_BUILDERS:
        link = builder(raw, ctx, base_path)
        if link:
            return link
    return base_path or "/"


# ── Mapping ───────────────────────────────────────────────────────────────────

def map_notification(
    raw: RawNotificationEvent,
    ctx: EnrichedContext,
    *,
    base_path: str | None = None,
) -> DisplayNotification:
    kind = raw.effective_kind
    return DisplayNotification(
        id=raw.id,
        kind=kind,
        read=raw.read,
        actor=ctx.actor,
        content=render_content(kind, raw, ctx),
        link=build_link(raw, ctx, base_path),
        created_at=raw.created_at,
        topic_id=raw.topic_id,
        post_id=raw.post_id,
        content_preview=raw.content_preview,
        topic_title=ctx.topic_title,
        topic_slug=ctx.topic_slug,
        category_slug=ctx.category_slug,
        details=raw.details,
    )


def toast_description(notification: DisplayNotification, length: int | None = None) -> str:
    limit = length or settings.TOAST_PREVIEW_LENGTH
    return notification.content[:limit] + "..."


def toast_payload(notification: DisplayNotification) -> dict[str, str]:
    return {"title": TOAST_TITLE, "description": toast_description(notification)}
