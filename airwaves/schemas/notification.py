"""
Notification Pydantic schemas.
Raw rows as read from the datastore or the change feed, the enrichment
context derived from them, and the display-ready form sent to clients.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from airwaves.utils.dates import ensure_aware, format_time_ago

if TYPE_CHECKING:
    from airwaves.models.notification import ForumNotification


def _coerce_id(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


IdStr = Annotated[str, BeforeValidator(_coerce_id)]

# Recognised keys of the free-form ``details`` payload and the camelCase
# spelling written by older clients.
DETAIL_ALIASES: dict[str, str] = {
    "true_type": "trueType",
    "quoted_post_id": "quotedPostId",
    "topic_title": "topicTitle",
    "topic_slug": "topicSlug",
    "category_slug": "categorySlug",
    "link_url": "linkUrl",
    "summary": "summary",
}


# ── Raw ───────────────────────────────────────────────────────────────────────

class ActorProfile(BaseModel):
    """Actor profile fields as embedded by a join."""

    id: IdStr | None = None
    display_name: str | None = None
    username: str | None = None
    profile_picture: str | None = None

    model_config = {"from_attributes": True}


class TopicContext(BaseModel):
    """Topic fields as embedded by a topic → category join."""

    title: str | None = None
    slug: str | None = None
    category_id: IdStr | None = None
    category_slug: str | None = None


class RawNotificationEvent(BaseModel):
    id: IdStr
    recipient_id: IdStr = Field(min_length=1)
    actor_id: IdStr | None = None
    kind: str = Field(validation_alias=AliasChoices("kind", "type"))
    topic_id: IdStr | None = None
    post_id: IdStr | None = None
    content_preview: str | None = None
    read: bool = False
    details: dict[str, Any] | None = None
    created_at: datetime
    actor: ActorProfile | None = None
    topic: TopicContext | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @field_validator("details", mode="before")
    @classmethod
    def _details_mapping(cls, v: Any) -> Any:
        # Anything that is not an object is dropped rather than rejected.
        if v is None or isinstance(v, dict):
            return v
        return None

    def detail(self, key: str) -> Any:
        """Return a ``details`` value by snake_case key, accepting camelCase; blanks are ``None``."""
        if not self.details:
            return None
        value = self.details.get(key)
        if value in (None, ""):
            value = self.details.get(DETAIL_ALIASES.get(key, key))
        if value in (None, ""):
            return None
        return value

    @property
    def effective_kind(self) -> str:
        true_type = self.detail("true_type")
        if isinstance(true_type, str) and true_type:
            return true_type
        return self.kind

    @classmethod
    def from_row(
        cls, row: "ForumNotification", *, joined: bool = False
    ) -> "RawNotificationEvent":
        """
        Build an event from an ORM row.
        With ``joined=True`` the row's ``actor`` and ``topic.category``
        relationships must have been eagerly loaded.
        """
        actor = None
        topic = None
        if joined:
            if row.actor is not None:
                actor = ActorProfile.model_validate(row.actor)
            if row.topic is not None:
                category = row.topic.category
                topic = TopicContext(
                    title=row.topic.title,
                    slug=row.topic.slug,
                    category_id=row.topic.category_id,
                    category_slug=category.slug if category is not None else None,
                )
        return cls(
            id=row.id,
            recipient_id=row.recipient_id,
            actor_id=row.actor_id,
            kind=row.type,
            topic_id=row.topic_id,
            post_id=row.post_id,
            content_preview=row.content_preview,
            read=row.read,
            details=row.details,
            created_at=row.created_at,
            actor=actor,
            topic=topic,
        )


# ── Enriched / display ────────────────────────────────────────────────────────

class NotificationActor(BaseModel):
    id: str
    name: str
    avatar: str | None = None


class EnrichedContext(BaseModel):
    actor: NotificationActor | None = None
    topic_title: str | None = None
    topic_slug: str | None = None
    category_slug: str | None = None
    target_post_id: str | None = None


class DisplayNotification(BaseModel):
    id: str
    kind: str
    read: bool
    actor: NotificationActor | None = None
    content: str
    link: str
    created_at: datetime
    topic_id: str | None = None
    post_id: str | None = None
    content_preview: str | None = None
    topic_title: str | None = None
    topic_slug: str | None = None
    category_slug: str | None = None
    details: dict[str, Any] | None = None

    @computed_field  # type: ignore[misc]
    @property
    def time_ago(self) -> str:
        return format_time_ago(self.created_at)


class UnreadCount(BaseModel):
    unread: int
