"""
Forum Pydantic schemas for the write paths that raise notifications.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


# ── Create / update ───────────────────────────────────────────────────────────

class TopicCreate(BaseModel):
    category_id: uuid.UUID | None = None
    title: str = Field(min_length=3, max_length=300)
    content: str = Field(min_length=1)


class PostCreate(BaseModel):
    content: str = Field(min_length=1)


class PostUpdate(BaseModel):
    content: str = Field(min_length=1)


# ── Read ──────────────────────────────────────────────────────────────────────

class TopicRead(BaseModel):
    id: uuid.UUID
    category_id: uuid.UUID | None
    user_id: uuid.UUID
    title: str
    slug: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PostRead(BaseModel):
    id: uuid.UUID
    topic_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    is_edited: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TopicWithFirstPost(BaseModel):
    topic: TopicRead
    first_post: PostRead


class ReactionRead(BaseModel):
    id: uuid.UUID
    post_id: uuid.UUID
    user_id: uuid.UUID
    reaction_type: str
    created_at: datetime

    model_config = {"from_attributes": True}
