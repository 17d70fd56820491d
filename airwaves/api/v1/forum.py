"""
Forum write routes.
Topic creation, replies, edits and likes; each may raise notifications.
"""
import uuid

from fastapi import APIRouter, Request, status

from airwaves.core.config import settings
from airwaves.core.dependencies import CurrentUser, DBSession
from airwaves.core.rate_limit import limiter
from airwaves.schemas.forum import (
    PostCreate,
    PostRead,
    PostUpdate,
    ReactionRead,
    TopicCreate,
    TopicRead,
    TopicWithFirstPost,
)
from airwaves.services.forum_service import forum_service

router = APIRouter(prefix="/forum", tags=["Forum"])


@router.post(
    "/topics",
    response_model=TopicWithFirstPost,
    status_code=status.HTTP_201_CREATED,
    summary="Start a topic",
)
@limiter.limit(settings.RATE_LIMIT_FORUM_WRITE)
async def create_topic(
    request: Request,
    topic_in: TopicCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TopicWithFirstPost:
    topic, first_post = await forum_service.create_topic(
        db, topic_in=topic_in, current_user=current_user
    )
    return TopicWithFirstPost(
        topic=TopicRead.model_validate(topic),
        first_post=PostRead.model_validate(first_post),
    )


@router.post(
    "/topics/{topic_id}/posts",
    response_model=PostRead,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a topic",
)
@limiter.limit(settings.RATE_LIMIT_FORUM_WRITE)
async def create_post(
    request: Request,
    topic_id: uuid.UUID,
    post_in: PostCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> PostRead:
    post = await forum_service.create_post(
        db, topic_id=topic_id, post_in=post_in, current_user=current_user
    )
    return PostRead.model_validate(post)


@router.put(
    "/posts/{post_id}",
    response_model=PostRead,
    summary="Edit my post",
)
async def update_post(
    post_id: uuid.UUID,
    post_in: PostUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> PostRead:
    post = await forum_service.update_post(
        db, post_id=post_id, post_in=post_in, current_user=current_user
    )
    return PostRead.model_validate(post)


@router.post(
    "/posts/{post_id}/reactions",
    response_model=ReactionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Like a post",
)
async def add_reaction(
    post_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ReactionRead:
    reaction = await forum_service.add_reaction(
        db, post_id=post_id, current_user=current_user
    )
    return ReactionRead.model_validate(reaction)


@router.delete(
    "/posts/{post_id}/reactions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove my like",
)
async def remove_reaction(
    post_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await forum_service.remove_reaction(db, post_id=post_id, current_user=current_user)
