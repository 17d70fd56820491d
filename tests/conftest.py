"""
Test configuration and shared fixtures.
Each test gets its own in-memory SQLite database shared across sessions via StaticPool.
"""
from __future__ import annotations

import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Any

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from airwaves.core.dependencies import get_session_factory
from airwaves.core.security import create_access_token
from airwaves.db.base import Base
from airwaves.db.session import get_db
from airwaves.main import app
from airwaves.models.forum import ForumCategory, ForumPost, ForumTopic
from airwaves.models.notification import ForumNotification
from airwaves.models.profile import Profile
from airwaves.services.change_feed import change_feed
from airwaves.services.websocket_service import ws_manager
from airwaves.utils.dates import utcnow

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and assertions. Seed helpers commit explicitly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def reset_realtime():
    """Realtime singletons must not leak channels or sessions between tests."""
    yield
    await ws_manager.shutdown()
    change_feed.close_all()


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client; every request gets its own committing session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Seed helpers ──────────────────────────────────────────────────────────────

async def make_profile(
    db: AsyncSession,
    username: str,
    display_name: str | None = None,
    profile_picture: str | None = None,
) -> Profile:
    profile = Profile(
        id=uuid.uuid4(),
        username=username,
        display_name=display_name,
        profile_picture=profile_picture,
    )
    db.add(profile)
    await db.commit()
    return profile


async def make_topic(
    db: AsyncSession,
    author: Profile,
    title: str = "Show Times",
    slug: str = "show-times",
    category: ForumCategory | None = None,
    content: str = "When is the breakfast show on?",
) -> tuple[ForumTopic, ForumPost]:
    topic = ForumTopic(
        id=uuid.uuid4(),
        user_id=author.id,
        title=title,
        slug=slug,
        category_id=category.id if category is not None else None,
    )
    db.add(topic)
    await db.flush()
    post = ForumPost(id=uuid.uuid4(), topic_id=topic.id, user_id=author.id, content=content)
    db.add(post)
    await db.commit()
    return topic, post


async def make_notification(
    db: AsyncSession,
    recipient: Profile,
    *,
    actor: Profile | None = None,
    kind: str = "like",
    topic: ForumTopic | None = None,
    post: ForumPost | None = None,
    read: bool = False,
    created_at: datetime | None = None,
    details: dict[str, Any] | None = None,
    content_preview: str | None = None,
) -> ForumNotification:
    notification = ForumNotification(
        id=uuid.uuid4(),
        recipient_id=recipient.id,
        actor_id=actor.id if actor is not None else None,
        type=kind,
        topic_id=topic.id if topic is not None else None,
        post_id=post.id if post is not None else None,
        read=read,
        created_at=created_at or utcnow(),
        details=details,
        content_preview=content_preview,
    )
    db.add(notification)
    await db.commit()
    return notification


def auth_headers_for(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(profile.id))}"}


# ── Helper fixtures ───────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def station_category(db: AsyncSession) -> ForumCategory:
    category = ForumCategory(id=uuid.uuid4(), name="Station Talk", slug="station-talk")
    db.add(category)
    await db.commit()
    return category


@pytest_asyncio.fixture
async def bob(db: AsyncSession) -> Profile:
    return await make_profile(db, "bob", "Bob")


@pytest_asyncio.fixture
async def ann(db: AsyncSession) -> Profile:
    return await make_profile(db, "ann", "Ann", "https://cdn.example.com/ann.png")


@pytest_asyncio.fixture
async def bob_headers(bob: Profile) -> dict[str, str]:
    return auth_headers_for(bob)


@pytest_asyncio.fixture
async def ann_headers(ann: Profile) -> dict[str, str]:
    return auth_headers_for(ann)
