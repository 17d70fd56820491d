"""
Notification endpoint tests.
Covers: listing display notifications, unread counts, read-state updates, auth.
"""
from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient

from airwaves.utils.dates import utcnow
from conftest import make_notification, make_topic

pytestmark = pytest.mark.asyncio


class TestListNotifications:
    async def test_newest_first_with_display_fields(
        self, client: AsyncClient, db, bob, ann, bob_headers, station_category
    ) -> None:
        topic, post = await make_topic(db, bob, category=station_category)
        now = utcnow()
        older = await make_notification(
            db, bob, actor=ann, kind="reply", topic=topic, post=post,
            created_at=now - timedelta(hours=2),
        )
        newer = await make_notification(
            db, bob, actor=ann, kind="like", topic=topic, post=post,
            created_at=now - timedelta(minutes=5),
        )

        response = await client.get("/api/v1/notifications/", headers=bob_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["pages"] == 1
        assert data["has_more"] is False
        assert [item["id"] for item in data["items"]] == [str(newer.id), str(older.id)]

        like = data["items"][0]
        assert like["content"] == 'Ann liked your post in: "Show Times"'
        assert like["link"] == f"/members/forum/station-talk/show-times/{post.id}"
        assert like["actor"]["name"] == "Ann"
        assert like["actor"]["avatar"] == "https://cdn.example.com/ann.png"
        assert like["time_ago"] == "5m ago"
        assert data["items"][1]["time_ago"] == "2h ago"

    async def test_only_my_notifications(
        self, client: AsyncClient, db, bob, ann, ann_headers
    ) -> None:
        await make_notification(db, bob, actor=ann)
        response = await client.get("/api/v1/notifications/", headers=ann_headers)
        assert response.json()["total"] == 0

    async def test_unread_only_and_pagination(
        self, client: AsyncClient, db, bob, bob_headers
    ) -> None:
        for index in range(3):
            await make_notification(
                db, bob, kind="system", read=index == 0,
                content_preview=f"Notice {index}",
                created_at=utcnow() - timedelta(minutes=index),
            )

        unread = await client.get(
            "/api/v1/notifications/", params={"unread_only": True}, headers=bob_headers
        )
        assert unread.json()["total"] == 2

        page = await client.get(
            "/api/v1/notifications/", params={"page": 2, "size": 2}, headers=bob_headers
        )
        body = page.json()
        assert body["pages"] == 2
        assert body["has_more"] is False
        assert [item["content"] for item in body["items"]] == ["Notice 2"]

    async def test_unknown_kind_still_renders(
        self, client: AsyncClient, db, bob, bob_headers
    ) -> None:
        await make_notification(db, bob, kind="poll_closed")
        response = await client.get("/api/v1/notifications/", headers=bob_headers)
        assert response.json()["items"][0]["content"] == "Notification: poll_closed"

    async def test_requires_auth(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/notifications/")
        assert response.status_code == 401


class TestReadState:
    async def test_unread_count_and_mark_read(
        self, client: AsyncClient, db, bob, bob_headers
    ) -> None:
        first = await make_notification(db, bob)
        await make_notification(db, bob)

        count = await client.get("/api/v1/notifications/unread-count", headers=bob_headers)
        assert count.json() == {"unread": 2}

        marked = await client.put(
            f"/api/v1/notifications/{first.id}/read", headers=bob_headers
        )
        assert marked.status_code == 204

        again = await client.put(
            f"/api/v1/notifications/{first.id}/read", headers=bob_headers
        )
        assert again.status_code == 204

        count = await client.get("/api/v1/notifications/unread-count", headers=bob_headers)
        assert count.json() == {"unread": 1}

    async def test_cannot_mark_someone_elses(
        self, client: AsyncClient, db, bob, ann_headers
    ) -> None:
        notification = await make_notification(db, bob)
        response = await client.put(
            f"/api/v1/notifications/{notification.id}/read", headers=ann_headers
        )
        assert response.status_code == 404

    async def test_missing_notification(self, client: AsyncClient, bob_headers) -> None:
        response = await client.put(
            f"/api/v1/notifications/{uuid.uuid4()}/read", headers=bob_headers
        )
        assert response.status_code == 404

    async def test_read_all(self, client: AsyncClient, db, bob, bob_headers) -> None:
        await make_notification(db, bob)
        await make_notification(db, bob)

        response = await client.put("/api/v1/notifications/read-all", headers=bob_headers)
        assert response.status_code == 204

        count = await client.get("/api/v1/notifications/unread-count", headers=bob_headers)
        assert count.json() == {"unread": 0}


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
