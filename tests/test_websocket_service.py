"""
Connection manager tests.
A fake WebSocket records frames so delivery and session ownership can be checked
without a running server.
"""
from __future__ import annotations

import json
from typing import Any

import pytest
from httpx import AsyncClient

from airwaves.core.exceptions import BulkLoadError
from airwaves.crud.notification import crud_notification
from airwaves.services.change_feed import ChangeFeed, ChannelStatus
from airwaves.services.subscription import NOTIFICATIONS_TABLE
from airwaves.services.websocket_service import ConnectionManager, ws_manager
from conftest import make_notification


class FakeWebSocket:
    def __init__(self, fail_sends: bool = False) -> None:
        self.accepted = False
        self.fail_sends = fail_sends
        self.frames: list[dict[str, Any]] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, message: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket closed")
        self.frames.append(json.loads(message))


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed(queue_size=16)


class TestConnectionManager:
    async def test_first_connect_starts_session_and_last_disconnect_closes_it(
        self, session_factory, feed, bob
    ) -> None:
        manager = ConnectionManager()
        user_id = str(bob.id)
        tab1, tab2 = FakeWebSocket(), FakeWebSocket()

        session = await manager.connect(tab1, user_id, feed=feed, session_factory=session_factory)
        same = await manager.connect(tab2, user_id, feed=feed, session_factory=session_factory)

        assert tab1.accepted and tab2.accepted
        assert session is same
        assert feed.subscriber_count(NOTIFICATIONS_TABLE, user_id) == 1

        await manager.disconnect(tab1, user_id)
        assert session.is_active

        await manager.disconnect(tab2, user_id)
        assert not session.is_active
        assert manager.get_session(user_id) is None
        assert feed.subscriber_count(NOTIFICATIONS_TABLE, user_id) == 0

    async def test_deliver_sends_notification_with_toast(
        self, db, session_factory, feed, bob
    ) -> None:
        await make_notification(db, bob, kind="system", content_preview="Studio closed Friday")
        manager = ConnectionManager()
        socket = FakeWebSocket()
        session = await manager.connect(
            socket, str(bob.id), feed=feed, session_factory=session_factory
        )

        await manager.deliver(str(bob.id), session.store.items[0])

        frame = socket.frames[-1]
        assert frame["type"] == "notification"
        assert frame["data"]["content"] == "Studio closed Friday"
        assert frame["toast"] == {
            "title": "New Notification!",
            "description": "Studio closed Friday...",
        }
        await manager.shutdown()

    async def test_channel_status_frame(self, session_factory, feed, bob) -> None:
        manager = ConnectionManager()
        socket = FakeWebSocket()
        await manager.connect(socket, str(bob.id), feed=feed, session_factory=session_factory)

        await manager.notify_status(str(bob.id), ChannelStatus.CHANNEL_ERROR.value, "timed out")

        assert socket.frames[-1] == {
            "type": "channel_status",
            "status": "CHANNEL_ERROR",
            "detail": "timed out",
        }
        await manager.shutdown()

    async def test_failed_send_drops_connection(self, session_factory, feed, bob) -> None:
        manager = ConnectionManager()
        socket = FakeWebSocket(fail_sends=True)
        await manager.connect(socket, str(bob.id), feed=feed, session_factory=session_factory)

        await manager.send_personal_message(str(bob.id), {"type": "ping"})

        assert not manager.is_connected(str(bob.id))
        assert manager.get_session(str(bob.id)) is None

    async def test_bulk_load_failure_disconnects(
        self, session_factory, feed, bob, monkeypatch
    ) -> None:
        async def broken(*args: Any, **kwargs: Any) -> None:
            raise RuntimeError("connection refused")

        monkeypatch.setattr(crud_notification, "list_for_recipient", broken)
        manager = ConnectionManager()

        with pytest.raises(BulkLoadError):
            await manager.connect(
                FakeWebSocket(), str(bob.id), feed=feed, session_factory=session_factory
            )
        assert manager.connected_user_count == 0
        assert manager.get_session(str(bob.id)) is None


class TestReadSync:
    async def test_http_mark_read_updates_live_store(
        self, client: AsyncClient, db, session_factory, feed, bob, bob_headers
    ) -> None:
        notification = await make_notification(db, bob)
        socket = FakeWebSocket()
        session = await ws_manager.connect(
            socket, str(bob.id), feed=feed, session_factory=session_factory
        )
        assert session.store.unread_count == 1

        response = await client.put(
            f"/api/v1/notifications/{notification.id}/read", headers=bob_headers
        )
        assert response.status_code == 204
        assert session.store.get(str(notification.id)).read is True

        await ws_manager.disconnect(socket, str(bob.id))
