"""
WebSocket connection manager.
Tracks each recipient's open sockets, owns one NotificationSession per
connected recipient and acts as the delivery sink for realtime notifications.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from airwaves.schemas.notification import DisplayNotification
from airwaves.services.mapper import toast_payload
from airwaves.services.subscription import NotificationSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[..., NotificationSession]


class ConnectionManager:
    """
    Manages active WebSocket connections keyed by recipient id (string).
    The first connection for a recipient starts their notification session,
    the last disconnect tears it down.
    """

    def __init__(self, session_factory: SessionFactory = NotificationSession) -> None:
        # recipient_id → list of active WebSocket connections (a user may have multiple tabs)
        self._connections: dict[str, list[WebSocket]] = {}
        self._sessions: dict[str, NotificationSession] = {}
        self._session_factory = session_factory

    async def connect(
        self, websocket: WebSocket, user_id: str, **session_kwargs: Any
    ) -> NotificationSession:
        """
        Accept ``websocket`` and return the recipient's running session.
        Raises BulkLoadError if a new session cannot load its first page.
        """
        await websocket.accept()
        self._connections.setdefault(user_id, []).append(websocket)
        logger.info("WebSocket connected: user_id=%s", user_id)

        session = self._sessions.get(user_id)
        if session is None:
            session = self._session_factory(user_id, sink=self, **session_kwargs)
            self._sessions[user_id] = session
        try:
            await session.start()
        except Exception:
            await self.disconnect(websocket, user_id)
            raise
        return session

    async def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        if user_id in self._connections:
            try:
                self._connections[user_id].remove(websocket)
            except ValueError:
                pass
            if not self._connections[user_id]:
                del self._connections[user_id]
        if not self.is_connected(user_id):
            session = self._sessions.pop(user_id, None)
            if session is not None:
                await session.close()
        logger.info("WebSocket disconnected: user_id=%s", user_id)

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._connections and bool(self._connections[user_id])

    def get_session(self, user_id: str) -> NotificationSession | None:
        return self._sessions.get(user_id)

    async def send_personal_message(
        self, user_id: str, data: dict[str, Any]
    ) -> None:
        """Send a JSON message to all connections for a specific user."""
        connections = self._connections.get(user_id, [])
        if not connections:
            return
        message = json.dumps(jsonable_encoder(data))
        dead: list[WebSocket] = []
        for ws in list(connections):
            try:
                await ws.send_text(message)
            except Exception:
                dead.append(ws)
        for ws in dead:
            await self.disconnect(ws, user_id)

    # ── Delivery sink ─────────────────────────────────────────────────────────

    async def deliver(self, recipient_id: str, notification: DisplayNotification) -> None:
        """Push a realtime notification with its toast summary. Duplicates are harmless."""
        await self.send_personal_message(
            recipient_id,
            {
                "type": "notification",
                "data": notification.model_dump(mode="json"),
                "toast": toast_payload(notification),
            },
        )

    async def notify_status(
        self, recipient_id: str, status: str, detail: str | None = None
    ) -> None:
        await self.send_personal_message(
            recipient_id,
            {"type": "channel_status", "status": status, "detail": detail},
        )

    def sync_read(self, user_id: str, notification_id: str | None = None) -> None:
        """Mirror a read change made outside the socket into the live store."""
        session = self._sessions.get(user_id)
        if session is None:
            return
        if notification_id is None:
            session.store.mark_all_read()
        else:
            session.store.mark_read(notification_id)

    async def shutdown(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        await asyncio.gather(*(session.close() for session in sessions), return_exceptions=True)

    @property
    def connected_user_count(self) -> int:
        return len(self._connections)


# Singleton instance shared across the application
ws_manager = ConnectionManager()
