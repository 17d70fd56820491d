"""
WebSocket endpoint for realtime forum notifications.
Clients connect with a valid JWT access token as a query parameter.
Heartbeat ping/pong keeps connections alive.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from airwaves.core.config import settings
from airwaves.core.dependencies import SessionFactory, resolve_token_user
from airwaves.core.exceptions import AirwavesException, BulkLoadError
from airwaves.services.subscription import NotificationSession
from airwaves.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, session_factory: SessionFactory) -> None:
    """
    Realtime notifications for the token's user.

    Query parameters:
        token: A valid JWT access token.

    The server sends:
        - {"type": "connected", "user_id": "..."} once the session is running.
        - {"type": "snapshot", "data": [...], "unread": n} with the first page.
        - {"type": "notification", "data": {...}, "toast": {...}} per new notification.
        - {"type": "channel_status", "status": "...", "detail": "..."} on channel trouble.
        - {"type": "ping"} every HEARTBEAT_INTERVAL seconds.

    The client may send mark_read, mark_all_read, resubscribe and pong messages.
    """
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=4001, reason="Missing authentication token")
        return

    try:
        async with session_factory() as db:
            profile = await resolve_token_user(db, token)
    except AirwavesException as exc:
        await websocket.close(code=4001, reason=exc.detail)
        return

    user_id = str(profile.id)
    try:
        session = await ws_manager.connect(
            websocket, user_id, session_factory=session_factory
        )
    except BulkLoadError as exc:
        await websocket.send_json(
            {"type": "error", "error": "NOTIFICATIONS_UNAVAILABLE", "detail": str(exc)}
        )
        await websocket.close(code=1011)
        return

    heartbeat_task: asyncio.Task[None] | None = None
    try:
        await websocket.send_json({"type": "connected", "user_id": user_id})
        await _send_snapshot(websocket, session)

        heartbeat_task = asyncio.create_task(_heartbeat(websocket, user_id))
        while True:
            data = await websocket.receive_json()
            await _handle_client_message(websocket, session, data)

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected: user_id=%s", user_id)
    except Exception as exc:
        logger.error("WebSocket error for user_id=%s: %s", user_id, exc)
    finally:
        if heartbeat_task is not None:
            heartbeat_task.cancel()
            try:
                await heartbeat_task
            except asyncio.CancelledError:
                pass
        await ws_manager.disconnect(websocket, user_id)


async def _send_snapshot(websocket: WebSocket, session: NotificationSession) -> None:
    await websocket.send_json(
        {
            "type": "snapshot",
            "data": [item.model_dump(mode="json") for item in session.store.items],
            "unread": session.store.unread_count,
        }
    )


async def _handle_client_message(
    websocket: WebSocket, session: NotificationSession, data: Any
) -> None:
    if not isinstance(data, dict):
        return
    message_type = data.get("type")

    if message_type == "pong":
        logger.debug("Received pong from user_id=%s", session.recipient_id)
    elif message_type == "mark_read":
        notification_id = str(data.get("id") or "")
        ok = bool(notification_id) and await session.mark_read(notification_id)
        await websocket.send_json({"type": "read", "id": notification_id, "ok": ok})
    elif message_type == "mark_all_read":
        count = await session.mark_all_read()
        await websocket.send_json({"type": "all_read", "count": count})
    elif message_type == "resubscribe":
        try:
            await session.resubscribe()
        except BulkLoadError as exc:
            await websocket.send_json(
                {"type": "error", "error": "NOTIFICATIONS_UNAVAILABLE", "detail": str(exc)}
            )
            return
        await _send_snapshot(websocket, session)
    else:
        logger.debug("Ignoring unknown message type %r from %s", message_type, session.recipient_id)


async def _heartbeat(websocket: WebSocket, user_id: str) -> None:
    """Send periodic ping frames to keep the connection alive."""
    while True:
        await asyncio.sleep(settings.HEARTBEAT_INTERVAL)
        try:
            await websocket.send_json({"type": "ping"})
        except Exception:
            logger.debug("Heartbeat stopped for user_id=%s", user_id)
            break
