"""
Notification routes.
Paged, display-ready notifications for the current user and read-state updates.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from airwaves.core.dependencies import CurrentUser, DBSession, SessionFactory
from airwaves.core.exceptions import NotFoundException
from airwaves.crud.notification import crud_notification
from airwaves.schemas.notification import DisplayNotification, UnreadCount
from airwaves.schemas.pagination import PaginatedResponse
from airwaves.services.enricher import ContextEnricher
from airwaves.services.subscription import fetch_display_page
from airwaves.services.websocket_service import ws_manager

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=PaginatedResponse[DisplayNotification],
    summary="List my notifications",
)
async def list_notifications(
    current_user: CurrentUser,
    db: DBSession,
    session_factory: SessionFactory,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
) -> PaginatedResponse[DisplayNotification]:
    items, total = await fetch_display_page(
        db,
        ContextEnricher(session_factory),
        recipient_id=str(current_user.id),
        skip=(page - 1) * size,
        limit=size,
        unread_only=unread_only,
    )
    return PaginatedResponse(items=items, total=total, page=page, size=size)


@router.get(
    "/unread-count",
    response_model=UnreadCount,
    summary="Count my unread notifications",
)
async def unread_count(current_user: CurrentUser, db: DBSession) -> UnreadCount:
    count = await crud_notification.count_unread(db, recipient_id=current_user.id)
    return UnreadCount(unread=count)


@router.put(
    "/read-all",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await crud_notification.mark_all_read(db, recipient_id=current_user.id)
    await db.commit()
    ws_manager.sync_read(str(current_user.id))


@router.put(
    "/{notification_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark a notification as read",
)
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    notification = await crud_notification.mark_as_read(
        db, notification_id=notification_id, recipient_id=current_user.id
    )
    if notification is None:
        raise NotFoundException("Notification", str(notification_id))
    await db.commit()
    ws_manager.sync_read(str(current_user.id), str(notification_id))
