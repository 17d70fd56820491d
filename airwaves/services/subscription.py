"""
Notification subscription lifecycle.

A ``NotificationSession`` belongs to one authenticated recipient. ``start``
loads the first page into the session's store and only then opens the
realtime channel; a single consumer task drains the channel one event at a
time, enriching, mapping and merging each notification before handing it
to the delivery sink.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from airwaves.core.config import settings
from airwaves.core.exceptions import BulkLoadError, SubscriptionChannelError
from airwaves.crud.notification import crud_notification
from airwaves.models.notification import ForumNotification
from airwaves.schemas.notification import DisplayNotification, RawNotificationEvent
from airwaves.services.change_feed import ChangeFeed, ChannelStatus, FeedChannel, change_feed
from airwaves.services.enricher import ContextEnricher
from airwaves.services.mapper import map_notification
from airwaves.services.store import NotificationStore

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = ForumNotification.__tablename__


class DeliverySink(Protocol):
    async def deliver(self, recipient_id: str, notification: DisplayNotification) -> None: ...

    async def notify_status(
        self, recipient_id: str, status: str, detail: str | None = None
    ) -> None: ...


async def fetch_display_page(
    db: AsyncSession,
    enricher: ContextEnricher,
    *,
    recipient_id: str,
    skip: int = 0,
    limit: int | None = None,
    unread_only: bool = False,
) -> tuple[list[DisplayNotification], int]:
    """
    Read one newest-first page with context joined and map it for display.
    Raises BulkLoadError when the query itself fails.
    """
    try:
        rows, total = await crud_notification.list_for_recipient(
            db,
            recipient_id=recipient_id,
            skip=skip,
            limit=limit or settings.NOTIFICATION_PAGE_SIZE,
            unread_only=unread_only,
        )
        events = [RawNotificationEvent.from_row(row, joined=True) for row in rows]
    except Exception as exc:
        raise BulkLoadError(recipient_id, str(exc)) from exc

    page = []
    for raw in events:
        ctx = await enricher.enrich(raw)
        page.append(map_notification(raw, ctx))
    return page, total


@dataclass(eq=False)
class SubscriptionHandle:
    recipient_id: str
    channel: FeedChannel
    active: bool = True
    task: asyncio.Task[None] | None = None
    fallback_logged: bool = False
    last_error: SubscriptionChannelError | None = field(default=None, repr=False)
    status_tasks: set[asyncio.Task[None]] = field(default_factory=set, repr=False)


class NotificationSession:
    """Store plus realtime subscription for one recipient."""

    def __init__(
        self,
        recipient_id: str,
        *,
        sink: DeliverySink | None = None,
        feed: ChangeFeed | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        enricher: ContextEnricher | None = None,
        page_size: int | None = None,
    ) -> None:
        if session_factory is None:
            from airwaves.db.session import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self.recipient_id = str(recipient_id)
        self.store = NotificationStore(self.recipient_id)
        self._sink = sink
        self._feed = feed or change_feed
        self._session_factory = session_factory
        self._enricher = enricher or ContextEnricher(session_factory)
        self._page_size = page_size or settings.NOTIFICATION_PAGE_SIZE
        self._handle: SubscriptionHandle | None = None
        self._lock = asyncio.Lock()
        self.initial_load_complete = False

    @property
    def handle(self) -> SubscriptionHandle | None:
        return self._handle

    @property
    def is_active(self) -> bool:
        return self._handle is not None and self._handle.active

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> SubscriptionHandle | None:
        """
        Load the first page, then open the realtime channel. Idempotent while active.
        Returns None when the session was closed while the first page was loading.
        """
        async with self._lock:
            if self._handle is not None and self._handle.active:
                return self._handle

            if await self.load_initial() is None:
                return None

            channel = self._feed.subscribe(NOTIFICATIONS_TABLE, self.recipient_id)
            handle = SubscriptionHandle(recipient_id=self.recipient_id, channel=channel)
            channel.on_status(lambda ch, status, reason: self._on_channel_status(handle, status, reason))
            handle.task = asyncio.create_task(
                self._consume(handle), name=f"notifications:{self.recipient_id}"
            )
            self._handle = handle
            logger.info("Notification subscription started for %s", self.recipient_id)
            return handle

    async def load_initial(self) -> list[DisplayNotification] | None:
        generation = self.store.generation
        async with self._session_factory() as db:
            page, _ = await fetch_display_page(
                db,
                self._enricher,
                recipient_id=self.recipient_id,
                limit=self._page_size,
            )
        if generation != self.store.generation:
            logger.debug("Discarding first page for %s loaded after teardown", self.recipient_id)
            return None
        self.store.load_initial(page)
        self.initial_load_complete = True
        return page

    async def stop(self, handle: SubscriptionHandle | None = None) -> None:
        """Release the channel and cancel the consumer. Safe to call twice."""
        handle = handle or self._handle
        if handle is None or not handle.active:
            return
        handle.active = False
        self._feed.unsubscribe(handle.channel)
        for pending in list(handle.status_tasks):
            pending.cancel()
        task = handle.task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._handle is handle:
            self._handle = None
        logger.info("Notification subscription stopped for %s", self.recipient_id)

    async def resubscribe(self) -> SubscriptionHandle:
        """Drop the current channel and reopen it, reloading the first page."""
        await self.stop()
        return await self.start()

    async def close(self) -> None:
        """Tear down and clear all state held for this recipient."""
        await self.stop()
        self.store.reset()
        self.initial_load_complete = False

    # ── Realtime path ─────────────────────────────────────────────────────────

    async def _consume(self, handle: SubscriptionHandle) -> None:
        while handle.active:
            feed_event = await handle.channel.get()
            try:
                await self.handle_event(handle, feed_event.record)
            except Exception:
                logger.exception(
                    "Failed to process realtime notification for %s", self.recipient_id
                )

    async def handle_event(
        self, handle: SubscriptionHandle, record: dict[str, Any]
    ) -> DisplayNotification | None:
        """
        Enrich, map and merge one change-feed record.
        Returns the notification when it was inserted and delivered.
        """
        try:
            partial = RawNotificationEvent.model_validate(record)
        except ValidationError as exc:
            logger.warning("Ignoring malformed notification event: %s", exc)
            return None
        if partial.recipient_id != self.recipient_id:
            return None

        generation = self.store.generation
        notification = await self._enrich_realtime(handle, partial)

        if not handle.active or generation != self.store.generation:
            logger.debug("Discarding notification %s resolved after teardown", partial.id)
            return None
        if not self.store.insert_realtime(notification):
            return None
        if self._sink is not None:
            await self._sink.deliver(self.recipient_id, notification)
        return notification

    async def _enrich_realtime(
        self, handle: SubscriptionHandle, partial: RawNotificationEvent
    ) -> DisplayNotification:
        source = await self._combined_lookup(partial)
        if source is None:
            if not handle.fallback_logged:
                logger.warning(
                    "Combined lookup failed for notification %s; using event payload",
                    partial.id,
                )
                handle.fallback_logged = True
            source = partial
        ctx = await self._enricher.enrich(source)
        return map_notification(source, ctx)

    async def _combined_lookup(self, partial: RawNotificationEvent) -> RawNotificationEvent | None:
        try:
            async with self._session_factory() as db:
                row = await crud_notification.get_with_context(
                    db, notification_id=partial.id, recipient_id=self.recipient_id
                )
                if row is None:
                    return None
                return RawNotificationEvent.from_row(row, joined=True)
        except Exception as exc:
            logger.debug("Combined lookup for %s raised: %s", partial.id, exc)
            return None

    def _on_channel_status(
        self, handle: SubscriptionHandle, status: ChannelStatus, reason: str | None
    ) -> None:
        if status is ChannelStatus.SUBSCRIBED:
            logger.debug("Subscribed to notifications channel for %s", self.recipient_id)
            return
        if status in (ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT):
            handle.last_error = SubscriptionChannelError(status.value, reason)
            logger.warning("%s (recipient %s)", handle.last_error, self.recipient_id)
        if self._sink is None or not handle.active:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._sink.notify_status(self.recipient_id, status.value, reason))
        handle.status_tasks.add(task)
        task.add_done_callback(handle.status_tasks.discard)

    # ── Read state ────────────────────────────────────────────────────────────

    async def mark_read(self, notification_id: str) -> bool:
        """Persist the read flag, then mirror it in the store. False leaves state unchanged."""
        try:
            async with self._session_factory() as db:
                row = await crud_notification.mark_as_read(
                    db, notification_id=notification_id, recipient_id=self.recipient_id
                )
                await db.commit()
        except Exception as exc:
            logger.warning("Could not mark notification %s as read: %s", notification_id, exc)
            return False
        if row is None:
            return False
        self.store.mark_read(notification_id)
        return True

    async def mark_all_read(self) -> int:
        try:
            async with self._session_factory() as db:
                updated = await crud_notification.mark_all_read(
                    db, recipient_id=self.recipient_id
                )
                await db.commit()
        except Exception as exc:
            logger.warning("Could not mark notifications as read for %s: %s", self.recipient_id, exc)
            return 0
        self.store.mark_all_read()
        return updated
