"""
In-process change feed.
Committed inserts are pushed to channels subscribed to a table and filtered
to one recipient, mirroring a database change-data-capture stream.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import time
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from airwaves.core.config import settings
from airwaves.db.base import Base

logger = logging.getLogger(__name__)

_PENDING_KEY = "airwaves.pending_changes"


class ChannelStatus(str, enum.Enum):
    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


StatusListener = Callable[["FeedChannel", ChannelStatus, "str | None"], None]


@dataclass(frozen=True)
class FeedEvent:
    table: str
    record: dict[str, Any]
    type: str = "INSERT"


@dataclass(eq=False)
class FeedChannel:
    """
    One subscriber's bounded queue of events for a single recipient.

    The channel reports TIMED_OUT when an event has waited longer than
    ``stall_timeout`` seconds without the consumer taking anything, and
    returns to SUBSCRIBED once the consumer catches up.
    """

    table: str
    recipient_id: str
    maxsize: int
    stall_timeout: float = 30.0
    queue: asyncio.Queue[FeedEvent] = field(init=False)
    status: ChannelStatus | None = field(default=None, init=False)
    _listeners: list[StatusListener] = field(default_factory=list, init=False)
    _waiting_since: float | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.queue = asyncio.Queue(maxsize=self.maxsize)

    def on_status(self, listener: StatusListener) -> None:
        self._listeners.append(listener)
        if self.status is not None:
            listener(self, self.status, None)

    def set_status(self, status: ChannelStatus, reason: str | None = None) -> None:
        self.status = status
        for listener in list(self._listeners):
            try:
                listener(self, status, reason)
            except Exception:  # listeners must not break publication
                logger.exception("Status listener failed for channel %s", self.recipient_id)

    def offer(self, feed_event: FeedEvent) -> bool:
        if self.status is ChannelStatus.CLOSED:
            return False
        try:
            self.queue.put_nowait(feed_event)
        except asyncio.QueueFull:
            logger.warning(
                "Dropping %s event for recipient %s: channel queue full",
                feed_event.table,
                self.recipient_id,
            )
            self.set_status(ChannelStatus.CHANNEL_ERROR, "queue overflow")
            return False
        self._check_stalled()
        return True

    async def get(self) -> FeedEvent:
        feed_event = await self.queue.get()
        self._waiting_since = time.monotonic() if not self.queue.empty() else None
        if self.status is ChannelStatus.TIMED_OUT:
            self.set_status(ChannelStatus.SUBSCRIBED)
        return feed_event

    def _check_stalled(self) -> None:
        now = time.monotonic()
        if self._waiting_since is None:
            self._waiting_since = now
            return
        waited = now - self._waiting_since
        if self.status is ChannelStatus.SUBSCRIBED and waited >= self.stall_timeout:
            logger.warning("Channel for recipient %s stalled for %.1fs", self.recipient_id, waited)
            self.set_status(ChannelStatus.TIMED_OUT, "consumer stalled")

    @property
    def is_open(self) -> bool:
        return self.status is not ChannelStatus.CLOSED


class ChangeFeed:
    """
    Routes committed row inserts to channels keyed by (table, recipient_id).
    Delivery is at-least-once per open channel; nothing is replayed.
    """

    def __init__(self, queue_size: int | None = None, stall_timeout: float | None = None) -> None:
        self._queue_size = queue_size or settings.REALTIME_QUEUE_SIZE
        self._stall_timeout = (
            settings.CHANNEL_STALL_TIMEOUT if stall_timeout is None else stall_timeout
        )
        self._channels: defaultdict[tuple[str, str], set[FeedChannel]] = defaultdict(set)

    def subscribe(self, table: str, recipient_id: str) -> FeedChannel:
        channel = FeedChannel(
            table=table,
            recipient_id=str(recipient_id),
            maxsize=self._queue_size,
            stall_timeout=self._stall_timeout,
        )
        self._channels[(table, channel.recipient_id)].add(channel)
        channel.set_status(ChannelStatus.SUBSCRIBED)
        logger.debug("Channel opened: table=%s recipient=%s", table, recipient_id)
        return channel

    def unsubscribe(self, channel: FeedChannel) -> None:
        key = (channel.table, channel.recipient_id)
        channels = self._channels.get(key)
        if channels is not None:
            channels.discard(channel)
            if not channels:
                self._channels.pop(key, None)
        if channel.is_open:
            channel.set_status(ChannelStatus.CLOSED)

    def publish(self, table: str, record: dict[str, Any]) -> int:
        """Push ``record`` to every channel watching its recipient. Returns the delivery count."""
        recipient_id = record.get("recipient_id")
        if not recipient_id:
            return 0
        delivered = 0
        feed_event = FeedEvent(table=table, record=record)
        for channel in list(self._channels.get((table, str(recipient_id)), ())):
            if channel.offer(feed_event):
                delivered += 1
        return delivered

    def stage_insert(self, db: AsyncSession, row: Base) -> None:
        """Queue ``row`` for publication once ``db`` commits; dropped on rollback."""
        pending = db.sync_session.info.setdefault(_PENDING_KEY, [])
        pending.append((self, row.__tablename__, row_to_record(row)))

    def close_all(self) -> None:
        for channels in list(self._channels.values()):
            for channel in list(channels):
                self.unsubscribe(channel)

    def subscriber_count(self, table: str, recipient_id: str) -> int:
        return len(self._channels.get((table, str(recipient_id)), ()))


def row_to_record(row: Base) -> dict[str, Any]:
    """Column values of ``row`` as a plain dict, like a change-feed ``new`` payload."""
    mapper = inspect(row).mapper
    record: dict[str, Any] = {}
    for attr in mapper.column_attrs:
        value = getattr(row, attr.key)
        record[attr.key] = str(value) if isinstance(value, uuid.UUID) else value
    return record


@event.listens_for(Session, "after_commit")
def _publish_pending(session: Session) -> None:
    for feed, table, record in session.info.pop(_PENDING_KEY, []):
        feed.publish(table, record)


@event.listens_for(Session, "after_rollback")
def _discard_pending(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)


# Singleton instance shared across the application
change_feed = ChangeFeed()
