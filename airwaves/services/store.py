"""
Per-session notification store.
Newest-first, at most one entry per notification id.
"""
from __future__ import annotations

from collections.abc import Iterable

from airwaves.schemas.notification import DisplayNotification


class NotificationStore:
    """
    In-memory notifications for one recipient.

    ``load_initial`` replaces everything; ``insert_realtime`` prepends only
    unseen ids. ``generation`` changes whenever the contents are replaced or
    reset so callers can tell that a result computed earlier is stale.
    """

    def __init__(self, recipient_id: str) -> None:
        if not recipient_id:
            raise ValueError("recipient_id must not be empty")
        self.recipient_id = str(recipient_id)
        self._items: list[DisplayNotification] = []
        self._ids: set[str] = set()
        self.generation = 0

    def load_initial(self, batch: Iterable[DisplayNotification]) -> None:
        items: list[DisplayNotification] = []
        ids: set[str] = set()
        for notification in batch:
            if notification.id in ids:
                continue
            ids.add(notification.id)
            items.append(notification)
        self._items = items
        self._ids = ids
        self.generation += 1

    def insert_realtime(self, notification: DisplayNotification) -> bool:
        """Prepend ``notification`` unless its id is already present. Returns True if inserted."""
        if notification.id in self._ids:
            return False
        self._ids.add(notification.id)
        self._items.insert(0, notification)
        return True

    def mark_read(self, notification_id: str) -> bool:
        for index, notification in enumerate(self._items):
            if notification.id == notification_id:
                if not notification.read:
                    self._items[index] = notification.model_copy(update={"read": True})
                return True
        return False

    def mark_all_read(self) -> int:
        changed = 0
        for index, notification in enumerate(self._items):
            if not notification.read:
                self._items[index] = notification.model_copy(update={"read": True})
                changed += 1
        return changed

    def reset(self) -> None:
        self._items = []
        self._ids = set()
        self.generation += 1

    def get(self, notification_id: str) -> DisplayNotification | None:
        for notification in self._items:
            if notification.id == notification_id:
                return notification
        return None

    @property
    def items(self) -> list[DisplayNotification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for notification in self._items if not notification.read)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._ids
