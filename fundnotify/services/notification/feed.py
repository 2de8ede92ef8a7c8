"""Live notification feed for the current recipient (newest first)."""

from __future__ import annotations

from fundnotify.services.notification.schemas import NotificationRecord


class NotificationLedger:
    """Ordered, id-unique collection of live notification records."""

    def __init__(self) -> None:
        self._records: list[NotificationRecord] = []
        self._ids: set[str] = set()

    def insert(self, record: NotificationRecord) -> bool:
        """Prepend a record; returns False when one with the same id exists."""

        if record.id in self._ids:
            return False
        self._records.insert(0, record)
        self._ids.add(record.id)
        return True

    def remove(self, notification_id: str) -> bool:
        if notification_id not in self._ids:
            return False
        self._ids.discard(notification_id)
        self._records = [r for r in self._records if r.id != notification_id]
        return True

    def clear(self) -> None:
        self._records = []
        self._ids.clear()

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._ids

    def __len__(self) -> int:
        return len(self._records)

    def list(self) -> list[NotificationRecord]:
        """Snapshot of the feed; later mutations are not reflected in it."""

        return self._records[:]
