"""Durable per-recipient dismissal sets.

Dismissals are append-only: once a key is stored for a recipient it is never
removed by this module. Every mutation is written through before `dismiss`
returns.
"""

from collections.abc import Iterable

from fundnotify.common.errors import StorageUnavailable
from fundnotify.common.events import normalize_identity
from fundnotify.common.logging import logger
from fundnotify.common.metrics import dismissal_storage_failures_total
from fundnotify.services.notification.models import DismissedNotifications


def _valid_keys(value) -> bool:
    return isinstance(value, list) and all(isinstance(key, str) for key in value)


class DismissalStore:
    """In-memory view of dismissed event keys backed by one row per recipient."""

    def __init__(self, session_factory, service_name: str = "notifier") -> None:
        self.session_factory = session_factory
        self.service_name = service_name
        self._dismissed: dict[str, set[str]] = {}
        # Recipients whose latest write failed; retried on the next mutation.
        self._unsynced: set[str] = set()

    def _read(self, recipient: str) -> set[str]:
        """Stored keys for a recipient; storage errors degrade to an empty set."""

        try:
            with self.session_factory() as db:
                row = db.get(DismissedNotifications, recipient)
                stored = None if row is None else row.event_keys
        except Exception as exc:
            dismissal_storage_failures_total.labels(service=self.service_name, operation="load").inc()
            logger.error("dismissal_load_failed recipient=%s error=%s", recipient, exc)
            return set()
        if stored is None:
            return set()
        if not _valid_keys(stored):
            dismissal_storage_failures_total.labels(service=self.service_name, operation="load").inc()
            logger.error("dismissal_record_corrupt recipient=%s type=%s", recipient, type(stored).__name__)
            return set()
        return set(stored)

    def load(self, recipient: str) -> set[str]:
        """Merge stored dismissals into memory and return a copy of the set."""

        recipient = normalize_identity(recipient)
        keys = self._dismissed.setdefault(recipient, set())
        keys.update(self._read(recipient))
        logger.info("dismissals_loaded recipient=%s count=%s", recipient, len(keys))
        return set(keys)

    def _keys_for(self, recipient: str) -> set[str]:
        if recipient not in self._dismissed:
            self.load(recipient)
        return self._dismissed[recipient]

    def is_dismissed(self, recipient: str, key: str) -> bool:
        return key in self._keys_for(normalize_identity(recipient))

    def dismiss(self, recipient: str, key: str) -> None:
        """Dismiss one key; a no-op when it is already durably dismissed."""

        self.dismiss_all(recipient, [key])

    def dismiss_all(self, recipient: str, keys: Iterable[str]) -> None:
        """Dismiss many keys with a single write.

        Raises `StorageUnavailable` when the write fails. The keys stay
        suppressed in memory either way.
        """

        recipient = normalize_identity(recipient)
        current = self._keys_for(recipient)
        new_keys = set(keys) - current
        if not new_keys and recipient not in self._unsynced:
            return
        current.update(new_keys)
        self.persist(recipient, current)

    def persist(self, recipient: str, keys: set[str]) -> None:
        """Write the full set for a recipient, unioned with what is already stored."""

        recipient = normalize_identity(recipient)
        try:
            with self.session_factory() as db:
                row = db.get(DismissedNotifications, recipient)
                if row is None:
                    db.add(DismissedNotifications(recipient=recipient, event_keys=sorted(keys)))
                    merged = list(keys)
                else:
                    existing = row.event_keys if _valid_keys(row.event_keys) else []
                    merged = existing + sorted(set(keys) - set(existing))
                    row.event_keys = merged
                db.commit()
        except Exception as exc:
            self._unsynced.add(recipient)
            dismissal_storage_failures_total.labels(service=self.service_name, operation="persist").inc()
            logger.error("dismissal_persist_failed recipient=%s pending=%s error=%s", recipient, len(keys), exc)
            raise StorageUnavailable(f"dismissals for {recipient} not persisted") from exc
        self._unsynced.discard(recipient)
        self._dismissed.setdefault(recipient, set()).update(merged)
