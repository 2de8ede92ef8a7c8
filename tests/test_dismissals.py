"""Durable dismissal store: write-through, append-only, degrades on storage errors."""

import pytest
from sqlalchemy import text

from fundnotify.common.errors import StorageUnavailable
from fundnotify.services.notification.dismissals import DismissalStore
from fundnotify.services.notification.models import DismissedNotifications


class FlakySessions:
    """Session factory that fails the next `failures` calls."""

    def __init__(self, factory) -> None:
        self.factory = factory
        self.failures = 0
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise RuntimeError("database is locked")
        return self.factory()


def _stored(session_factory, recipient: str):
    with session_factory() as db:
        row = db.get(DismissedNotifications, recipient)
        return None if row is None else row.event_keys


def test_dismissal_survives_restart(session_factory):
    """A new store instance (new process) sees earlier dismissals."""

    DismissalStore(session_factory).dismiss("0xFounder", "a:0")

    restarted = DismissalStore(session_factory)
    assert restarted.load("0xfounder") == {"a:0"}
    assert restarted.is_dismissed("0xFOUNDER", "a:0")
    assert not restarted.is_dismissed("0xfounder", "b:0")


def test_recipient_identity_is_stored_lowercase(session_factory):
    DismissalStore(session_factory).dismiss("0xABC", "a:0")
    assert _stored(session_factory, "0xabc") == ["a:0"]


def test_dismiss_is_idempotent_and_skips_redundant_writes(session_factory):
    sessions = FlakySessions(session_factory)
    store = DismissalStore(sessions)
    store.dismiss("0xabc", "a:0")
    calls_after_first = sessions.calls
    store.dismiss("0xabc", "a:0")
    store.dismiss_all("0xabc", ["a:0"])
    assert sessions.calls == calls_after_first
    assert _stored(session_factory, "0xabc") == ["a:0"]


def test_dismiss_all_appends_to_existing_array(session_factory):
    store = DismissalStore(session_factory)
    store.dismiss("0xabc", "a:0")
    store.dismiss_all("0xabc", ["c:1", "b:0", "a:0"])
    assert _stored(session_factory, "0xabc") == ["a:0", "b:0", "c:1"]


def test_corrupt_record_loads_as_empty(session_factory):
    with session_factory() as db:
        db.add(DismissedNotifications(recipient="0xabc", event_keys={"not": "a list"}))
        db.commit()

    store = DismissalStore(session_factory)
    assert store.load("0xabc") == set()
    store.dismiss("0xabc", "a:0")
    assert _stored(session_factory, "0xabc") == ["a:0"]


def test_undecodable_record_loads_as_empty(engine, session_factory):
    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO dismissed_notifications (recipient, event_keys) VALUES ('0xabc', 'not json{')")
        )
    assert DismissalStore(session_factory).load("0xabc") == set()


def test_unreadable_storage_does_not_block(session_factory):
    sessions = FlakySessions(session_factory)
    sessions.failures = 1
    store = DismissalStore(sessions)
    assert store.load("0xabc") == set()
    assert not store.is_dismissed("0xabc", "a:0")


def test_failed_persist_keeps_key_in_memory_and_reports(session_factory):
    """The caller sees StorageUnavailable but the key stays suppressed."""

    sessions = FlakySessions(session_factory)
    store = DismissalStore(sessions)
    store.load("0xabc")
    sessions.failures = 1
    with pytest.raises(StorageUnavailable):
        store.dismiss("0xabc", "a:0")
    assert store.is_dismissed("0xabc", "a:0")
    assert _stored(session_factory, "0xabc") is None


def test_durability_recovers_on_next_write(session_factory):
    sessions = FlakySessions(session_factory)
    store = DismissalStore(sessions)
    store.load("0xabc")
    sessions.failures = 1
    with pytest.raises(StorageUnavailable):
        store.dismiss("0xabc", "a:0")

    # Re-dismissing the same key retries the pending write.
    store.dismiss("0xabc", "a:0")
    assert _stored(session_factory, "0xabc") == ["a:0"]


def test_persist_never_drops_previously_stored_keys(session_factory):
    """A store that failed to load must not overwrite older dismissals."""

    DismissalStore(session_factory).dismiss("0xabc", "a:0")

    sessions = FlakySessions(session_factory)
    sessions.failures = 1
    degraded = DismissalStore(sessions)
    assert degraded.load("0xabc") == set()
    degraded.dismiss("0xabc", "b:0")

    assert _stored(session_factory, "0xabc") == ["a:0", "b:0"]
    assert degraded.is_dismissed("0xabc", "a:0")
