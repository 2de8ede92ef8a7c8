"""Deduplicator and NotificationLedger behaviour."""

from fundnotify.services.notification.dedup import Deduplicator
from fundnotify.services.notification.feed import NotificationLedger
from fundnotify.services.notification.schemas import NotificationRecord


def _record(key: str) -> NotificationRecord:
    return NotificationRecord(id=key, message=f"msg {key}", project_id=1, investor="0xinv", amount=1)


def test_deduplicator_tracks_and_resets():
    dedup = Deduplicator()
    assert not dedup.seen("a:0")
    dedup.mark_seen("a:0")
    dedup.mark_seen("a:0")
    assert dedup.seen("a:0")
    assert len(dedup) == 1
    dedup.reset()
    assert not dedup.seen("a:0")


def test_feed_lists_newest_first_and_ignores_duplicate_ids():
    """Duplicate inserts are the final idempotence backstop."""

    feed = NotificationLedger()
    assert feed.insert(_record("a:0"))
    assert feed.insert(_record("b:0"))
    assert not feed.insert(_record("a:0"))
    assert [r.id for r in feed.list()] == ["b:0", "a:0"]


def test_feed_list_is_a_snapshot():
    feed = NotificationLedger()
    feed.insert(_record("a:0"))
    snapshot = feed.list()
    feed.insert(_record("b:0"))
    assert [r.id for r in snapshot] == ["a:0"]


def test_feed_remove_and_clear():
    feed = NotificationLedger()
    feed.insert(_record("a:0"))
    feed.insert(_record("b:0"))
    assert feed.remove("a:0")
    assert not feed.remove("a:0")
    assert "a:0" not in feed
    assert len(feed) == 1
    feed.clear()
    assert feed.list() == []
    assert feed.insert(_record("b:0"))
