"""Startup config snapshot redaction."""

from fundnotify.common.config import CommonSettings
from fundnotify.common.startup import log_startup_config


def test_dsn_password_is_masked_but_location_kept():
    config = CommonSettings(dismissal_store_dsn="postgresql://notifier:s3cret@db:5432/notifications")

    snapshot = log_startup_config(config, ["dismissal_store_dsn"])

    assert "s3cret" not in snapshot["dismissal_store_dsn"]
    assert snapshot["dismissal_store_dsn"] == "postgresql://notifier:***@db:5432/notifications"


def test_unset_and_plain_values():
    config = CommonSettings(recipient_identity="", funding_events_topic="ledger.funding")

    snapshot = log_startup_config(config, ["recipient_identity", "funding_events_topic"])

    assert snapshot == {
        "service": config.service_name,
        "recipient_identity": "<unset>",
        "funding_events_topic": "ledger.funding",
    }


def test_unparseable_dsn_is_not_echoed():
    config = CommonSettings(dismissal_store_dsn="not a url")

    assert log_startup_config(config, ["dismissal_store_dsn"])["dismissal_store_dsn"] == "<unparseable>"
