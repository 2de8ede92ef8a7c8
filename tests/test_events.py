"""Event identity, parsing and formatting helpers."""

import pytest

from fundnotify.common.errors import MalformedEvent
from fundnotify.common.events import FundingEvent, event_key, format_amount, parse_event, same_identity
from tests.fakes import funding


def test_event_key_depends_only_on_transaction_and_position():
    """Retried deliveries with another amount still share one identity."""

    first = parse_event(funding("0xabc", 3, amount=5))
    retried = parse_event(funding("0xabc", 3, amount=7, project_id=9))
    assert event_key(first) == "0xabc:3"
    assert event_key(first) == event_key(retried)
    assert event_key(parse_event(funding("0xabc", 4))) != event_key(first)


def test_parse_event_accepts_model_instances():
    event = FundingEvent(**funding("0x1"))
    assert parse_event(event) is event


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {k: v for k, v in funding("0x1").items() if k != "transaction_id"},
        {**funding("0x1"), "log_index": -1},
        {**funding("0x1"), "amount": "lots"},
        {**funding("0x1"), "event_kind": "withdrawal"},
        "not-an-event",
    ],
)
def test_parse_event_rejects_malformed_records(raw):
    """Missing or invalid fields drop the event instead of guessing."""

    with pytest.raises(MalformedEvent):
        parse_event(raw)


def test_identity_comparison_ignores_case_and_whitespace():
    assert same_identity("0xAbC", " 0xabc ")
    assert not same_identity("0xabc", "0xabd")


@pytest.mark.parametrize(
    "amount,expected",
    [
        (10**18, "1.0"),
        (15 * 10**17, "1.5"),
        (0, "0.0"),
        (1, "0.000000000000000001"),
        (1234 * 10**16, "12.34"),
    ],
)
def test_format_amount_renders_whole_tokens(amount, expected):
    assert format_amount(amount) == expected
