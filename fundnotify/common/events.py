"""Ledger record shapes and the helpers that give them identity.

Raw funding records arrive from two places (the historical query and the live
stream) in the same JSON shape. Everything downstream works on the validated
`FundingEvent` and its `event_key`.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fundnotify.common.errors import MalformedEvent


FUNDING_EVENT_KIND = "funding"


class FundingEvent(BaseModel):
    """One immutable funding record observed on the ledger."""

    model_config = ConfigDict(frozen=True)

    event_kind: str = FUNDING_EVENT_KIND
    project_id: int = Field(ge=0)
    investor: str = Field(min_length=1)
    amount: int = Field(ge=0)
    transaction_id: str = Field(min_length=1)
    log_index: int = Field(ge=0)


class Project(BaseModel):
    """Project metadata as exposed by the ledger contract."""

    model_config = ConfigDict(frozen=True)

    id: int
    founder: str
    name: str


def event_key(event: FundingEvent) -> str:
    """Stable identity of an event: transaction id plus position in it.

    Amount and timestamps are deliberately not part of the key; a retried
    delivery of the same log entry must map to the same key.
    """

    return f"{event.transaction_id}:{event.log_index}"


def parse_event(raw: FundingEvent | Mapping[str, Any]) -> FundingEvent:
    """Validate one raw record, raising `MalformedEvent` when unusable."""

    if isinstance(raw, FundingEvent):
        event = raw
    elif isinstance(raw, Mapping):
        try:
            event = FundingEvent.model_validate(dict(raw))
        except ValidationError as exc:
            fields = ",".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
            raise MalformedEvent(f"invalid funding event fields={fields}") from exc
    else:
        raise MalformedEvent(f"unsupported event payload type={type(raw).__name__}")
    if event.event_kind != FUNDING_EVENT_KIND:
        raise MalformedEvent(f"unexpected event_kind={event.event_kind}")
    return event


def normalize_identity(identity: str) -> str:
    """Canonical form for wallet identities (encodings differ in letter case)."""

    return identity.strip().lower()


def same_identity(left: str, right: str) -> bool:
    return normalize_identity(left) == normalize_identity(right)


def format_amount(amount: int, decimals: int = 18) -> str:
    """Render a smallest-unit amount in whole tokens, e.g. 1500000000000000000 -> "1.5"."""

    if decimals <= 0:
        return f"{amount}.0"
    whole, fraction = divmod(amount, 10**decimals)
    fraction_text = str(fraction).zfill(decimals).rstrip("0") or "0"
    return f"{whole}.{fraction_text}"
