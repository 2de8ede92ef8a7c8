"""Notification session state machine enforced by the reconciler."""

IDLE = "IDLE"
BACKFILLING = "BACKFILLING"
LIVE = "LIVE"
TORNDOWN = "TORNDOWN"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    IDLE: {BACKFILLING, TORNDOWN},
    BACKFILLING: {LIVE, TORNDOWN},
    LIVE: {TORNDOWN},
    TORNDOWN: {IDLE},
}

ACTIVE_STATES = frozenset({BACKFILLING, LIVE})


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")
