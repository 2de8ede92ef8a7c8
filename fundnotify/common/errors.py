"""Error taxonomy for the notification pipeline and its collaborators.

None of these reach the end user. The reconciler catches them per event (or per
subscription attempt), logs, and keeps going.
"""


class NotifierError(Exception):
    """Base class for every error raised inside the notifier."""


class TransientLookupFailure(NotifierError):
    """A project/recipient lookup failed; safe to retry later."""


class ResolutionFailed(TransientLookupFailure):
    """ProjectResolver could not produce a project for an id."""

    def __init__(self, project_id: int, reason: str) -> None:
        super().__init__(f"project {project_id} could not be resolved: {reason}")
        self.project_id = project_id
        self.reason = reason


class SubscriptionDropped(NotifierError):
    """The live event stream was severed or could not be opened."""


class StorageUnavailable(NotifierError):
    """Dismissal state could not be written to durable storage."""


class MalformedEvent(NotifierError):
    """A raw ledger record is missing or has invalid required fields."""


class ProjectNotFound(NotifierError):
    """The ledger has no project with the requested id."""


class ProjectUnavailable(NotifierError):
    """The ledger could not be reached or answered with an error."""
