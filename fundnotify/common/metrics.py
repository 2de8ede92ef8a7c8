"""Prometheus metric definitions for the notifier."""

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response


funding_events_received_total = Counter(
    "funding_events_received_total",
    "Funding events pulled into the reconciliation pipeline",
    ["service", "source"],
)
notifications_created_total = Counter(
    "notifications_created_total",
    "Notification records inserted into the live feed",
    ["service"],
)
duplicate_events_skipped_total = Counter(
    "duplicate_events_skipped_total",
    "Events skipped because their key was already processed this session",
    ["service", "source"],
)
dismissed_events_skipped_total = Counter(
    "dismissed_events_skipped_total",
    "Events skipped because the recipient dismissed them earlier",
    ["service"],
)
foreign_events_skipped_total = Counter(
    "foreign_events_skipped_total",
    "Events skipped because the project belongs to another founder",
    ["service"],
)
malformed_events_total = Counter(
    "malformed_events_total",
    "Raw ledger records dropped for missing or invalid fields",
    ["service", "source"],
)
project_lookup_failures_total = Counter(
    "project_lookup_failures_total",
    "Project resolutions that failed and were not cached",
    ["service"],
)
project_lookup_seconds = Histogram(
    "project_lookup_seconds",
    "Duration of external project lookups",
    ["service"],
)
retries_total = Counter("retries_total", "Retry count", ["service", "dependency"])
dismissal_storage_failures_total = Counter(
    "dismissal_storage_failures_total",
    "Dismissal reads or writes that failed against durable storage",
    ["service", "operation"],
)
notification_ledger_size = Gauge(
    "notification_ledger_size",
    "Current number of live notification records",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
