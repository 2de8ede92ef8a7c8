"""Structured JSON logging with recipient/event context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from fundnotify.common.config import settings


recipient_ctx: ContextVar[str] = ContextVar("recipient", default="")
event_key_ctx: ContextVar[str] = ContextVar("event_key", default="")


class ContextFilter(logging.Filter):
    """Inject service name and correlation identifiers into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.recipient = recipient_ctx.get()
        record.event_key = event_key_ctx.get()
        return True


def configure_logging() -> None:
    """Configure root logger once per process."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    formatter = JsonFormatter("%(asctime)s %(levelname)s %(service_name)s %(recipient)s %(event_key)s %(message)s")
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)


logger = logging.getLogger("fundnotify")
