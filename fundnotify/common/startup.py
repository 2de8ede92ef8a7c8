"""Startup-time helpers for safe config logging."""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from fundnotify.common.config import CommonSettings
from fundnotify.common.logging import logger

SECRET_MARKERS = ("key", "secret", "password", "credential")


def _safe_dsn(dsn: str) -> str:
    """Keep driver, host and database visible; mask the password."""

    try:
        return make_url(dsn).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable>"


def _safe_value(name: str, value: Any) -> Any:
    if value in ("", None):
        return "<unset>"
    if name.endswith("_dsn"):
        return _safe_dsn(value)
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    return value


def log_startup_config(config: CommonSettings, fields: list[str]) -> dict[str, Any]:
    """Log selected settings fields for quick troubleshooting and return what was logged."""

    snapshot: dict[str, Any] = {"service": config.service_name}
    for field in fields:
        snapshot[field] = _safe_value(field, getattr(config, field))
    logger.info("startup_config=%s", snapshot)
    return snapshot
