"""Notification persistence models (durable dismissals only)."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fundnotify.common.db import Base


class DismissedNotifications(Base):
    """Per-recipient array of event keys the recipient cleared."""

    __tablename__ = "dismissed_notifications"

    recipient: Mapped[str] = mapped_column(String, primary_key=True)
    event_keys: Mapped[list] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
