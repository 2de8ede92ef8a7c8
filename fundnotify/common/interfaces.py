"""Contracts the reconciler expects from the ledger collaborator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from typing import Any

from fundnotify.common.events import FundingEvent, Project

RawEvent = FundingEvent | Mapping[str, Any]


class Subscription(ABC):
    """Live push stream of raw events plus its cancel handle."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[RawEvent]: ...

    @abstractmethod
    async def close(self) -> None:
        """Release the stream. Must be safe to call more than once."""
        ...


class EventSource(ABC):
    """Pull (historical) and push (live) access to ledger events of one kind."""

    @abstractmethod
    async def query_historical_events(self, kind: str) -> list[RawEvent]:
        """Return every past event of `kind` in log order (may be empty)."""
        ...

    @abstractmethod
    async def subscribe(self, kind: str, group: str | None = None) -> Subscription:
        """Open a live stream. Streams opened under the same `group` resume
        from where the previous one left off."""
        ...


class ProjectDirectory(ABC):
    """Lookup of project metadata by id."""

    @abstractmethod
    async def fetch_project(self, project_id: int) -> Project:
        """Raise `ProjectNotFound` or `ProjectUnavailable` on failure."""
        ...
