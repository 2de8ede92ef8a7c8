"""Cached, single-flight project lookup."""

import asyncio
from functools import partial

from fundnotify.common.config import settings
from fundnotify.common.errors import ProjectNotFound, ProjectUnavailable, ResolutionFailed
from fundnotify.common.events import Project
from fundnotify.common.interfaces import ProjectDirectory
from fundnotify.common.logging import logger
from fundnotify.common.metrics import project_lookup_failures_total, project_lookup_seconds


class ProjectResolver:
    """Resolves project ids, sharing one in-flight fetch per id.

    Successful lookups are cached for the process lifetime (project ownership
    never changes after creation). Failures are not cached.
    """

    def __init__(
        self,
        directory: ProjectDirectory,
        timeout: float = settings.project_lookup_timeout_seconds,
        service_name: str = "notifier",
    ) -> None:
        self.directory = directory
        self.timeout = timeout
        self.service_name = service_name
        self._cache: dict[int, Project] = {}
        self._inflight: dict[int, asyncio.Task] = {}

    def cached(self, project_id: int) -> Project | None:
        return self._cache.get(project_id)

    async def resolve(self, project_id: int) -> Project:
        """Return project metadata or raise `ResolutionFailed`."""

        project = self._cache.get(project_id)
        if project is not None:
            return project
        task = self._inflight.get(project_id)
        if task is None:
            task = asyncio.create_task(self._fetch(project_id))
            self._inflight[project_id] = task
            task.add_done_callback(partial(self._fetch_done, project_id))
        # Shielded: one caller being cancelled must not cancel the shared fetch.
        return await asyncio.shield(task)

    def _fetch_done(self, project_id: int, task: asyncio.Task) -> None:
        if self._inflight.get(project_id) is task:
            del self._inflight[project_id]
        if not task.cancelled():
            task.exception()

    async def _fetch(self, project_id: int) -> Project:
        with project_lookup_seconds.labels(service=self.service_name).time():
            try:
                project = await asyncio.wait_for(self.directory.fetch_project(project_id), timeout=self.timeout)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError as exc:
                raise self._failed(project_id, f"timed out after {self.timeout}s") from exc
            except (ProjectNotFound, ProjectUnavailable) as exc:
                raise self._failed(project_id, str(exc)) from exc
            except Exception as exc:
                raise self._failed(project_id, f"unexpected error: {exc}") from exc
        self._cache[project_id] = project
        return project

    def _failed(self, project_id: int, reason: str) -> ResolutionFailed:
        project_lookup_failures_total.labels(service=self.service_name).inc()
        logger.warning("project_lookup_failed project_id=%s reason=%s", project_id, reason)
        return ResolutionFailed(project_id, reason)
