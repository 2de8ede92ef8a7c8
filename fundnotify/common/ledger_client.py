"""Ledger collaborator adapter.

Historical funding events and project metadata come from the ledger indexer's
HTTP API; live funding events are pushed by the indexer onto a Kafka topic.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
from aiokafka import AIOKafkaConsumer
from pydantic import ValidationError

from fundnotify.common.config import settings
from fundnotify.common.errors import ProjectNotFound, ProjectUnavailable, SubscriptionDropped
from fundnotify.common.events import Project
from fundnotify.common.interfaces import EventSource, ProjectDirectory, Subscription
from fundnotify.common.logging import logger


class KafkaSubscription(Subscription):
    """Live funding stream backed by one Kafka consumer group.

    Offsets are committed after each fetched batch has been handed on, so a
    consumer reopened under the same group resumes where the last one stopped.
    """

    def __init__(self, consumer: AIOKafkaConsumer, topic: str, group_id: str) -> None:
        self.consumer = consumer
        self.topic = topic
        self.group_id = group_id
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[Any]:
        while not self._closed:
            try:
                results = await self.consumer.getmany(timeout_ms=500, max_records=50)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                raise SubscriptionDropped(f"kafka fetch failed topic={self.topic}: {exc}") from exc
            for _, messages in results.items():
                for msg in messages:
                    try:
                        yield json.loads(msg.value.decode("utf-8"))
                    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                        # Still forwarded so the pipeline drops and counts it as malformed.
                        logger.warning("undecodable live event topic=%s offset=%s error=%s", self.topic, msg.offset, exc)
                        yield {}
            if results:
                try:
                    await self.consumer.commit()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    raise SubscriptionDropped(
                        f"kafka commit failed topic={self.topic} group={self.group_id}: {exc}"
                    ) from exc
        raise SubscriptionDropped(f"subscription closed topic={self.topic}")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.consumer.stop()


class LedgerClient(EventSource, ProjectDirectory):
    """HTTP + Kafka access to the ledger indexer."""

    def __init__(
        self,
        base_url: str | None = None,
        bootstrap_servers: str | None = None,
        topic: str | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ledger_api_url).rstrip("/")
        self.bootstrap_servers = bootstrap_servers or settings.kafka_bootstrap_servers
        self.topic = topic or settings.funding_events_topic
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def query_historical_events(self, kind: str) -> list[dict[str, Any]]:
        resp = await self._http.get("/events", params={"kind": kind})
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, list):
            raise ValueError("ledger events response malformed")
        return payload

    async def fetch_project(self, project_id: int) -> Project:
        try:
            resp = await self._http.get(f"/projects/{project_id}")
        except httpx.HTTPError as exc:
            raise ProjectUnavailable(f"ledger unreachable: {exc}") from exc
        if resp.status_code == 404:
            raise ProjectNotFound(f"project {project_id} not found")
        if resp.status_code >= 400:
            raise ProjectUnavailable(f"project lookup failed (status={resp.status_code})")
        try:
            return Project.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise ProjectUnavailable(f"project {project_id} response malformed") from exc

    async def subscribe(self, kind: str, group: str | None = None) -> KafkaSubscription:
        topic = self.topic if kind == "funding" else f"ledger.{kind}"
        group_id = group or f"{settings.service_name}.{kind}"
        # A group with no committed offset replays the topic; duplicates of
        # backfilled events are collapsed downstream.
        consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=self.bootstrap_servers,
            group_id=group_id,
            auto_offset_reset="earliest",
            enable_auto_commit=False,
        )
        try:
            await consumer.start()
        except Exception:
            await consumer.stop()
            raise
        logger.info("kafka_consumer_started topic=%s group=%s", topic, group_id)
        return KafkaSubscription(consumer, topic, group_id)

    async def close(self) -> None:
        await self._http.aclose()
