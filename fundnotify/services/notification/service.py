"""Founder notification reconciler.

Merges the one-shot historical backfill with the live funding subscription.
Both producers only enqueue raw events; a single consumer task owns the
Deduplicator and the NotificationLedger, so every mutation happens in one total
order.
"""

import asyncio

from fundnotify.common.config import settings
from fundnotify.common.errors import MalformedEvent, StorageUnavailable, SubscriptionDropped, TransientLookupFailure
from fundnotify.common.events import (
    FUNDING_EVENT_KIND,
    FundingEvent,
    Project,
    event_key,
    format_amount,
    normalize_identity,
    parse_event,
    same_identity,
)
from fundnotify.common.interfaces import EventSource, RawEvent, Subscription
from fundnotify.common.logging import event_key_ctx, logger, recipient_ctx
from fundnotify.common.metrics import (
    dismissed_events_skipped_total,
    duplicate_events_skipped_total,
    foreign_events_skipped_total,
    funding_events_received_total,
    malformed_events_total,
    notification_ledger_size,
    notifications_created_total,
    retries_total,
)
from fundnotify.common.state_machine import (
    ACTIVE_STATES,
    BACKFILLING,
    IDLE,
    LIVE,
    TORNDOWN,
    validate_transition,
)
from fundnotify.common.tracing import get_tracer
from fundnotify.services.notification.dedup import Deduplicator
from fundnotify.services.notification.dismissals import DismissalStore
from fundnotify.services.notification.feed import NotificationLedger
from fundnotify.services.notification.resolver import ProjectResolver
from fundnotify.services.notification.schemas import NotificationRecord

FOUNDER_ROLE = "founder"

# Queued after the last historical event; switches the session to LIVE.
_BACKFILL_DONE = object()


class EventReconciler:
    """Owns one recipient's notification session."""

    def __init__(
        self,
        source: EventSource | None,
        resolver: ProjectResolver,
        dismissals: DismissalStore,
        service_name: str = "notifier",
        kind: str = FUNDING_EVENT_KIND,
        query_timeout: float = settings.query_timeout_seconds,
        subscribe_timeout: float = settings.subscribe_timeout_seconds,
        initial_backoff: float = settings.resubscribe_initial_backoff_seconds,
        max_backoff: float = settings.resubscribe_max_backoff_seconds,
        token_decimals: int = settings.token_decimals,
        token_symbol: str = settings.token_symbol,
    ) -> None:
        self.source = source
        self.resolver = resolver
        self.dismissals = dismissals
        self.service_name = service_name
        self.kind = kind
        self.query_timeout = query_timeout
        self.subscribe_timeout = subscribe_timeout
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.token_decimals = token_decimals
        self.token_symbol = token_symbol

        self.dedup = Deduplicator()
        self.feed = NotificationLedger()
        self.state = IDLE
        self.recipient: str | None = None
        self.role: str | None = None
        self.subscription_connected = False
        self._queue: asyncio.Queue | None = None
        self._consumer_task: asyncio.Task | None = None
        self._backfill_task: asyncio.Task | None = None
        self._live_task: asyncio.Task | None = None
        self._subscription: Subscription | None = None
        self._lock = asyncio.Lock()
        self._tracer = get_tracer()

    @property
    def session_state(self) -> str:
        return self.state

    def _transition(self, new_state: str) -> None:
        validate_transition(self.state, new_state)
        logger.info("session_transition from=%s to=%s", self.state, new_state)
        self.state = new_state

    # Session lifecycle

    async def start(self, recipient: str, role: str) -> bool:
        """Begin backfill + live delivery for a founder; returns whether a session runs."""

        async with self._lock:
            return await self._start(recipient, role)

    async def change_role(self, role: str) -> None:
        """Apply a role change reported by the identity layer."""

        async with self._lock:
            self.role = role
            if role != FOUNDER_ROLE:
                if self.state in ACTIVE_STATES:
                    await self._teardown("role_change")
                return
            if self.state in (IDLE, TORNDOWN) and self.recipient:
                await self._start(self.recipient, role)

    async def teardown(self, reason: str) -> None:
        """Stop delivery, drop buffered events, clear the feed and dedup state."""

        async with self._lock:
            await self._teardown(reason)

    async def _start(self, recipient: str, role: str) -> bool:
        recipient = normalize_identity(recipient)
        if self.state in ACTIVE_STATES:
            if recipient == self.recipient and role == FOUNDER_ROLE:
                return True
            await self._teardown("role_change" if recipient == self.recipient else "recipient_changed")
        self.recipient = recipient
        self.role = role
        recipient_ctx.set(recipient)
        if role != FOUNDER_ROLE:
            logger.info("session_not_started reason=role role=%s", role)
            return False
        if self.source is None:
            logger.warning("session_not_started reason=no_ledger_connection")
            return False
        if self.state == TORNDOWN:
            self._transition(IDLE)

        self.dismissals.load(recipient)
        queue: asyncio.Queue = asyncio.Queue()
        attach_attempted = asyncio.Event()
        backfill_enqueued = asyncio.Event()
        self._queue = queue
        self._transition(BACKFILLING)
        self._consumer_task = asyncio.create_task(self._consume(queue))
        self._live_task = asyncio.create_task(self._follow_live(queue, attach_attempted, backfill_enqueued))
        self._backfill_task = asyncio.create_task(self._backfill(queue, attach_attempted, backfill_enqueued))
        return True

    async def _teardown(self, reason: str) -> None:
        if self.state not in ACTIVE_STATES:
            return
        tasks = [task for task in (self._consumer_task, self._backfill_task, self._live_task) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._subscription is not None:
            await self._close_subscription(self._subscription)
            self._subscription = None

        discarded = 0
        if self._queue is not None:
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()
                discarded += 1
        self._queue = None
        self._consumer_task = self._backfill_task = self._live_task = None
        self.subscription_connected = False
        self.feed.clear()
        self.dedup.reset()
        notification_ledger_size.labels(service=self.service_name).set(0)
        self._transition(TORNDOWN)
        logger.info("session_torndown reason=%s discarded=%s", reason, discarded)

    async def drain(self) -> None:
        """Wait until the backfill is enqueued and every queued event is handled."""

        queue = self._queue
        if queue is None:
            return
        if self._backfill_task is not None:
            await asyncio.wait({self._backfill_task})
        await queue.join()

    # Producers

    def consumer_group(self) -> str:
        """Live stream group for this recipient; reconnects resume from its offsets."""

        return f"{self.service_name}.{self.kind}.{self.recipient}"

    async def _backfill(
        self, queue: asyncio.Queue, attach_attempted: asyncio.Event, backfill_enqueued: asyncio.Event
    ) -> None:
        """One-shot historical query; never retried within a session."""

        # Query only once the live stream is open so nothing falls between the two.
        await attach_attempted.wait()
        with self._tracer.start_as_current_span("notification.backfill"):
            try:
                events = await asyncio.wait_for(
                    self.source.query_historical_events(self.kind), timeout=self.query_timeout
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("backfill_query_failed kind=%s error=%s", self.kind, exc)
                events = []
            logger.info("backfill_fetched kind=%s count=%s", self.kind, len(events))
            for raw in events:
                await queue.put(("backfill", raw))
        await queue.put(("backfill", _BACKFILL_DONE))
        backfill_enqueued.set()

    def _backoff_seconds(self, attempt: int) -> float:
        return min(self.max_backoff, self.initial_backoff * 2 ** (attempt - 1))

    async def _follow_live(
        self, queue: asyncio.Queue, attach_attempted: asyncio.Event, backfill_enqueued: asyncio.Event
    ) -> None:
        """Forward live events, resubscribing with exponential backoff when the stream drops.

        Events received during the backfill stay buffered in the subscription
        and are queued behind the end-of-backfill marker.
        """

        attempt = 0
        while True:
            subscription = None
            try:
                try:
                    subscription = await asyncio.wait_for(
                        self.source.subscribe(self.kind, group=self.consumer_group()),
                        timeout=self.subscribe_timeout,
                    )
                finally:
                    attach_attempted.set()
                self._subscription = subscription
                self.subscription_connected = True
                logger.info("live_subscription_attached kind=%s group=%s", self.kind, self.consumer_group())
                attempt = 0
                await backfill_enqueued.wait()
                async for raw in subscription:
                    await queue.put(("live", raw))
                raise SubscriptionDropped("live stream ended")
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                attempt += 1
                backoff_seconds = self._backoff_seconds(attempt)
                retries_total.labels(service=self.service_name, dependency="ledger_subscription").inc()
                logger.warning(
                    "live_subscription_dropped attempt=%s backoff_s=%s error=%s",
                    attempt,
                    backoff_seconds,
                    exc,
                )
            finally:
                self.subscription_connected = False
                if subscription is not None:
                    self._subscription = None
                    await self._close_subscription(subscription)
            await asyncio.sleep(backoff_seconds)

    async def _close_subscription(self, subscription: Subscription) -> None:
        try:
            await subscription.close()
        except Exception as exc:
            logger.warning("live_subscription_close_failed error=%s", exc)

    # Consumer

    async def _consume(self, queue: asyncio.Queue) -> None:
        """Single serialized pipeline; no per-event failure stops it."""

        while True:
            origin, item = await queue.get()
            try:
                if item is _BACKFILL_DONE:
                    self._transition(LIVE)
                else:
                    await self._handle(item, origin)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("pipeline_error source=%s error=%s", origin, exc)
            finally:
                queue.task_done()

    async def _handle(self, raw: RawEvent, origin: str) -> None:
        funding_events_received_total.labels(service=self.service_name, source=origin).inc()
        try:
            event = parse_event(raw)
        except MalformedEvent as exc:
            malformed_events_total.labels(service=self.service_name, source=origin).inc()
            logger.warning("malformed event dropped source=%s error=%s", origin, exc)
            return
        key = event_key(event)
        token = event_key_ctx.set(key)
        try:
            with self._tracer.start_as_current_span("notification.event") as span:
                span.set_attribute("event.key", key)
                span.set_attribute("event.source", origin)
                await self._apply(event, key, origin)
        finally:
            event_key_ctx.reset(token)

    async def _apply(self, event: FundingEvent, key: str, origin: str) -> None:
        if self.dedup.seen(key):
            duplicate_events_skipped_total.labels(service=self.service_name, source=origin).inc()
            logger.info("duplicate event skipped source=%s event_key=%s", origin, key)
            return
        if self.dismissals.is_dismissed(self.recipient, key):
            dismissed_events_skipped_total.labels(service=self.service_name).inc()
            logger.info("dismissed event skipped source=%s event_key=%s", origin, key)
            return
        try:
            project = await self.resolver.resolve(event.project_id)
        except TransientLookupFailure as exc:
            logger.warning("event skipped, project unresolved event_key=%s error=%s", key, exc)
            return
        if not same_identity(project.founder, self.recipient):
            foreign_events_skipped_total.labels(service=self.service_name).inc()
            return
        # A dismiss may have landed while the lookup was in flight.
        if self.dismissals.is_dismissed(self.recipient, key):
            return

        self.dedup.mark_seen(key)
        record = NotificationRecord(
            id=key,
            message=self._message(event, project),
            project_id=event.project_id,
            investor=event.investor,
            amount=event.amount,
        )
        if self.feed.insert(record):
            notifications_created_total.labels(service=self.service_name).inc()
            notification_ledger_size.labels(service=self.service_name).set(len(self.feed))
            logger.info("notification created source=%s project_id=%s amount=%s", origin, event.project_id, event.amount)

    def _message(self, event: FundingEvent, project: Project) -> str:
        amount = format_amount(event.amount, self.token_decimals)
        return f'Investor {event.investor} funded {amount} {self.token_symbol} to your project "{project.name}"'

    # Delivery surface

    def list_notifications(self) -> list[NotificationRecord]:
        return self.feed.list()

    def dismiss(self, notification_id: str) -> bool:
        """Remove a notification and suppress it permanently.

        Returns False when the dismissal could not be made durable; it is still
        suppressed for the rest of this process.
        """

        if self.recipient is None:
            logger.warning("dismiss ignored, no recipient notification_id=%s", notification_id)
            return False
        self.feed.remove(notification_id)
        notification_ledger_size.labels(service=self.service_name).set(len(self.feed))
        try:
            self.dismissals.dismiss(self.recipient, notification_id)
        except StorageUnavailable as exc:
            logger.warning("dismissal kept in memory only notification_id=%s error=%s", notification_id, exc)
            return False
        return True

    def dismiss_all(self) -> tuple[int, bool]:
        """Dismiss every listed notification; returns (count, durable)."""

        if self.recipient is None:
            return 0, False
        keys = [record.id for record in self.feed.list()]
        self.feed.clear()
        notification_ledger_size.labels(service=self.service_name).set(0)
        try:
            self.dismissals.dismiss_all(self.recipient, keys)
        except StorageUnavailable as exc:
            logger.warning("bulk dismissal kept in memory only count=%s error=%s", len(keys), exc)
            return len(keys), False
        return len(keys), True
