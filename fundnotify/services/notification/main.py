"""Notifier process lifecycle: wiring, optional auto-start, graceful teardown."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from fundnotify.common.config import settings
from fundnotify.common.db import Base, SessionLocal, engine
from fundnotify.common.ledger_client import LedgerClient
from fundnotify.common.logging import configure_logging
from fundnotify.common.startup import log_startup_config
from fundnotify.common.tracing import instrument_app, setup_tracing
from fundnotify.services.notification.api import create_app
from fundnotify.services.notification.dismissals import DismissalStore
from fundnotify.services.notification.resolver import ProjectResolver
from fundnotify.services.notification.service import EventReconciler

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    [
        "dismissal_store_dsn",
        "ledger_api_url",
        "kafka_bootstrap_servers",
        "funding_events_topic",
        "recipient_identity",
        "recipient_role",
    ],
)
ledger = LedgerClient()
reconciler = EventReconciler(
    ledger,
    ProjectResolver(ledger, service_name=settings.service_name),
    DismissalStore(SessionLocal, service_name=settings.service_name),
    service_name=settings.service_name,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Start the configured recipient's session and tear it down on shutdown."""

    # SQLite deployments have no migration step; create_all is a no-op once tables exist.
    Base.metadata.create_all(bind=engine)
    if settings.recipient_identity:
        await reconciler.start(settings.recipient_identity, settings.recipient_role)
    yield
    await reconciler.teardown("shutdown")
    await ledger.close()


app = create_app(reconciler, lifespan=lifespan)
instrument_app(app)
