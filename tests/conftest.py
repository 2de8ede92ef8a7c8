"""Shared fixtures: in-memory SQLite dismissals and a fake ledger collaborator."""

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fundnotify.common.db import Base
from fundnotify.common.events import Project
from fundnotify.services.notification.dismissals import DismissalStore
from tests.fakes import FOUNDER, OTHER_FOUNDER, FakeLedger, make_reconciler


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def dismissals(session_factory):
    return DismissalStore(session_factory)


@pytest.fixture
def ledger():
    return FakeLedger(
        projects={
            1: Project(id=1, founder=FOUNDER, name="Solar Roofs"),
            2: Project(id=2, founder=OTHER_FOUNDER, name="Other Venture"),
            3: Project(id=3, founder=FOUNDER.upper().replace("0X", "0x"), name="Water Wells"),
        }
    )


@pytest_asyncio.fixture
async def reconciler(ledger, dismissals):
    reconciler = make_reconciler(ledger, dismissals)
    yield reconciler
    await reconciler.teardown("test_finished")
