"""Database bootstrap for durable dismissal state."""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from fundnotify.common.config import settings


def make_engine(dsn: str):
    """Build an engine; SQLite connections are shared with the event loop's threadpool."""

    connect_args = {"check_same_thread": False} if dsn.startswith("sqlite") else {}
    return create_engine(dsn, pool_pre_ping=True, connect_args=connect_args)


# Single SQLAlchemy engine per process.
engine = make_engine(settings.dismissal_store_dsn)
# `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass
