"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from campus_vote.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import campus_vote.models  # noqa: E402,F401


def configure_sqlite_engine(engine: Engine, busy_timeout_seconds: float) -> None:
    """Make SQLite transactions take the write lock when they begin.

    pysqlite defers BEGIN until the first write, so two requests could both read
    a session as unredeemed before either writes. Emitting BEGIN IMMEDIATE makes
    each transaction serialize on the database lock, with the busy timeout
    deciding how long a contender waits.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout_seconds * 1000)}")
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create an engine, applying SQLite locking setup when needed."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        new_engine = create_engine(url, echo=echo, connect_args=connect_args, **kwargs)
        configure_sqlite_engine(new_engine, settings.sqlite_busy_timeout_seconds)
        return new_engine
    return create_engine(url, echo=echo, pool_pre_ping=True, **kwargs)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
