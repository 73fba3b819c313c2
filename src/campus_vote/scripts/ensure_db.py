"""Prepare the configured database before the first deployment.

Postgres databases are created when missing; SQLite files need no creation
step. ``--create-tables`` then builds the schema directly from the models,
which is handy for demos. Production schemas are managed with Alembic.
"""
from __future__ import annotations

import argparse
import logging
import sys
from urllib.parse import urlsplit, urlunsplit

import psycopg
from psycopg import sql
from sqlalchemy.exc import SQLAlchemyError

from campus_vote.core.settings import settings
from campus_vote.db.session import Base, build_engine

logger = logging.getLogger("campus_vote.ensure_db")


def is_sqlite(url: str) -> bool:
    return url.strip().strip("'\"").startswith("sqlite")


def normalize_to_psycopg(uri: str) -> str:
    """Return a Postgres URI suitable for ``psycopg.connect()``.

    Strips quotes and whitespace and converts SQLAlchemy driver schemes such as
    ``postgresql+psycopg`` to plain ``postgresql``.
    """
    uri = (uri or "").strip().strip("'\"")
    if not uri:
        raise ValueError("DATABASE_URL is empty")
    parts = urlsplit(uri)
    scheme = parts.scheme
    if scheme.startswith("postgresql+"):
        scheme = "postgresql"
    if scheme != "postgresql":
        raise ValueError(f"Not a Postgres URL: {uri!r}")
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def split_admin_url(db_url: str) -> tuple[str, str]:
    """Return ``(admin_url, target_db)`` where admin_url points at ``postgres``."""
    parts = urlsplit(normalize_to_psycopg(db_url))
    target_db = parts.path.lstrip("/") or "postgres"
    if parts.netloc:
        admin_url = urlunsplit(("postgresql", parts.netloc, "/postgres", parts.query, ""))
    else:
        admin_url = "postgresql:///postgres"
    return admin_url, target_db


def ensure_database_exists(db_url: str) -> bool:
    """Create the Postgres database named in ``db_url``; return True if created."""
    admin_url, target_db = split_admin_url(db_url)
    with psycopg.connect(admin_url, autocommit=True) as conn, conn.cursor() as cur:
        cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (target_db,))
        if cur.fetchone() is not None:
            logger.info("Database %s already exists", target_db)
            return False
        cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(target_db)))
        logger.info("Created database %s", target_db)
        return True


def create_schema(db_url: str) -> None:
    """Create every table known to the ORM metadata."""
    engine = build_engine(db_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    logger.info("Schema created")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ensure the configured database exists")
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to the effective settings URL)",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create the tables from the ORM models after ensuring the database.",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper(), format="[ensure_db] %(message)s")

    url = args.url or settings.database_url_sync
    try:
        if not is_sqlite(url):
            ensure_database_exists(url)
        if args.create_tables:
            create_schema(url)
    except (ValueError, psycopg.Error, SQLAlchemyError) as exc:
        logger.error("ERROR: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
