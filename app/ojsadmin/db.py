from __future__ import annotations

import logging
from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

# Pool sizing for Postgres; SQLite (dev, tests) keeps SQLAlchemy's defaults.
_POSTGRES_POOL = {
    "pool_recycle": 1800,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
}


def _build_engine(db_url: str) -> Engine:
    options: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        options.update(_POSTGRES_POOL)
    engine = create_engine(db_url, **options)

    if db_url.startswith("sqlite"):
        # journal_settings and user_journal_roles rely on ON DELETE CASCADE
        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return engine


def init_db(app: Flask) -> None:
    """Create the engine and session factory and park them in app.extensions."""
    engine = _build_engine(app.config["DATABASE_URL"])
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def db_session(app: Flask | None = None) -> Session:
    """Session bound to the current request; created on first use."""
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        factory = (app or current_app).extensions["sqlalchemy_sessionmaker"]
        s = g.db_session = factory()
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        return
    g.db_session = None
    try:
        s.close()
    except Exception:
        logger.exception("Closing request DB session failed")


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Session for seed scripts and test setup: commit on success, roll back on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
