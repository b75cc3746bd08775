"""Engine and session lifecycle for the sales database."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_config

logger = logging.getLogger(__name__)

config = get_config()


def _build_engine(database_url: str) -> Engine:
    if make_url(database_url).get_backend_name() == "sqlite":
        # Request threads and the Celery worker share local SQLite files.
        return create_engine(
            database_url,
            echo=config.DEBUG and not config.is_production,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=config.DEBUG,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_size=5,
        max_overflow=10,
    )


engine = _build_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_engine() -> Engine:
    return engine


def reset_engine(database_url: str | None = None) -> None:
    """Dispose the pool and rebind the session factory, e.g. after a SQLite file was moved aside."""
    global engine
    engine.dispose()
    engine = _build_engine(database_url or config.DATABASE_URL)
    SessionLocal.configure(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session for code running outside a request, such as Celery tasks."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def verify_database_connection() -> bool:
    """Run ``SELECT 1`` against the configured database and report whether it answered."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning(
            "database.unreachable",
            extra={
                "event": "database.unreachable",
                "backend": make_url(config.DATABASE_URL).get_backend_name(),
                "reason": str(exc),
            },
        )
        return False
    return True
