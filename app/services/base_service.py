"""Shared service base with robust session lifecycle behavior."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import ConcurrentModificationError, DatabaseError
from app.database.db import SessionLocal
from app.models.base import utcnow

Clock = Callable[[], datetime]


class BaseService:
    """Base class for services that operate on a SQLAlchemy session.

    ``clock`` returns naive UTC datetimes and defaults to the wall clock; tests
    pass a fixed clock to make day-granular durations deterministic.
    """

    def __init__(self, db: Session | None = None, clock: Clock | None = None) -> None:
        self.db = db or SessionLocal()
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    def commit(self) -> None:
        """Commit current transaction and rollback on failure."""
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            raise ConcurrentModificationError(
                "Record was modified by another writer; reload and retry."
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError(str(exc)) from exc

    def rollback(self) -> None:
        self.db.rollback()

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "BaseService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        self.close()
