"""Health endpoints for API v1."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_config
from app.database.db import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)) -> dict:
    cfg = get_config()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.warning("health.database_unreachable", extra={"event": "health.database_unreachable"})
        database = "unreachable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": cfg.APP_NAME,
        "version": cfg.APP_VERSION,
        "database": database,
    }
