"""Startup checks run before the API or a worker starts serving."""

from __future__ import annotations

import logging

from app.core.config import get_config
from app.core.logging_config import configure_logging
from app.database.db import verify_database_connection

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    config = get_config()
    if not verify_database_connection():
        if config.DB_CONNECTIVITY_REQUIRED:
            raise RuntimeError("Database connectivity check failed.")
        logger.warning(
            "startup.database.unreachable",
            extra={"event": "startup.database.unreachable", "env": config.ENV},
        )

    if config.is_production and config.DATABASE_URL.startswith("sqlite"):
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )
    if not config.SMTP_SERVER:
        # Quotes can still be drafted and priced; send_quote will report a dispatch failure.
        logger.warning(
            "startup.smtp.not_configured",
            extra={"event": "startup.smtp.not_configured", "quote_delivery": "disabled"},
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "quote_number_sample": config.QUOTE_NUMBER_FORMAT.format(year=2026, seq=1),
        },
    )


def bootstrap() -> None:
    """Configure logging, then check the database and mail settings."""
    configure_logging()
    validate_startup_config()
