"""Create or upgrade the sales schema (`python -m app.database.init_db`)."""

import logging
from datetime import datetime, timezone
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.engine import make_url

import app.database.db as db_module
from app.core.config import get_config
from app.core.startup import bootstrap
from app.models import Base

PROJECT_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)


def _alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def _sqlite_file(database_url: str) -> Path | None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return None
    path = Path(url.database)
    return path if path.is_absolute() else (PROJECT_ROOT / path).resolve()


def _move_sqlite_file_aside(database_url: str) -> Path | None:
    """Rename a local pestflow SQLite file to ``<name>.backup_<utc stamp>`` and rebind the engine."""
    db_file = _sqlite_file(database_url)
    backup = None
    db_module.get_engine().dispose()
    if db_file is not None and db_file.exists():
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        backup = db_file.with_name(f"{db_file.stem}.backup_{stamp}{db_file.suffix}")
        db_file.replace(backup)
    db_module.reset_engine(database_url)
    return backup


def init_db() -> None:
    bootstrap()
    database_url = get_config().DATABASE_URL
    try:
        command.upgrade(_alembic_config(database_url), "head")
    except Exception as exc:
        # Only local SQLite files are moved aside; a shared database must be migrated by hand.
        if _sqlite_file(database_url) is None:
            raise
        backup = _move_sqlite_file_aside(database_url)
        logger.warning(
            "database.sqlite.moved_aside",
            extra={
                "event": "database.sqlite.moved_aside",
                "backup_path": str(backup) if backup else None,
                "reason": str(exc),
            },
        )
        command.upgrade(_alembic_config(database_url), "head")

    Base.metadata.create_all(bind=db_module.get_engine())
    logger.info(
        "database.schema.ready",
        extra={"event": "database.schema.ready", "tables": sorted(Base.metadata.tables)},
    )


if __name__ == "__main__":
    init_db()
