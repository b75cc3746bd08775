"""Background wrappers around the quote expiry sweep.

No beat schedule is installed here; deployments that want periodic expiry add
``quotes.expire_overdue`` to their own ``beat_schedule``.
"""

from __future__ import annotations

import logging
from typing import Any

from app.core.enums import QUOTE_EXPIRABLE_STATUSES
from app.database.db import get_db_session
from app.models import Quote
from app.services.quote_service import QuoteService
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _organizations_with_open_quotes(session) -> list[str]:
    rows = (
        session.query(Quote.organization_id)
        .filter(Quote.deleted_at.is_(None), Quote.status.in_(list(QUOTE_EXPIRABLE_STATUSES)))
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def sweep_expired_quotes(organization_id: str | None = None, session=None) -> dict[str, Any]:
    """Expire overdue quotes for one organization, or for every organization when none is given."""
    if session is None:
        with get_db_session() as owned:
            return sweep_expired_quotes(organization_id, session=owned)

    service = QuoteService(db=session)
    organizations = [organization_id] if organization_id else _organizations_with_open_quotes(session)
    expired = {org: service.expire_overdue(org) for org in organizations}
    return {"status": "ok", "expired": expired, "total": sum(expired.values())}


@celery_app.task(bind=True, name="quotes.expire_overdue")
def expire_overdue_quotes(self, organization_id: str | None = None) -> dict[str, Any]:
    try:
        result = sweep_expired_quotes(organization_id)
    except Exception:
        logger.exception(
            "quote_task.expire_failed",
            extra={"event": "quote_task.expire_failed", "organization_id": organization_id},
        )
        raise
    logger.info(
        "quote_task.expire_finished",
        extra={"event": "quote_task.expire_finished", "organization_id": organization_id, "count": result["total"]},
    )
    return result
