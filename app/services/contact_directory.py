"""Contact lookups consulted by the quote engine."""

from __future__ import annotations

from app.models import Contact
from app.services.base_service import BaseService


class ContactDirectory(BaseService):
    def find_by_id(self, contact_id: str, organization_id: str) -> Contact | None:
        return (
            self.db.query(Contact)
            .filter(
                Contact.id == contact_id,
                Contact.organization_id == organization_id,
                Contact.deleted_at.is_(None),
            )
            .first()
        )
