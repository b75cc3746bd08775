"""SQLAlchemy model package for the organization-scoped sales schema."""

from app.models.base import Base
from app.models.contact import Contact
from app.models.deal import Deal
from app.models.quote import Quote

__all__ = [
    "Base",
    "Contact",
    "Deal",
    "Quote",
]
