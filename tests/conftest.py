from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.models import Base, Contact
from app.services.email_sender import DispatchResult

ORG_ID = "org-alpha"
OTHER_ORG_ID = "org-beta"
FIXED_NOW = datetime(2026, 3, 2, 9, 30, 0)


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


class FakeDispatcher:
    def __init__(self, result: DispatchResult | None = None, error: Exception | None = None) -> None:
        self.result = result or DispatchResult(success=True)
        self.error = error
        self.sent: list[dict] = []

    def send(self, document, recipient, cc=None, attachment=None) -> DispatchResult:
        if self.error is not None:
            raise self.error
        self.sent.append({"document": document, "recipient": recipient, "cc": cc, "attachment": attachment})
        return self.result


def _build_session():
    engine = create_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return TestingSessionLocal()


@pytest.fixture
def session():
    db = _build_session()
    yield db
    db.close()


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def contact(session):
    row = Contact(
        organization_id=ORG_ID,
        first_name="Dana",
        last_name="Whitfield",
        email="dana@example.com",
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


@pytest.fixture
def dispatcher_factory():
    return FakeDispatcher
