from __future__ import annotations

from datetime import date, datetime, timezone
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from purchase_tracking.database import Base
from purchase_tracking.models import Job, PurchaseTracking
from purchase_tracking.use_cases.purchase_reconciliation import PurchaseUseCaseHooks

FIXED_NOW = datetime(2026, 2, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine(tmp_path):
    # File-backed so separate sessions behave like separate operators.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'purchasing.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def hooks() -> PurchaseUseCaseHooks:
    return PurchaseUseCaseHooks(now_utc=lambda: FIXED_NOW, journal_timezone="UTC")


@pytest.fixture()
def ticking_hooks() -> PurchaseUseCaseHooks:
    minutes = count()
    return PurchaseUseCaseHooks(
        now_utc=lambda: FIXED_NOW.replace(minute=next(minutes) % 60),
        journal_timezone="UTC",
    )


@pytest.fixture()
def make_tracking(db):
    numbers = count(1001)

    def _make(*, client_name: str = "Hendricks Kitchen", ship_schedule: date | None = date(2026, 3, 2)):
        job = Job(job_number=f"J-{next(numbers)}", client_name=client_name, ship_schedule=ship_schedule)
        db.add(job)
        db.flush()
        tracking = PurchaseTracking(job_id=job.id)
        db.add(tracking)
        db.commit()
        return tracking.id

    return _make


@pytest.fixture()
def tracking_id(make_tracking):
    return make_tracking()
