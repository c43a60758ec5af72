import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Must be set before app.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.api.deps import get_current_admin_user
from app.models.user import User
from app.models.tenant import Tenant
from app.models.tour import Tour, TourOption, TourAddOn
from app.models.special_offer import SpecialOffer, OfferType

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TENANT = "acme"


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def admin(db):
    user = User(
        email="admin@acme.test",
        password_hash="not-used",
        full_name="Ada Admin",
        role="admin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def client(db, admin):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_admin_user] = lambda: admin
    # Not used as a context manager: the lifespan would bootstrap PostgreSQL
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def tenant(db):
    t = Tenant(tenant_id=TENANT, name="Acme Tours", currency="USD")
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


@pytest.fixture()
def tour(db, tenant):
    t = Tour(
        tenant_id=TENANT,
        title="Desert Safari",
        slug="desert-safari",
        price=Decimal("100.00"),
        is_active=True,
    )
    t.options = [
        TourOption(type="shared-tour", label="Shared Tour", price=Decimal("100.00"), display_order=0),
        TourOption(type="private-tour", label="Private Tour", price=Decimal("250.00"), display_order=1),
    ]
    t.add_ons = [
        TourAddOn(name="Dinner", price=Decimal("20.00"), per_guest=True),
        TourAddOn(name="Photo package", price=Decimal("35.00"), per_guest=False),
    ]
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


@pytest.fixture()
def make_offer(db, tenant):
    def _make(**fields):
        now = datetime.now(timezone.utc)
        values = dict(
            tenant_id=TENANT,
            name="Offer",
            type=OfferType.percentage,
            discount_value=Decimal("10"),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=30),
            applicable_tours=[],
            tour_option_selections=[],
            excluded_tours=[],
            terms=[],
            used_count=0,
            is_active=True,
            priority=0,
        )
        values.update(fields)
        offer = SpecialOffer(**values)
        db.add(offer)
        db.commit()
        db.refresh(offer)
        return offer

    return _make
