"""
Shared fixtures: in-memory database, seeded users/buses and auth headers.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from busfleet.core.security import get_password_hash
from busfleet.db.base import Base
from busfleet.db.session import get_db
from busfleet.main import create_app
from busfleet.models import Bus, BusExpense, Route, User, UserRole
import busfleet.models  # noqa: F401

ADMIN_PASSWORD = "admin-pass-123"
WORKER_PASSWORD = "worker-pass-123"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def app(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    application = create_app()
    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def make_user(db, full_name, national_id, password, role=UserRole.WORKER, is_active=True):
    user = User(
        full_name=full_name,
        national_id=national_id,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin(db):
    return make_user(db, "Ana Admin", "1000", ADMIN_PASSWORD, role=UserRole.ADMIN)


@pytest.fixture()
def worker(db):
    return make_user(db, "Walter Worker", "2000", WORKER_PASSWORD)


@pytest.fixture()
def partner(db):
    return make_user(db, "Paula Partner", "3000", "partner-pass-123")


@pytest.fixture()
def bus(db):
    bus = Bus(internal_code="B-01", plate_number="ABC123", monthly_target=Decimal("5000.00"))
    db.add(bus)
    db.commit()
    db.refresh(bus)
    return bus


def login(client, national_id, password):
    response = client.post(
        "/api/auth/login",
        json={"national_id": national_id, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["access_token"]


@pytest.fixture()
def admin_headers(client, admin):
    return {"Authorization": f"Bearer {login(client, admin.national_id, ADMIN_PASSWORD)}"}


@pytest.fixture()
def worker_headers(client, worker):
    return {"Authorization": f"Bearer {login(client, worker.national_id, WORKER_PASSWORD)}"}


def add_route(db, bus, worker, route_date, total_income, total_expenses, net_income=None):
    """Insert a route row directly; net_income may be set inconsistently on purpose."""
    total_income = Decimal(total_income)
    total_expenses = Decimal(total_expenses)
    route = Route(
        bus_id=bus.id,
        worker_id=worker.id,
        route_name="Centro - Terminal",
        route_date=route_date,
        total_income=total_income,
        total_expenses=total_expenses,
        net_income=Decimal(net_income) if net_income is not None else total_income - total_expenses,
    )
    db.add(route)
    db.commit()
    return route


def add_bus_expense(db, bus, expense_date, amount):
    expense = BusExpense(bus_id=bus.id, expense_date=expense_date, amount=Decimal(amount))
    db.add(expense)
    db.commit()
    return expense

