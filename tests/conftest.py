"""Shared fixtures: a throwaway SQLite database per test and a TestClient bound to it."""

import os
from decimal import Decimal
from pathlib import Path
from typing import Iterator

# Settings are read once at import time; pin a safe environment first.
os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_bootstrap.db")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("CHEF_WHATSAPP_NUMBER", "+919800000000")
os.environ.setdefault("MOCK_NOTIFICATION_FAILURE_RATE", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from app import database
from app.database import get_db
from app.main import app
from app.models import MenuItem, RestaurantTable
from app.services.notifications import reset_kitchen_notifier
from app.services.rate_limit import reset_rate_limiter


MENU = [
    ("Butter Naan", "breads", Decimal("60"), True),
    ("Paneer Tikka", "starters", Decimal("249.50"), True),
    ("Dal Makhani", "mains", Decimal("220"), True),
    ("Mango Lassi", "drinks", Decimal("90"), False),
]

TABLES = [
    (7, True),
    (12, False),
]


def _build_sync_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def seed_catalog(session: Session) -> None:
    for name, category, price, available in MENU:
        session.add(MenuItem(name=name, category=category, price=price, is_available=available))
    for number, active in TABLES:
        session.add(RestaurantTable(table_number=number, is_active=active))
    session.commit()


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    return tmp_path / "orders.db"


@pytest.fixture
def client(db_file: Path, monkeypatch) -> Iterator[TestClient]:
    """TestClient whose sessions, and startup ``init_db``, use the per-test database."""
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    session_maker = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "engine", async_engine)

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limiter()
    reset_kitchen_notifier()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_rate_limiter()
    reset_kitchen_notifier()


@pytest.fixture
def db_session(client: TestClient, db_file: Path) -> Iterator[Session]:
    """Sync session on the same file, seeded with the test menu and tables."""
    engine = _build_sync_engine(db_file)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_catalog(session)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def build_order_payload(**overrides) -> dict:
    """Consistent takeaway checkout: 2 x Butter Naan at 60, tax 6, total 126."""
    payload = {
        "phone": "+919876543210",
        "deliveryType": "takeaway",
        "items": [{"name": "Butter Naan", "price": 60, "quantity": 2}],
        "subtotal": 120,
        "tax": 6,
        "deliveryFee": 0,
        "total": 126,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def order_payload():
    return build_order_payload


@pytest.fixture
def make_order(client: TestClient, db_session: Session):
    """Place a valid order through the API and return its ``order`` body."""

    def _make(**overrides) -> dict:
        response = client.post("/api/orders", json=build_order_payload(**overrides))
        assert response.status_code == 200, response.text
        return response.json()["order"]

    return _make
