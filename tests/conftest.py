"""
Pytest fixtures for the Easy Ops test suite.

Provides:
- An in-memory SQLite database per test (StaticPool, foreign keys on)
- A FastAPI TestClient with the database and auth dependencies overridden
- Square webhook settings (payload signing lives in tests/helpers.py)
- Item/location factories and a stock helper that goes through the engine
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from easy_ops.core.config import settings
from easy_ops.core.database import Base, build_engine, get_db
from easy_ops.core.auth_dependencies import get_current_account
from easy_ops.models import Item, Location
from easy_ops.services.reconciliation import ReconciliationService, Receive

from tests.helpers import MANAGER, WEBHOOK_SECRET, PAYMENT_URL, ORDER_URL


# ================================
# DATABASE
# ================================
@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


# ================================
# HTTP
# ================================
@pytest.fixture
def actor_holder():
    """Mutable slot so a test can switch the authenticated actor"""
    return {"actor": MANAGER}


@pytest.fixture
def client(db, actor_holder):
    from easy_ops.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_account] = lambda: actor_holder["actor"]
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ================================
# SETTINGS
# ================================
@pytest.fixture
def square_settings(monkeypatch):
    monkeypatch.setattr(settings, "SQUARE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "SQUARE_SANDBOX_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "SQUARE_WEBHOOK_SANDBOX_MODE", False)
    monkeypatch.setattr(settings, "SQUARE_ORDER_SIGNATURE_SCHEME", "body")
    monkeypatch.setattr(settings, "SQUARE_PAYMENT_SIGNATURE_SCHEME", "url_body")
    monkeypatch.setattr(settings, "SQUARE_WEBHOOK_URL", PAYMENT_URL)
    monkeypatch.setattr(settings, "SQUARE_ORDER_WEBHOOK_URL", ORDER_URL)
    monkeypatch.setattr(settings, "SQUARE_ACCESS_TOKEN", "test-access-token")
    return settings


# ================================
# FACTORIES
# ================================
@pytest.fixture
def make_location(db):
    def _make(name: str = "Stock Room", is_default: bool = False) -> Location:
        location = Location(name=name, is_default=is_default)
        db.add(location)
        db.commit()
        db.refresh(location)
        return location
    return _make


@pytest.fixture
def make_item(db):
    counter = {"n": 0}

    def _make(name: str = None, **fields) -> Item:
        counter["n"] += 1
        data = {
            "name": name or f"Item {counter['n']}",
            "category": "Supplies",
            "unit_of_measure": "unit",
            "cost_per_unit": Decimal("2.50"),
            "alert_threshold": Decimal("0"),
            "barcode_number": f"100000000{counter['n']}",
            "stock_quantity": Decimal("0"),
            "is_auto_deduct": False,
        }
        data.update(fields)
        item = Item(**data)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    return _make


@pytest.fixture
def stock(db):
    """Receive stock through the engine so the ledger agrees with it"""
    def _stock(item: Item, location: Location, quantity) -> None:
        ReconciliationService.apply_movement(
            db,
            Receive(item_id=item.id, location_id=location.id, quantity=Decimal(str(quantity)), user_id=MANAGER.user_id),
            MANAGER
        )
    return _stock
