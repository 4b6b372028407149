"""Shared test fixtures.

Every test gets its own in-memory SQLite database, so services can commit
freely and tests never see each other's rows.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import fuelflow.app.models.accounting  # noqa: F401
from fuelflow.app.api.v1.endpoints.auth import login_limiter
from fuelflow.app.core.database import Base, get_db
from fuelflow.app.core.security import create_access_token, get_password_hash
from fuelflow.app.main import app
from fuelflow.app.models.customer import Customer, CustomerType
from fuelflow.app.models.inventory import Product, ProductCategory, Tank
from fuelflow.app.models.station import Station
from fuelflow.app.models.supplier import Supplier
from fuelflow.app.models.user import RoleEnum, User

PASSWORD = "Secret123"


# ─── Database ────────────────────────────────────────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the per-test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_login_limiter() -> Generator[None, None, None]:
    login_limiter.reset()
    yield
    login_limiter.reset()


# ─── Stations ────────────────────────────────────────────────────────────────


@pytest.fixture()
def station(db: Session) -> Station:
    s = Station(name="Test Station", address="Main Boulevard")
    db.add(s)
    db.commit()
    return s


@pytest.fixture()
def other_station(db: Session) -> Station:
    s = Station(name="Other Station")
    db.add(s)
    db.commit()
    return s


# ─── Users & tokens ──────────────────────────────────────────────────────────


def _make_user(
    db: Session, username: str, role: RoleEnum, station: Station | None
) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        station_id=station.id if station else None,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def admin_user(db: Session) -> User:
    return _make_user(db, "test_admin", RoleEnum.ADMIN, None)


@pytest.fixture()
def manager_user(db: Session, station: Station) -> User:
    return _make_user(db, "test_manager", RoleEnum.MANAGER, station)


@pytest.fixture()
def cashier_user(db: Session, station: Station) -> User:
    return _make_user(db, "test_cashier", RoleEnum.CASHIER, station)


@pytest.fixture()
def outsider_user(db: Session, other_station: Station) -> User:
    """A cashier from a different station."""
    return _make_user(db, "other_cashier", RoleEnum.CASHIER, other_station)


@pytest.fixture()
def admin_token(admin_user: User) -> str:
    return create_access_token(subject=str(admin_user.id))


@pytest.fixture()
def manager_token(manager_user: User) -> str:
    return create_access_token(subject=str(manager_user.id))


@pytest.fixture()
def cashier_token(cashier_user: User) -> str:
    return create_access_token(subject=str(cashier_user.id))


@pytest.fixture()
def outsider_token(outsider_user: User) -> str:
    return create_access_token(subject=str(outsider_user.id))


def auth(token: str) -> dict[str, str]:
    """Return Authorization header dict."""
    return {"Authorization": f"Bearer {token}"}


# ─── Inventory ───────────────────────────────────────────────────────────────


@pytest.fixture()
def petrol(db: Session) -> Product:
    p = Product(
        name="Petrol",
        category=ProductCategory.FUEL,
        unit="litre",
        current_price=Decimal("10.00"),
    )
    db.add(p)
    db.commit()
    return p


@pytest.fixture()
def diesel(db: Session) -> Product:
    p = Product(
        name="Diesel",
        category=ProductCategory.FUEL,
        unit="litre",
        current_price=Decimal("12.50"),
    )
    db.add(p)
    db.commit()
    return p


@pytest.fixture()
def tank(db: Session, station: Station, petrol: Product) -> Tank:
    """Petrol tank holding 100 of 1000 litres."""
    t = Tank(
        station_id=station.id,
        product_id=petrol.id,
        name="Tank 1",
        capacity=Decimal("1000.000"),
        current_stock=Decimal("100.000"),
        minimum_level=Decimal("20.000"),
    )
    db.add(t)
    db.commit()
    return t


@pytest.fixture()
def diesel_tank(db: Session, station: Station, diesel: Product) -> Tank:
    t = Tank(
        station_id=station.id,
        product_id=diesel.id,
        name="Tank 2",
        capacity=Decimal("2000.000"),
        current_stock=Decimal("500.000"),
        minimum_level=Decimal("100.000"),
    )
    db.add(t)
    db.commit()
    return t


# ─── Parties ─────────────────────────────────────────────────────────────────


@pytest.fixture()
def customer(db: Session) -> Customer:
    c = Customer(
        name="Fleet Customer",
        customer_type=CustomerType.CREDIT,
        credit_limit=Decimal("10000.00"),
    )
    db.add(c)
    db.commit()
    return c


@pytest.fixture()
def supplier(db: Session) -> Supplier:
    s = Supplier(name="Test Oil Supplier", payment_terms="Net 30")
    db.add(s)
    db.commit()
    return s


# ─── Payload helpers ─────────────────────────────────────────────────────────


def sale_payload(
    station_id,
    product_id,
    tank_id=None,
    *,
    quantity: str = "10.000",
    unit_price: str = "10.00",
    payment_method: str = "cash",
    customer_id=None,
    paid: str | None = None,
    tax: str = "0.00",
) -> dict:
    """Build a camelCase sale body for a single item whose totals add up."""
    subtotal = (Decimal(quantity) * Decimal(unit_price)).quantize(Decimal("0.01"))
    total = subtotal + Decimal(tax)
    paid_amount = Decimal(paid) if paid is not None else (
        Decimal("0") if payment_method == "credit" else total
    )
    body = {
        "transaction": {
            "stationId": str(station_id),
            "paymentMethod": payment_method,
            "subtotal": str(subtotal),
            "taxAmount": tax,
            "totalAmount": str(total),
            "paidAmount": str(paid_amount),
            "outstandingAmount": str(total - paid_amount),
        },
        "items": [
            {
                "productId": str(product_id),
                "tankId": str(tank_id) if tank_id else None,
                "quantity": quantity,
                "unitPrice": unit_price,
            }
        ],
    }
    if customer_id is not None:
        body["transaction"]["customerId"] = str(customer_id)
    return body
