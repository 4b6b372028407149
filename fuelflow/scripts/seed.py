"""Seed a demo station: users, products, tanks, pumps, parties and accounts.

Usage:
    python -m fuelflow.scripts.seed

Safe to re-run; rows that already exist (matched by name) are left alone.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from fuelflow.app.core.database import Base, SessionLocal, engine
from fuelflow.app.core.security import get_password_hash
import fuelflow.app.models.accounting  # noqa: F401
from fuelflow.app.models.customer import Customer, CustomerType
from fuelflow.app.models.inventory import Product, ProductCategory, Pump, Tank
from fuelflow.app.models.station import Station, StationSettings
from fuelflow.app.models.supplier import Supplier
from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.services.accounts import seed_chart_of_accounts

STATION_NAME = "FuelFlow Demo Station"

PRODUCTS: list[tuple[str, ProductCategory, Decimal]] = [
    ("Petrol", ProductCategory.FUEL, Decimal("272.89")),
    ("Diesel", ProductCategory.FUEL, Decimal("283.63")),
    ("Hi-Octane", ProductCategory.FUEL, Decimal("305.00")),
    ("Engine Oil 4L", ProductCategory.LUBRICANT, Decimal("4500.00")),
]

# (tank name, product name, capacity, opening stock, minimum level)
TANKS: list[tuple[str, str, Decimal, Decimal, Decimal]] = [
    ("Tank 1 - Petrol", "Petrol", Decimal("20000"), Decimal("12000"), Decimal("2000")),
    ("Tank 2 - Diesel", "Diesel", Decimal("25000"), Decimal("15000"), Decimal("2500")),
    ("Tank 3 - Hi-Octane", "Hi-Octane", Decimal("10000"), Decimal("4000"), Decimal("1000")),
]

USERS: list[tuple[str, str, RoleEnum]] = [
    ("admin", "Admin@1234", RoleEnum.ADMIN),
    ("manager", "Manager@1234", RoleEnum.MANAGER),
    ("cashier", "Cashier@1234", RoleEnum.CASHIER),
]


def _get_or_add(db: Session, model, name: str, **values):
    row = db.query(model).filter(model.name == name).first()
    if row is None:
        row = model(name=name, **values)
        db.add(row)
        db.flush()
    return row


def seed(db: Session) -> Station:
    station = _get_or_add(db, Station, STATION_NAME, address="GT Road, Lahore")
    if station.settings is None:
        db.add(StationSettings(station_id=station.id, company_name=STATION_NAME))

    for username, password, role in USERS:
        if db.query(User).filter(User.username == username).first() is None:
            db.add(
                User(
                    username=username,
                    hashed_password=get_password_hash(password),
                    role=role,
                    station_id=None if role == RoleEnum.ADMIN else station.id,
                    is_active=True,
                )
            )

    products = {
        name: _get_or_add(db, Product, name, category=category, current_price=price)
        for name, category, price in PRODUCTS
    }

    for pump_no, (name, product_name, capacity, stock, minimum) in enumerate(TANKS, start=1):
        tank = _get_or_add(
            db,
            Tank,
            name,
            station_id=station.id,
            product_id=products[product_name].id,
            capacity=capacity,
            current_stock=stock,
            minimum_level=minimum,
        )
        _get_or_add(
            db,
            Pump,
            f"Pump {pump_no}",
            station_id=station.id,
            product_id=tank.product_id,
            tank_id=tank.id,
            pump_number=str(pump_no),
        )

    _get_or_add(db, Customer, "Walk-in Customer", customer_type=CustomerType.WALK_IN)
    _get_or_add(
        db,
        Customer,
        "City Transport Co.",
        customer_type=CustomerType.FLEET,
        credit_limit=Decimal("500000"),
    )
    _get_or_add(db, Supplier, "National Oil Supply", payment_terms="Net 30")

    seed_chart_of_accounts(db, station.id, station.default_currency or "PKR")
    return station


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        station = seed(db)
        db.commit()
        print(f"Seeded station {station.name} ({station.id})")
        for username, password, role in USERS:
            print(f"  {role.value:<8} {username} / {password}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
