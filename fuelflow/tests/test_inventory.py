"""Tests for products, tanks, stock movements and pumps."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fuelflow.app.core.exceptions import InsufficientStockError, ValidationError
from fuelflow.app.models.accounting import (
    MovementType,
    PriceHistory,
    Product,
    Pump,
    Station,
    StockMovement,
    Tank,
    TankStatus,
    User,
)
from fuelflow.app.services.inventory import apply_movement, derive_tank_status
from fuelflow.tests.conftest import auth


# ─── Products ────────────────────────────────────────────────────────────────


class TestProducts:
    def test_create_product_records_initial_price(
        self, client: TestClient, db: Session, manager_token: str
    ) -> None:
        resp = client.post(
            "/api/v1/products",
            json={"name": "Hi-Octane", "category": "fuel", "current_price": "305.00"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 201, resp.text
        product_id = resp.json()["id"]

        history = client.get(
            f"/api/v1/products/{product_id}/price-history", headers=auth(manager_token)
        ).json()
        assert len(history) == 1
        assert history[0]["old_price"] is None
        assert Decimal(history[0]["new_price"]) == Decimal("305.00")

    def test_cashier_cannot_create_product(self, client: TestClient, cashier_token: str) -> None:
        resp = client.post(
            "/api/v1/products",
            json={"name": "Petrol", "category": "fuel", "current_price": "1.00"},
            headers=auth(cashier_token),
        )
        assert resp.status_code == 403

    def test_price_change_writes_history(
        self, client: TestClient, db: Session, manager_token: str, petrol: Product
    ) -> None:
        resp = client.put(
            f"/api/v1/products/{petrol.id}",
            json={"current_price": "11.25", "price_change_reason": "OGRA notice"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 200
        assert Decimal(resp.json()["current_price"]) == Decimal("11.25")

        row = db.query(PriceHistory).filter(PriceHistory.product_id == petrol.id).one()
        assert row.old_price == Decimal("10.00")
        assert row.new_price == Decimal("11.25")
        assert row.reason == "OGRA notice"

    def test_rename_does_not_touch_history(
        self, client: TestClient, db: Session, manager_token: str, petrol: Product
    ) -> None:
        client.put(
            f"/api/v1/products/{petrol.id}", json={"name": "Super"}, headers=auth(manager_token)
        )
        assert db.query(PriceHistory).count() == 0

    def test_bulk_percentage_update(
        self,
        client: TestClient,
        manager_token: str,
        petrol: Product,
        diesel: Product,
    ) -> None:
        resp = client.post(
            "/api/v1/products/bulk-update",
            json={"update_type": "percentage", "value": "10"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 200, resp.text
        prices = {p["name"]: Decimal(p["current_price"]) for p in resp.json()}
        assert prices == {"Diesel": Decimal("13.75"), "Petrol": Decimal("11.00")}

    def test_bulk_fixed_update_rejects_negative(
        self, client: TestClient, db: Session, manager_token: str, petrol: Product
    ) -> None:
        resp = client.post(
            "/api/v1/products/bulk-update",
            json={"update_type": "fixed", "value": "-50", "product_ids": [str(petrol.id)]},
            headers=auth(manager_token),
        )
        assert resp.status_code == 400
        db.expire_all()
        assert db.get(Product, petrol.id).current_price == Decimal("10.00")

    def test_delete_deactivates(
        self, client: TestClient, db: Session, manager_token: str, petrol: Product
    ) -> None:
        resp = client.delete(f"/api/v1/products/{petrol.id}", headers=auth(manager_token))
        assert resp.status_code == 204
        active = client.get("/api/v1/products?active_only=true", headers=auth(manager_token)).json()
        assert active == []


# ─── Tanks ───────────────────────────────────────────────────────────────────


class TestTanks:
    def test_create_tank_with_opening_stock(
        self,
        client: TestClient,
        db: Session,
        manager_token: str,
        station: Station,
        petrol: Product,
    ) -> None:
        resp = client.post(
            "/api/v1/tanks",
            json={
                "station_id": str(station.id),
                "product_id": str(petrol.id),
                "name": "Tank A",
                "capacity": "5000",
                "minimum_level": "500",
                "opening_stock": "3000",
            },
            headers=auth(manager_token),
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert Decimal(data["current_stock"]) == Decimal("3000")
        assert data["status"] == "normal"
        assert db.query(StockMovement).filter(StockMovement.tank_id == UUID(data["id"])).count() == 1

    def test_opening_stock_above_capacity_rejected(
        self, client: TestClient, manager_token: str, station: Station, petrol: Product
    ) -> None:
        resp = client.post(
            "/api/v1/tanks",
            json={
                "station_id": str(station.id),
                "product_id": str(petrol.id),
                "name": "Tank A",
                "capacity": "100",
                "opening_stock": "150",
            },
            headers=auth(manager_token),
        )
        assert resp.status_code == 400

    def test_list_tanks_station_scoped(
        self,
        client: TestClient,
        cashier_token: str,
        outsider_token: str,
        station: Station,
        tank: Tank,
    ) -> None:
        resp = client.get(f"/api/v1/tanks/{station.id}", headers=auth(cashier_token))
        assert resp.status_code == 200
        assert [t["name"] for t in resp.json()] == ["Tank 1"]

        resp = client.get(f"/api/v1/tanks/{station.id}", headers=auth(outsider_token))
        assert resp.status_code == 403

    @pytest.mark.parametrize(
        ("stock", "expected"),
        [
            (Decimal("500"), TankStatus.NORMAL),
            (Decimal("100"), TankStatus.LOW),
            (Decimal("40"), TankStatus.CRITICAL),
        ],
    )
    def test_status_follows_minimum_level(
        self, tank: Tank, stock: Decimal, expected: TankStatus
    ) -> None:
        tank.minimum_level = Decimal("100")
        assert derive_tank_status(tank, stock) == expected


# ─── Stock movements ─────────────────────────────────────────────────────────


class TestStockMovements:
    def test_out_movement_keeps_arithmetic(
        self, db: Session, cashier_user: User, station: Station, tank: Tank
    ) -> None:
        movement = apply_movement(
            db,
            tank_id=tank.id,
            station_id=station.id,
            user_id=cashier_user.id,
            movement_type=MovementType.OUT,
            quantity=Decimal("30"),
        )
        db.commit()
        assert movement.previous_stock == Decimal("100.000")
        assert movement.new_stock == Decimal("70.000")
        db.expire_all()
        assert db.get(Tank, tank.id).current_stock == Decimal("70.000")

    def test_out_beyond_stock_raises(
        self, db: Session, cashier_user: User, station: Station, tank: Tank
    ) -> None:
        with pytest.raises(InsufficientStockError):
            apply_movement(
                db,
                tank_id=tank.id,
                station_id=station.id,
                user_id=cashier_user.id,
                movement_type=MovementType.OUT,
                quantity=Decimal("100.001"),
            )

    def test_in_beyond_capacity_raises(
        self, db: Session, cashier_user: User, station: Station, tank: Tank
    ) -> None:
        with pytest.raises(ValidationError):
            apply_movement(
                db,
                tank_id=tank.id,
                station_id=station.id,
                user_id=cashier_user.id,
                movement_type=MovementType.IN,
                quantity=Decimal("901"),
            )

    def test_wrong_station_raises(
        self, db: Session, cashier_user: User, other_station: Station, tank: Tank
    ) -> None:
        with pytest.raises(ValidationError):
            apply_movement(
                db,
                tank_id=tank.id,
                station_id=other_station.id,
                user_id=cashier_user.id,
                movement_type=MovementType.OUT,
                quantity=Decimal("1"),
            )

    def test_manual_adjustment_sets_counted_level(
        self, client: TestClient, db: Session, manager_token: str, tank: Tank
    ) -> None:
        resp = client.post(
            "/api/v1/stock-movements",
            json={"tank_id": str(tank.id), "movement_type": "adjustment", "quantity": "95.5"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert Decimal(data["previous_stock"]) == Decimal("100.000")
        assert Decimal(data["new_stock"]) == Decimal("95.500")
        assert Decimal(data["quantity"]) == Decimal("4.500")

    def test_manual_delivery_and_listing(
        self, client: TestClient, manager_token: str, tank: Tank
    ) -> None:
        resp = client.post(
            "/api/v1/stock-movements",
            json={"tank_id": str(tank.id), "movement_type": "in", "quantity": "400", "notes": "Tanker"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 201
        listed = client.get(f"/api/v1/stock-movements/{tank.id}", headers=auth(manager_token)).json()
        assert len(listed) == 1
        assert Decimal(listed[0]["new_stock"]) == Decimal("500.000")

    def test_manual_out_insufficient_returns_409(
        self, client: TestClient, manager_token: str, tank: Tank
    ) -> None:
        resp = client.post(
            "/api/v1/stock-movements",
            json={"tank_id": str(tank.id), "movement_type": "out", "quantity": "250"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "INSUFFICIENT_STOCK"


# ─── Pumps & readings ────────────────────────────────────────────────────────


class TestPumps:
    def _create_pump(self, client: TestClient, token: str, station: Station, tank: Tank) -> dict:
        resp = client.post(
            "/api/v1/pumps",
            json={
                "station_id": str(station.id),
                "name": "Pump 1",
                "pump_number": "1",
                "product_id": str(tank.product_id),
                "tank_id": str(tank.id),
            },
            headers=auth(token),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    def test_create_and_list(
        self, client: TestClient, manager_token: str, station: Station, tank: Tank
    ) -> None:
        self._create_pump(client, manager_token, station, tank)
        resp = client.get(f"/api/v1/pumps?station_id={station.id}", headers=auth(manager_token))
        assert [p["name"] for p in resp.json()] == ["Pump 1"]

    def test_tank_product_mismatch_rejected(
        self,
        client: TestClient,
        manager_token: str,
        station: Station,
        tank: Tank,
        diesel: Product,
    ) -> None:
        resp = client.post(
            "/api/v1/pumps",
            json={
                "station_id": str(station.id),
                "name": "Pump 9",
                "pump_number": "9",
                "product_id": str(diesel.id),
                "tank_id": str(tank.id),
            },
            headers=auth(manager_token),
        )
        assert resp.status_code == 400

    def test_reading_total_is_meter_difference(
        self,
        client: TestClient,
        cashier_token: str,
        manager_token: str,
        station: Station,
        tank: Tank,
    ) -> None:
        pump = self._create_pump(client, manager_token, station, tank)
        resp = client.post(
            "/api/v1/pump-readings",
            json={"pump_id": pump["id"], "opening_reading": "1000.5", "closing_reading": "1250.75"},
            headers=auth(cashier_token),
        )
        assert resp.status_code == 201, resp.text
        reading = resp.json()
        assert Decimal(reading["total_sale"]) == Decimal("250.25")
        assert reading["product_id"] == str(tank.product_id)

        detail = client.get(f"/api/v1/pump-readings/{reading['id']}", headers=auth(cashier_token))
        assert detail.status_code == 200
        listed = client.get("/api/v1/pump-readings", headers=auth(cashier_token)).json()
        assert len(listed) == 1

    def test_closing_below_opening_rejected(
        self,
        client: TestClient,
        manager_token: str,
        station: Station,
        tank: Tank,
    ) -> None:
        pump = self._create_pump(client, manager_token, station, tank)
        resp = client.post(
            "/api/v1/pump-readings",
            json={"pump_id": pump["id"], "opening_reading": "500", "closing_reading": "499"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 400

    def test_pump_with_readings_cannot_be_deleted(
        self,
        client: TestClient,
        db: Session,
        manager_token: str,
        station: Station,
        tank: Tank,
    ) -> None:
        pump = self._create_pump(client, manager_token, station, tank)
        client.post(
            "/api/v1/pump-readings",
            json={"pump_id": pump["id"], "opening_reading": "0", "closing_reading": "10"},
            headers=auth(manager_token),
        )
        resp = client.delete(f"/api/v1/pumps/{pump['id']}", headers=auth(manager_token))
        assert resp.status_code == 409
        assert db.query(Pump).count() == 1

    def test_delete_unused_pump(
        self, client: TestClient, db: Session, manager_token: str, station: Station, tank: Tank
    ) -> None:
        pump = self._create_pump(client, manager_token, station, tank)
        resp = client.delete(f"/api/v1/pumps/{pump['id']}", headers=auth(manager_token))
        assert resp.status_code == 204
        assert db.query(Pump).count() == 0
