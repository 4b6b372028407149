"""Tests for sale recording, editing and deletion."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fuelflow.app.core.exceptions import InsufficientStockError, ValidationError
from fuelflow.app.models.accounting import (
    AuditLog,
    Customer,
    MovementType,
    Product,
    SalesTransaction,
    SalesTransactionItem,
    Station,
    StockMovement,
    Tank,
    User,
)
from fuelflow.app.schemas.sales import SaleHeaderCreate, SaleItemCreate
from fuelflow.app.services import sales as sales_service
from fuelflow.tests.conftest import auth, sale_payload


def _stock(db: Session, tank: Tank) -> Decimal:
    db.expire_all()
    return db.get(Tank, tank.id).current_stock


def _outstanding(db: Session, customer: Customer) -> Decimal:
    db.expire_all()
    return db.get(Customer, customer.id).outstanding_amount


class TestRecordSale:
    def test_credit_sale_end_to_end(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
        customer: Customer,
    ) -> None:
        body = {
            "transaction": {
                "stationId": str(station.id),
                "customerId": str(customer.id),
                "paymentMethod": "credit",
                "subtotal": "100.00",
                "taxAmount": "0.00",
                "totalAmount": "100.00",
                "paidAmount": "0.00",
                "outstandingAmount": "100.00",
            },
            "items": [
                {
                    "productId": str(petrol.id),
                    "tankId": str(tank.id),
                    "quantity": "10.000",
                    "unitPrice": "10.00",
                }
            ],
        }
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 201, resp.text
        data = resp.json()

        assert data["transaction"]["invoice_number"].startswith("SAL")
        assert len(data["items"]) == 1
        assert Decimal(data["items"][0]["total_price"]) == Decimal("100.00")

        movements = db.query(StockMovement).filter(StockMovement.tank_id == tank.id).all()
        assert len(movements) == 1
        assert movements[0].movement_type == MovementType.OUT
        assert movements[0].quantity == Decimal("10.000")
        assert _stock(db, tank) == Decimal("90.000")
        assert _outstanding(db, customer) == Decimal("100.00")

    def test_cash_sale_leaves_customer_balance_alone(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
        customer: Customer,
    ) -> None:
        body = sale_payload(station.id, petrol.id, tank.id, customer_id=customer.id)
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 201
        assert _outstanding(db, customer) == Decimal("0")

    def test_partial_credit_sale_adds_only_outstanding(
        self,
        db: Session,
        cashier_user: User,
        station: Station,
        petrol: Product,
        tank: Tank,
        customer: Customer,
    ) -> None:
        header = SaleHeaderCreate(
            station_id=station.id,
            customer_id=customer.id,
            payment_method="credit",
            subtotal=Decimal("50.00"),
            total_amount=Decimal("50.00"),
            paid_amount=Decimal("20.00"),
            outstanding_amount=Decimal("30.00"),
        )
        items = [SaleItemCreate(product_id=petrol.id, tank_id=tank.id, quantity=Decimal("5"), unit_price=Decimal("10"))]
        sales_service.record_sale(db, header, items, cashier_user.id)
        assert _outstanding(db, customer) == Decimal("30.00")

    def test_every_tank_item_gets_one_consistent_movement(
        self,
        db: Session,
        cashier_user: User,
        station: Station,
        petrol: Product,
        diesel: Product,
        tank: Tank,
        diesel_tank: Tank,
    ) -> None:
        header = SaleHeaderCreate(
            station_id=station.id,
            payment_method="cash",
            subtotal=Decimal("162.50"),
            total_amount=Decimal("162.50"),
            paid_amount=Decimal("162.50"),
        )
        items = [
            SaleItemCreate(product_id=petrol.id, tank_id=tank.id, quantity=Decimal("10"), unit_price=Decimal("10.00")),
            SaleItemCreate(product_id=diesel.id, tank_id=diesel_tank.id, quantity=Decimal("5"), unit_price=Decimal("12.50")),
        ]
        sale, created = sales_service.record_sale(db, header, items, cashier_user.id)
        assert len(created) == 2

        movements = sales_service.sale_movements(db, sale.id)
        assert len(movements) == 2
        for movement in movements:
            assert movement.previous_stock - movement.quantity == movement.new_stock
            assert db.get(Tank, movement.tank_id).current_stock == movement.new_stock

    def test_item_without_tank_moves_no_stock(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        body = sale_payload(station.id, petrol.id, None)
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 201
        assert db.query(StockMovement).count() == 0
        assert _stock(db, tank) == Decimal("100.000")

    def test_snake_case_body_is_accepted(
        self,
        client: TestClient,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        body = {
            "transaction": {
                "station_id": str(station.id),
                "payment_method": "card",
                "subtotal": "20.00",
                "tax_amount": "0.00",
                "total_amount": "20.00",
                "paid_amount": "20.00",
            },
            "items": [
                {
                    "product_id": str(petrol.id),
                    "tank_id": str(tank.id),
                    "quantity": "2",
                    "unit_price": "10.00",
                }
            ],
        }
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 201, resp.text
        assert resp.json()["transaction"]["payment_method"] == "card"

    def test_sale_is_audited(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        body = sale_payload(station.id, petrol.id, tank.id)
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        sale_id = resp.json()["transaction"]["id"]
        log = db.query(AuditLog).filter(AuditLog.action == "SALE_RECORDED").one()
        assert log.record_id == sale_id


class TestRejectedSales:
    def test_zero_items_rejected(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        body["items"] = []
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"
        assert db.query(SalesTransaction).count() == 0

    def test_paid_above_total_rejected(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        body = sale_payload(station.id, petrol.id, tank.id, paid="150.00")
        body["transaction"]["outstandingAmount"] = "0.00"
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400
        fields = [e["field"] for e in resp.json()["errors"]]
        assert "transaction.paid_amount" in fields
        assert _stock(db, tank) == Decimal("100.000")

    def test_total_must_equal_subtotal_plus_tax(
        self,
        client: TestClient,
        cashier_token: str,
        station: Station,
        petrol: Product,
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        body["transaction"]["totalAmount"] = "99.00"
        body["transaction"]["paidAmount"] = "99.00"
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400

    def test_credit_outstanding_must_match(
        self, db: Session, cashier_user: User, station: Station, petrol: Product
    ) -> None:
        header = SaleHeaderCreate(
            station_id=station.id,
            payment_method="credit",
            subtotal=Decimal("100"),
            total_amount=Decimal("100"),
            paid_amount=Decimal("0"),
            outstanding_amount=Decimal("40"),
        )
        items = [SaleItemCreate(product_id=petrol.id, quantity=Decimal("10"), unit_price=Decimal("10"))]
        with pytest.raises(ValidationError):
            sales_service.record_sale(db, header, items, cashier_user.id)

    def test_unknown_product_rejected(
        self, client: TestClient, cashier_token: str, station: Station
    ) -> None:
        body = sale_payload(station.id, uuid4())
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "items.0.product_id"

    def test_non_positive_quantity_rejected(
        self, client: TestClient, cashier_token: str, station: Station, petrol: Product
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        body["items"][0]["quantity"] = "0"
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400

    def test_insufficient_stock_rolls_back_everything(
        self,
        db: Session,
        cashier_user: User,
        station: Station,
        petrol: Product,
        diesel: Product,
        tank: Tank,
        diesel_tank: Tank,
        customer: Customer,
    ) -> None:
        header = SaleHeaderCreate(
            station_id=station.id,
            customer_id=customer.id,
            payment_method="credit",
            subtotal=Decimal("1562.50"),
            total_amount=Decimal("1562.50"),
            outstanding_amount=Decimal("1562.50"),
        )
        items = [
            SaleItemCreate(product_id=diesel.id, tank_id=diesel_tank.id, quantity=Decimal("25"), unit_price=Decimal("12.50")),
            SaleItemCreate(product_id=petrol.id, tank_id=tank.id, quantity=Decimal("125"), unit_price=Decimal("10.00")),
        ]
        with pytest.raises(InsufficientStockError):
            sales_service.record_sale(db, header, items, cashier_user.id)

        assert db.query(SalesTransaction).count() == 0
        assert db.query(SalesTransactionItem).count() == 0
        assert db.query(StockMovement).count() == 0
        assert _stock(db, diesel_tank) == Decimal("500.000")
        assert _outstanding(db, customer) == Decimal("0")

    def test_tank_of_other_product_rejected(
        self,
        client: TestClient,
        cashier_token: str,
        station: Station,
        diesel: Product,
        tank: Tank,
    ) -> None:
        body = sale_payload(station.id, diesel.id, tank.id)
        resp = client.post("/api/v1/sales", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400

    def test_other_station_rejected(
        self,
        client: TestClient,
        outsider_token: str,
        station: Station,
        petrol: Product,
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        resp = client.post("/api/v1/sales", json=body, headers=auth(outsider_token))
        assert resp.status_code == 403

    def test_requires_token(self, client: TestClient, station: Station, petrol: Product) -> None:
        resp = client.post("/api/v1/sales", json=sale_payload(station.id, petrol.id))
        assert resp.status_code == 401


class TestEditSale:
    def test_edit_round_trip_restores_state(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
        customer: Customer,
    ) -> None:
        original = sale_payload(
            station.id, petrol.id, tank.id, payment_method="credit", customer_id=customer.id
        )
        resp = client.post("/api/v1/sales", json=original, headers=auth(cashier_token))
        sale_id = resp.json()["transaction"]["id"]
        assert _stock(db, tank) == Decimal("90.000")

        bigger = sale_payload(
            station.id, petrol.id, tank.id,
            quantity="25.000", payment_method="credit", customer_id=customer.id,
        )
        resp = client.put(f"/api/v1/sales/{sale_id}", json=bigger, headers=auth(cashier_token))
        assert resp.status_code == 200, resp.text
        assert _stock(db, tank) == Decimal("75.000")
        assert _outstanding(db, customer) == Decimal("250.00")
        assert Decimal(resp.json()["items"][0]["quantity"]) == Decimal("25.000")

        resp = client.put(f"/api/v1/sales/{sale_id}", json=original, headers=auth(cashier_token))
        assert resp.status_code == 200
        assert _stock(db, tank) == Decimal("90.000")
        assert _outstanding(db, customer) == Decimal("100.00")
        assert db.query(SalesTransactionItem).count() == 1

    def test_edit_never_rewrites_movements(
        self,
        db: Session,
        cashier_user: User,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        header = SaleHeaderCreate(
            station_id=station.id,
            payment_method="cash",
            subtotal=Decimal("100.00"),
            total_amount=Decimal("100.00"),
            paid_amount=Decimal("100.00"),
        )
        items = [SaleItemCreate(product_id=petrol.id, tank_id=tank.id, quantity=Decimal("10"), unit_price=Decimal("10"))]
        sale, _ = sales_service.record_sale(db, header, items, cashier_user.id)
        first = sales_service.sale_movements(db, sale.id)[0]

        sales_service.update_sale(db, sale.id, header, items, cashier_user.id)

        movements = sales_service.sale_movements(db, sale.id)
        assert [m.movement_type for m in movements] == [
            MovementType.OUT, MovementType.IN, MovementType.OUT,
        ]
        assert movements[0].id == first.id
        assert movements[0].new_stock == Decimal("90.000")

    def test_edit_to_zero_items_rejected(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        body = sale_payload(station.id, petrol.id, tank.id)
        sale_id = client.post("/api/v1/sales", json=body, headers=auth(cashier_token)).json()["transaction"]["id"]
        body["items"] = []
        resp = client.put(f"/api/v1/sales/{sale_id}", json=body, headers=auth(cashier_token))
        assert resp.status_code == 400
        assert _stock(db, tank) == Decimal("90.000")

    def test_moving_sale_to_other_station_rejected(
        self,
        client: TestClient,
        admin_token: str,
        station: Station,
        other_station: Station,
        petrol: Product,
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        sale_id = client.post("/api/v1/sales", json=body, headers=auth(admin_token)).json()["transaction"]["id"]
        body["transaction"]["stationId"] = str(other_station.id)
        resp = client.put(f"/api/v1/sales/{sale_id}", json=body, headers=auth(admin_token))
        assert resp.status_code == 400


class TestDeleteSale:
    def test_delete_restores_stock_and_balance(
        self,
        client: TestClient,
        db: Session,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
        customer: Customer,
    ) -> None:
        body = sale_payload(
            station.id, petrol.id, tank.id, payment_method="credit", customer_id=customer.id
        )
        sale_id = client.post("/api/v1/sales", json=body, headers=auth(cashier_token)).json()["transaction"]["id"]

        resp = client.delete(f"/api/v1/sales/{sale_id}", headers=auth(cashier_token))
        assert resp.status_code == 204
        assert db.query(SalesTransaction).count() == 0
        assert _stock(db, tank) == Decimal("100.000")
        assert _outstanding(db, customer) == Decimal("0.00")

    def test_other_station_cannot_delete(
        self,
        client: TestClient,
        cashier_token: str,
        outsider_token: str,
        station: Station,
        petrol: Product,
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        sale_id = client.post("/api/v1/sales", json=body, headers=auth(cashier_token)).json()["transaction"]["id"]
        resp = client.delete(f"/api/v1/sales/{sale_id}", headers=auth(outsider_token))
        assert resp.status_code == 403

    def test_admin_can_delete_any_station(
        self,
        client: TestClient,
        cashier_token: str,
        admin_token: str,
        station: Station,
        petrol: Product,
    ) -> None:
        body = sale_payload(station.id, petrol.id)
        sale_id = client.post("/api/v1/sales", json=body, headers=auth(cashier_token)).json()["transaction"]["id"]
        resp = client.delete(f"/api/v1/sales/{sale_id}", headers=auth(admin_token))
        assert resp.status_code == 204

    def test_delete_unknown_sale_404(self, client: TestClient, admin_token: str) -> None:
        resp = client.delete(f"/api/v1/sales/{uuid4()}", headers=auth(admin_token))
        assert resp.status_code == 404


class TestReadSales:
    def test_list_recent_and_detail(
        self,
        client: TestClient,
        cashier_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
    ) -> None:
        for _ in range(3):
            client.post(
                "/api/v1/sales",
                json=sale_payload(station.id, petrol.id, tank.id, quantity="1"),
                headers=auth(cashier_token),
            )

        resp = client.get(f"/api/v1/sales/{station.id}", headers=auth(cashier_token))
        assert resp.status_code == 200
        assert len(resp.json()) == 3

        resp = client.get(f"/api/v1/sales/{station.id}?limit=2", headers=auth(cashier_token))
        assert len(resp.json()) == 2

        resp = client.get(f"/api/v1/sales/{station.id}/recent", headers=auth(cashier_token))
        assert len(resp.json()) == 3

        sale_id = resp.json()[0]["id"]
        resp = client.get(f"/api/v1/sales/detail/{sale_id}", headers=auth(cashier_token))
        assert resp.status_code == 200
        detail = resp.json()
        assert detail["station_name"] == "Test Station"
        assert detail["cashier_username"] == "test_cashier"
        assert detail["items"][0]["product_name"] == "Petrol"
        assert detail["items"][0]["tank_name"] == "Tank 1"

    def test_outsider_cannot_list(
        self, client: TestClient, outsider_token: str, station: Station
    ) -> None:
        resp = client.get(f"/api/v1/sales/{station.id}", headers=auth(outsider_token))
        assert resp.status_code == 403
