"""Tests for daily, sales, financial and aging reports and the dashboard."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fuelflow.app.models.accounting import (
    Customer,
    Product,
    SalesTransaction,
    Station,
    Supplier,
    Tank,
)
from fuelflow.app.services.aging import bucket
from fuelflow.tests.conftest import auth, sale_payload


# ── Helpers ──────────────────────────────────────────────────────────────────


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _sell(client: TestClient, token: str, *args, **kwargs) -> dict:
    resp = client.post("/api/v1/sales", json=sale_payload(*args, **kwargs), headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["transaction"]


def _backdate(db: Session, sale: dict, days: int) -> None:
    row = db.get(SalesTransaction, UUID(sale["id"]))
    when = datetime.now(timezone.utc) - timedelta(days=days)
    row.transaction_date = when
    row.due_date = when
    db.commit()


@pytest.fixture()
def trading_day(
    client: TestClient,
    manager_token: str,
    station: Station,
    petrol: Product,
    diesel: Product,
    tank: Tank,
    diesel_tank: Tank,
    customer: Customer,
    supplier: Supplier,
) -> None:
    """One cash, one card and one part-paid credit sale, an expense, a PO and a receipt."""
    _sell(client, manager_token, station.id, petrol.id, tank.id)
    _sell(client, manager_token, station.id, diesel.id, diesel_tank.id,
          quantity="4.000", unit_price="12.50", payment_method="card")
    _sell(client, manager_token, station.id, petrol.id, tank.id,
          quantity="20.000", payment_method="credit", customer_id=customer.id, paid="50.00")
    client.post(
        "/api/v1/expenses",
        json={
            "station_id": str(station.id),
            "category": "utilities",
            "description": "Generator diesel",
            "amount": "30.00",
        },
        headers=auth(manager_token),
    )
    client.post(
        "/api/v1/purchase-orders",
        json={
            "order": {"station_id": str(station.id), "supplier_id": str(supplier.id)},
            "items": [{"product_id": str(petrol.id), "quantity": "50", "unit_price": "9.50"}],
        },
        headers=auth(manager_token),
    )
    client.post(
        "/api/v1/payments",
        json={"payment_type": "receivable", "customer_id": str(customer.id), "amount": "25.00"},
        headers=auth(manager_token),
    )


# ── Daily ────────────────────────────────────────────────────────────────────


class TestDailyReport:
    def test_totals(
        self, client: TestClient, manager_token: str, station: Station, trading_day
    ) -> None:
        resp = client.get(
            f"/api/v1/reports/daily/{station.id}?date={_today()}", headers=auth(manager_token)
        )
        assert resp.status_code == 200, resp.text
        report = resp.json()
        assert report["transaction_count"] == 3
        assert Decimal(report["total_sales"]) == Decimal("350.00")

        methods = {m["name"]: m for m in report["sales_by_payment_method"]}
        assert Decimal(methods["cash"]["amount"]) == Decimal("100.00")
        assert Decimal(methods["card"]["amount"]) == Decimal("50.00")
        assert methods["credit"]["count"] == 1

        products = {p["name"]: p for p in report["sales_by_product"]}
        assert Decimal(products["Petrol"]["quantity"]) == Decimal("30.000")

        assert Decimal(report["receivables"]["new_credit"]) == Decimal("150.00")
        assert Decimal(report["receivables"]["payments_received"]) == Decimal("25.00")
        assert Decimal(report["receivables"]["outstanding"]) == Decimal("125.00")
        assert Decimal(report["payables"]["new_purchases"]) == Decimal("475.00")

        cash = report["cash_flow"]
        # 100 cash sale + 50 paid on credit + 25 receipt
        assert Decimal(cash["cash_receipts"]) == Decimal("175.00")
        assert Decimal(cash["cash_expenses"]) == Decimal("30.00")
        assert Decimal(cash["card_receipts"]) == Decimal("50.00")
        assert Decimal(cash["closing_cash"]) == Decimal("145.00")
        assert Decimal(report["total_expenses"]) == Decimal("30.00")

    def test_empty_day(
        self, client: TestClient, manager_token: str, station: Station, trading_day
    ) -> None:
        report = client.get(
            f"/api/v1/reports/daily/{station.id}?date=2020-01-01", headers=auth(manager_token)
        ).json()
        assert report["transaction_count"] == 0
        assert Decimal(report["total_sales"]) == Decimal("0")

    def test_other_station_forbidden(
        self, client: TestClient, outsider_token: str, station: Station
    ) -> None:
        resp = client.get(f"/api/v1/reports/daily/{station.id}", headers=auth(outsider_token))
        assert resp.status_code == 403


# ── Sales and financial ──────────────────────────────────────────────────────


class TestPeriodReports:
    def test_sales_report(
        self, client: TestClient, cashier_token: str, station: Station, trading_day
    ) -> None:
        report = client.get(
            f"/api/v1/reports/sales/{station.id}?from_date={_today()}&to_date={_today()}",
            headers=auth(cashier_token),
        ).json()
        assert report["transaction_count"] == 3
        assert Decimal(report["average_sale"]) == Decimal("116.67")
        assert [d["name"] for d in report["by_day"]] == [_today()]

    def test_financial_report(
        self, client: TestClient, manager_token: str, station: Station, trading_day
    ) -> None:
        report = client.get(
            f"/api/v1/reports/financial/{station.id}", headers=auth(manager_token)
        ).json()
        assert Decimal(report["revenue"]) == Decimal("350.00")
        assert Decimal(report["cost_of_goods"]) == Decimal("475.00")
        assert Decimal(report["gross_profit"]) == Decimal("-125.00")
        assert Decimal(report["operating_expenses"]) == Decimal("30.00")
        assert Decimal(report["net_profit"]) == Decimal("-155.00")
        assert Decimal(report["profit_margin"]) == Decimal("-44.29")

    def test_financial_report_needs_manager(
        self, client: TestClient, cashier_token: str, station: Station
    ) -> None:
        resp = client.get(f"/api/v1/reports/financial/{station.id}", headers=auth(cashier_token))
        assert resp.status_code == 403


# ── Aging ────────────────────────────────────────────────────────────────────


class TestAging:
    @pytest.mark.parametrize(
        "days,expected",
        [(0, "current"), (30, "current"), (31, "days_31_60"), (60, "days_31_60"),
         (61, "days_61_90"), (90, "days_61_90"), (91, "over_90")],
    )
    def test_bucket_edges(self, days: int, expected: str) -> None:
        assert bucket(days) == expected

    def test_payments_settle_oldest_first(
        self,
        client: TestClient,
        db: Session,
        manager_token: str,
        station: Station,
        petrol: Product,
        tank: Tank,
        customer: Customer,
    ) -> None:
        old = _sell(client, manager_token, station.id, petrol.id, tank.id,
                    payment_method="credit", customer_id=customer.id)
        middle = _sell(client, manager_token, station.id, petrol.id, tank.id,
                       payment_method="credit", customer_id=customer.id)
        _sell(client, manager_token, station.id, petrol.id, tank.id,
              payment_method="credit", customer_id=customer.id)
        _backdate(db, old, 100)
        _backdate(db, middle, 45)
        client.post(
            "/api/v1/payments",
            json={"payment_type": "receivable", "customer_id": str(customer.id), "amount": "60"},
            headers=auth(manager_token),
        )

        report = client.get(
            f"/api/v1/reports/aging/{station.id}?type=receivable", headers=auth(manager_token)
        ).json()
        row = report["parties"][0]
        assert row["name"] == "Fleet Customer"
        assert Decimal(row["over_90"]) == Decimal("40.00")
        assert Decimal(row["days_31_60"]) == Decimal("100.00")
        assert Decimal(row["current"]) == Decimal("100.00")
        assert Decimal(report["total_outstanding"]) == Decimal("240.00")
        assert Decimal(report["total_overdue"]) == Decimal("140.00")

    def test_payable_aging(
        self,
        client: TestClient,
        manager_token: str,
        station: Station,
        supplier: Supplier,
        trading_day,
    ) -> None:
        report = client.get(
            f"/api/v1/reports/aging/{station.id}?type=payable", headers=auth(manager_token)
        ).json()
        assert report["aging_type"] == "payable"
        assert Decimal(report["totals"]["current"]) == Decimal("475.00")

    def test_unknown_type_rejected(
        self, client: TestClient, manager_token: str, station: Station
    ) -> None:
        resp = client.get(
            f"/api/v1/reports/aging/{station.id}?type=monthly", headers=auth(manager_token)
        )
        assert resp.status_code == 400


# ── Dashboard ────────────────────────────────────────────────────────────────


class TestDashboard:
    def test_dashboard(
        self, client: TestClient, cashier_token: str, station: Station, trading_day
    ) -> None:
        resp = client.get(f"/api/v1/dashboard/{station.id}", headers=auth(cashier_token))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["today_transactions"] == 3
        assert Decimal(data["today_sales"]) == Decimal("350.00")
        assert len(data["recent_sales"]) == 3

        levels = {t["name"]: t for t in data["tank_levels"]}
        # 100 - 10 - 20
        assert Decimal(levels["Tank 1"]["current_stock"]) == Decimal("70.000")
        assert Decimal(levels["Tank 1"]["fill_percentage"]) == Decimal("7.00")
        assert levels["Tank 2"]["product_name"] == "Diesel"
        assert Decimal(data["total_payables"]) == Decimal("475.00")

    def test_dashboard_scoped(
        self, client: TestClient, outsider_token: str, station: Station
    ) -> None:
        resp = client.get(f"/api/v1/dashboard/{station.id}", headers=auth(outsider_token))
        assert resp.status_code == 403
