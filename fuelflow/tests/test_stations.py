"""Tests for stations and per-station settings."""

from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient

from fuelflow.app.models.accounting import Station
from fuelflow.tests.conftest import auth


class TestStations:
    def test_admin_sees_every_station(
        self, client: TestClient, admin_token: str, station: Station, other_station: Station
    ) -> None:
        resp = client.get("/api/v1/stations", headers=auth(admin_token))
        assert {s["name"] for s in resp.json()} == {"Test Station", "Other Station"}

    def test_cashier_sees_own_station(
        self, client: TestClient, cashier_token: str, station: Station, other_station: Station
    ) -> None:
        resp = client.get("/api/v1/stations", headers=auth(cashier_token))
        assert [s["id"] for s in resp.json()] == [str(station.id)]
        assert client.get(
            f"/api/v1/stations/{other_station.id}", headers=auth(cashier_token)
        ).status_code == 403

    def test_create_and_update(self, client: TestClient, admin_token: str) -> None:
        resp = client.post(
            "/api/v1/stations",
            json={"name": "Motorway Services", "default_currency": "USD"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 201, resp.text
        station_id = resp.json()["id"]
        updated = client.put(
            f"/api/v1/stations/{station_id}",
            json={"address": "M2 Km 140"},
            headers=auth(admin_token),
        )
        assert updated.json()["address"] == "M2 Km 140"
        assert updated.json()["default_currency"] == "USD"

    def test_unsupported_currency(self, client: TestClient, admin_token: str) -> None:
        resp = client.post(
            "/api/v1/stations",
            json={"name": "Somewhere", "default_currency": "XYZ"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 400

    def test_cashier_cannot_create(self, client: TestClient, cashier_token: str) -> None:
        resp = client.post("/api/v1/stations", json={"name": "Mine"}, headers=auth(cashier_token))
        assert resp.status_code == 403


class TestSettings:
    def test_defaults_before_save(
        self, client: TestClient, cashier_token: str, station: Station
    ) -> None:
        resp = client.get(f"/api/v1/settings/{station.id}", headers=auth(cashier_token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] is None
        assert body["tax_enabled"] is False
        assert body["company_name"] == "Test Station"
        assert body["ledger_posting_enabled"] is False

    def test_create_once(
        self, client: TestClient, manager_token: str, station: Station
    ) -> None:
        body = {"tax_enabled": True, "tax_rate": "17", "receipt_footer": "Thank you"}
        first = client.post(f"/api/v1/settings/{station.id}", json=body, headers=auth(manager_token))
        assert first.status_code == 201, first.text
        assert first.json()["id"] is not None
        second = client.post(f"/api/v1/settings/{station.id}", json=body, headers=auth(manager_token))
        assert second.status_code == 409

    def test_update_creates_missing_row(
        self, client: TestClient, manager_token: str, station: Station
    ) -> None:
        resp = client.put(
            f"/api/v1/settings/{station.id}",
            json={"tax_enabled": True, "tax_rate": "12.5"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 200, resp.text
        assert Decimal(resp.json()["tax_rate"]) == Decimal("12.5")
        stored = client.get(f"/api/v1/settings/{station.id}", headers=auth(manager_token)).json()
        assert stored["id"] is not None
        assert stored["tax_enabled"] is True

    def test_tax_rate_bounds(
        self, client: TestClient, manager_token: str, station: Station
    ) -> None:
        resp = client.put(
            f"/api/v1/settings/{station.id}",
            json={"tax_rate": "101"},
            headers=auth(manager_token),
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "tax_rate"

    def test_cashier_cannot_change(
        self, client: TestClient, cashier_token: str, station: Station
    ) -> None:
        resp = client.put(
            f"/api/v1/settings/{station.id}", json={"tax_enabled": True}, headers=auth(cashier_token)
        )
        assert resp.status_code == 403
