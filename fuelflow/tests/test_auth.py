"""Tests for sign-in, lockout, signup, logout, Google login and user admin."""

from __future__ import annotations

import httpx
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fuelflow.app.core.exceptions import AuthError
from fuelflow.app.middleware import rate_limit
from fuelflow.app.middleware.rate_limit import InMemoryRateLimiter
from fuelflow.app.models.accounting import AuditLog, RoleEnum, Station, User
from fuelflow.app.services import auth as auth_service
from fuelflow.app.services.google_auth import GoogleTokenClient
from fuelflow.tests.conftest import PASSWORD, auth


def _login(client: TestClient, username: str, password: str = PASSWORD):
    return client.post(
        "/api/v1/auth/login", data={"username": username, "password": password}
    )


def _google_client(claims: dict | None, status_code: int = 200) -> GoogleTokenClient:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["id_token"] == "google-token"
        return httpx.Response(status_code, json=claims or {"error": "invalid_token"})

    return GoogleTokenClient(
        tokeninfo_url="https://google.test/tokeninfo",
        client_id="fuelflow-web",
        transport=httpx.MockTransport(handler),
    )


# ─── Login ───────────────────────────────────────────────────────────────────


class TestLogin:
    def test_login_returns_token_and_user(
        self, client: TestClient, cashier_user: User
    ) -> None:
        resp = _login(client, "test_cashier")
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "cashier"

        me = client.get("/api/v1/auth/me", headers=auth(body["access_token"]))
        assert me.json()["username"] == "test_cashier"

    def test_wrong_password(self, client: TestClient, db: Session, cashier_user: User) -> None:
        resp = _login(client, "test_cashier", "Wrong1234")
        assert resp.status_code == 401
        db.expire_all()
        assert db.get(User, cashier_user.id).failed_login_attempts == 1
        assert db.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").count() == 1

    def test_unknown_user(self, client: TestClient) -> None:
        assert _login(client, "nobody").status_code == 401

    def test_lockout_after_repeated_failures(
        self, client: TestClient, db: Session, cashier_user: User
    ) -> None:
        for _ in range(5):
            assert _login(client, "test_cashier", "Wrong1234").status_code == 401

        resp = _login(client, "test_cashier")
        assert resp.status_code == 423
        assert resp.json()["code"] == "ACCOUNT_LOCKED"
        db.expire_all()
        assert db.get(User, cashier_user.id).locked_until is not None

    def test_success_resets_counter(
        self, client: TestClient, db: Session, cashier_user: User
    ) -> None:
        _login(client, "test_cashier", "Wrong1234")
        assert _login(client, "test_cashier").status_code == 200
        db.expire_all()
        assert db.get(User, cashier_user.id).failed_login_attempts == 0

    def test_inactive_user_cannot_login(
        self, client: TestClient, db: Session, cashier_user: User
    ) -> None:
        cashier_user.is_active = False
        db.commit()
        resp = _login(client, "test_cashier")
        assert resp.status_code == 401
        assert resp.json()["code"] == "AUTH_ERROR"
        assert resp.json()["detail"].startswith("Account pending approval")

    def test_token_of_deactivated_user_rejected(
        self, client: TestClient, db: Session, cashier_user: User, cashier_token: str
    ) -> None:
        cashier_user.is_active = False
        db.commit()
        resp = client.get("/api/v1/auth/me", headers=auth(cashier_token))
        assert resp.status_code == 401

    def test_rate_limited(self, client: TestClient) -> None:
        codes = [_login(client, "nobody").status_code for _ in range(11)]
        assert codes[-1] == 429


class TestLoginLimiter:
    def test_expired_clients_are_forgotten(self, monkeypatch: pytest.MonkeyPatch) -> None:
        clock = [1000.0]
        monkeypatch.setattr(rate_limit.time, "monotonic", lambda: clock[0])
        limiter = InMemoryRateLimiter(window_seconds=60, max_attempts=2)
        for n in range(50):
            limiter.check(f"10.0.0.{n}")
        assert limiter.tracked_keys() == 50

        clock[0] += 61
        limiter.check("10.0.1.1")
        assert limiter.tracked_keys() == 1

    def test_window_still_enforced(self, monkeypatch: pytest.MonkeyPatch) -> None:
        clock = [1000.0]
        monkeypatch.setattr(rate_limit.time, "monotonic", lambda: clock[0])
        limiter = InMemoryRateLimiter(window_seconds=60, max_attempts=2)
        limiter.check("10.0.0.1")
        limiter.check("10.0.0.1")
        with pytest.raises(HTTPException) as exc:
            limiter.check("10.0.0.1")
        assert exc.value.status_code == 429

        clock[0] += 61
        limiter.check("10.0.0.1")


# ─── Signup / logout ─────────────────────────────────────────────────────────


class TestSignup:
    def test_cashier_signup_awaits_approval(
        self, client: TestClient, station: Station
    ) -> None:
        resp = client.post(
            "/api/v1/auth/signup",
            json={
                "username": "new_cashier",
                "password": "Pumps2024",
                "role": "cashier",
                "station_id": str(station.id),
            },
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["user"]["is_active"] is False
        assert _login(client, "new_cashier", "Pumps2024").status_code == 401

    def test_admin_signup_is_active(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/auth/signup",
            json={"username": "owner", "password": "Owner2024", "role": "admin"},
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["is_active"] is True
        assert _login(client, "owner", "Owner2024").status_code == 200

    def test_cashier_needs_station(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/auth/signup",
            json={"username": "drifter", "password": "Pumps2024", "role": "cashier"},
        )
        assert resp.status_code == 400

    def test_weak_password(self, client: TestClient) -> None:
        resp = client.post(
            "/api/v1/auth/signup",
            json={"username": "owner", "password": "onlyletters", "role": "admin"},
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "password"

    def test_duplicate_username(self, client: TestClient, admin_user: User) -> None:
        resp = client.post(
            "/api/v1/auth/signup",
            json={"username": "test_admin", "password": "Owner2024", "role": "admin"},
        )
        assert resp.status_code == 409


class TestLogout:
    def test_logout_revokes_token(self, client: TestClient, cashier_user: User) -> None:
        token = _login(client, "test_cashier").json()["access_token"]
        resp = client.post("/api/v1/auth/logout", headers=auth(token))
        assert resp.status_code == 200
        assert client.get("/api/v1/auth/me", headers=auth(token)).status_code == 401

    def test_garbage_token(self, client: TestClient) -> None:
        assert client.get("/api/v1/auth/me", headers=auth("not-a-jwt")).status_code == 401


# ─── Google ──────────────────────────────────────────────────────────────────


class TestGoogleLogin:
    CLAIMS = {
        "sub": "g-123",
        "aud": "fuelflow-web",
        "email": "ali@example.com",
        "name": "Ali Raza",
    }

    def test_first_login_creates_active_cashier(self, db: Session) -> None:
        user = auth_service.google_login(db, "google-token", client=_google_client(self.CLAIMS))
        assert user.role == RoleEnum.CASHIER
        assert user.is_active
        assert user.google_id == "g-123"
        assert user.username == "ali@example.com"

        again = auth_service.google_login(db, "google-token", client=_google_client(self.CLAIMS))
        assert again.id == user.id
        assert db.query(User).count() == 1

    def test_links_existing_email(self, db: Session, cashier_user: User) -> None:
        cashier_user.email = "ali@example.com"
        db.commit()
        user = auth_service.google_login(db, "google-token", client=_google_client(self.CLAIMS))
        assert user.id == cashier_user.id
        assert user.google_id == "g-123"

    def test_wrong_audience(self, db: Session) -> None:
        claims = dict(self.CLAIMS, aud="someone-else")
        with pytest.raises(AuthError):
            auth_service.google_login(db, "google-token", client=_google_client(claims))

    def test_inactive_linked_user(self, db: Session, cashier_user: User) -> None:
        cashier_user.email = "ali@example.com"
        cashier_user.is_active = False
        db.commit()
        with pytest.raises(AuthError):
            auth_service.google_login(db, "google-token", client=_google_client(self.CLAIMS))

    def test_rejected_token(self, db: Session) -> None:
        with pytest.raises(AuthError):
            auth_service.google_login(db, "google-token", client=_google_client(None, 400))
        assert db.query(User).count() == 0

    def test_endpoint(self, client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            auth_service, "GoogleTokenClient", lambda: _google_client(self.CLAIMS)
        )
        resp = client.post("/api/v1/auth/google", json={"id_token": "google-token"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["user"]["email"] == "ali@example.com"


# ─── User administration ─────────────────────────────────────────────────────


class TestUserAdmin:
    def test_admin_creates_user(
        self, client: TestClient, admin_token: str, station: Station
    ) -> None:
        resp = client.post(
            "/api/v1/users",
            json={
                "username": "night_shift",
                "password": "Night2024",
                "role": "cashier",
                "station_id": str(station.id),
            },
            headers=auth(admin_token),
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["is_active"] is True
        names = [u["username"] for u in client.get("/api/v1/users", headers=auth(admin_token)).json()]
        assert "night_shift" in names

    def test_manager_cannot_manage_users(self, client: TestClient, manager_token: str) -> None:
        assert client.get("/api/v1/users", headers=auth(manager_token)).status_code == 403

    def test_toggle_active(
        self, client: TestClient, admin_token: str, cashier_user: User
    ) -> None:
        resp = client.patch(
            f"/api/v1/users/{cashier_user.id}/toggle-active", headers=auth(admin_token)
        )
        assert resp.json()["is_active"] is False
        assert _login(client, "test_cashier").status_code == 401

    def test_admin_cannot_delete_self(
        self, client: TestClient, admin_token: str, admin_user: User
    ) -> None:
        resp = client.delete(f"/api/v1/users/{admin_user.id}", headers=auth(admin_token))
        assert resp.status_code == 400

    def test_change_password(self, client: TestClient, cashier_token: str) -> None:
        bad = client.post(
            "/api/v1/users/change-password",
            json={"current_password": "Wrong1234", "new_password": "Fresh2024"},
            headers=auth(cashier_token),
        )
        assert bad.status_code == 400
        ok = client.post(
            "/api/v1/users/change-password",
            json={"current_password": PASSWORD, "new_password": "Fresh2024"},
            headers=auth(cashier_token),
        )
        assert ok.status_code == 200
        assert _login(client, "test_cashier", "Fresh2024").status_code == 200

    def test_audit_log_listing(
        self, client: TestClient, admin_token: str, manager_token: str, cashier_user: User
    ) -> None:
        _login(client, "test_cashier", "Wrong1234")
        logs = client.get(
            "/api/v1/audit-logs?action=LOGIN_FAILED", headers=auth(admin_token)
        ).json()
        assert len(logs) == 1
        assert logs[0]["resource_id"] == "test_cashier"
        assert client.get("/api/v1/audit-logs", headers=auth(manager_token)).status_code == 403
