"""Password and Google sign-in, including the failed-login lockout."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from fuelflow.app.core.config import settings
from fuelflow.app.core.database import atomic
from fuelflow.app.core.dates import as_utc, utcnow
from fuelflow.app.core.exceptions import AccountLockedError, AuthError
from fuelflow.app.core.security import get_password_hash, verify_password
from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.google_auth import GoogleTokenClient
from fuelflow.app.services.user_management import find_by_username

logger = logging.getLogger(__name__)


def authenticate(db: Session, username: str, password: str, ip: str | None = None) -> User:
    """Check credentials and return the user.

    Every attempt is audit-logged and committed, including failures, so
    the failed-attempt counter survives the error response.
    """
    user = find_by_username(db, username)

    if user and user.locked_until:
        now = utcnow()
        locked_until = as_utc(user.locked_until)
        if now < locked_until:
            remaining = int((locked_until - now).total_seconds() // 60) + 1
            with atomic(db):
                log_action(
                    db,
                    user_id=user.id,
                    action="LOGIN_BLOCKED",
                    resource_type="auth",
                    resource_id=username,
                    ip_address=ip,
                    changes={"reason": "account_locked"},
                )
            raise AccountLockedError(f"Account locked. Try again in {remaining} minutes.")
        # Lockout expired
        user.failed_login_attempts = 0
        user.locked_until = None

    if not user or not verify_password(password, user.hashed_password):
        with atomic(db):
            if user:
                user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
                if user.failed_login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
                    user.locked_until = utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
                    logger.warning("Locking account %s after failed logins", username)
                    log_action(
                        db,
                        user_id=user.id,
                        action="ACCOUNT_LOCKED",
                        resource_type="auth",
                        resource_id=username,
                        ip_address=ip,
                        changes={"failed_attempts": user.failed_login_attempts},
                    )
            log_action(
                db,
                user_id=user.id if user else None,
                action="LOGIN_FAILED",
                resource_type="auth",
                resource_id=username,
                ip_address=ip,
                changes={"reason": "invalid_credentials"},
            )
        raise AuthError("Incorrect username or password")

    if not user.is_active:
        with atomic(db):
            log_action(
                db,
                user_id=user.id,
                action="LOGIN_FAILED",
                resource_type="auth",
                resource_id=username,
                ip_address=ip,
                changes={"reason": "inactive_user"},
            )
        raise AuthError("Account pending approval. Please contact administrator.")

    with atomic(db):
        user.failed_login_attempts = 0
        user.locked_until = None
        log_action(
            db,
            user_id=user.id,
            action="LOGIN_SUCCESS",
            resource_type="auth",
            resource_id=str(user.id),
            ip_address=ip,
            changes={"username": user.username, "role": user.role.value},
        )
    logger.info("User %s logged in", user.username)
    return user


def google_login(
    db: Session,
    id_token: str,
    ip: str | None = None,
    client: GoogleTokenClient | None = None,
) -> User:
    """Sign in with a Google ID token, creating a cashier on first use."""
    claims = (client or GoogleTokenClient()).verify(id_token)
    google_id = claims["sub"]
    email = claims.get("email")
    username = email or google_id

    filters = [User.google_id == google_id, User.username == username]
    if email:
        filters.append(User.email == email)
    user = db.query(User).filter(or_(*filters)).first()

    with atomic(db):
        if user is None:
            user = User(
                username=username,
                hashed_password=get_password_hash(secrets.token_urlsafe(24)),
                full_name=claims.get("name") or email or "Google User",
                email=email,
                google_id=google_id,
                role=RoleEnum.CASHIER,
                is_active=True,
            )
            db.add(user)
            db.flush()
            action = "GOOGLE_SIGNUP"
        else:
            if user.google_id is None:
                user.google_id = google_id
            action = "GOOGLE_LOGIN"
        if not user.is_active:
            raise AuthError("Account pending approval. Please contact administrator.")
        log_action(
            db,
            user_id=user.id,
            action=action,
            resource_type="auth",
            resource_id=str(user.id),
            ip_address=ip,
        )
    db.refresh(user)
    return user
