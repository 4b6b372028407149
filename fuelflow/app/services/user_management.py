"""User management service: CRUD operations for user accounts.

All mutations are audit-logged and committed through ``atomic``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from fuelflow.app.core.security import get_password_hash, verify_password
from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.stations import get_station


def list_users(db: Session) -> list[User]:
    """Return all users ordered by creation date descending."""
    return (
        db.query(User)
        .order_by(User.created_at.desc())
        .all()
    )


def get_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User", user_id)
    return user


def find_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(func.lower(User.username) == username.lower()).first()


def _ensure_username_free(db: Session, username: str, exclude_id: UUID | None = None) -> None:
    query = db.query(User).filter(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError("Username already exists")


def create_user(
    db: Session,
    *,
    username: str,
    password: str,
    role: RoleEnum,
    admin_id: UUID | None,
    station_id: UUID | None = None,
    full_name: str | None = None,
    email: str | None = None,
    is_active: bool = True,
    ip_address: str | None = None,
) -> User:
    """Create a new user account. Raises ConflictError if username taken."""
    _ensure_username_free(db, username)
    if station_id is not None:
        get_station(db, station_id)
    elif role != RoleEnum.ADMIN:
        raise ValidationError.for_field("station_id", "Managers and cashiers need a station")

    with atomic(db):
        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            role=role,
            station_id=station_id,
            full_name=full_name,
            email=email,
            is_active=is_active,
        )
        db.add(user)
        db.flush()
        log_action(
            db,
            user_id=admin_id or user.id,
            action="USER_CREATED",
            resource_type="users",
            resource_id=str(user.id),
            ip_address=ip_address,
            changes={"username": username, "role": role.value, "is_active": is_active},
        )
    db.refresh(user)
    return user


def signup(
    db: Session,
    *,
    username: str,
    password: str,
    role: RoleEnum,
    station_id: UUID | None,
    full_name: str | None = None,
    email: str | None = None,
    ip_address: str | None = None,
) -> User:
    """Self-service registration.

    Only admin accounts start active; managers and cashiers wait for an
    admin to activate them.
    """
    return create_user(
        db,
        username=username,
        password=password,
        role=role,
        admin_id=None,
        station_id=station_id,
        full_name=full_name,
        email=email,
        is_active=role == RoleEnum.ADMIN,
        ip_address=ip_address,
    )


def update_user(
    db: Session,
    *,
    user_id: UUID,
    admin_id: UUID,
    username: str | None = None,
    role: RoleEnum | None = None,
    station_id: UUID | None = None,
    full_name: str | None = None,
    email: str | None = None,
    is_active: bool | None = None,
    ip_address: str | None = None,
) -> User:
    """Update a user's profile, role, station or active flag."""
    user = get_user(db, user_id)
    changes: dict[str, object] = {}

    if username is not None and username != user.username:
        _ensure_username_free(db, username, exclude_id=user_id)
        changes["username"] = {"old": user.username, "new": username}
    if role is not None and role != user.role:
        changes["role"] = {"old": user.role.value, "new": role.value}
    if station_id is not None and station_id != user.station_id:
        get_station(db, station_id)
        changes["station_id"] = {"old": str(user.station_id), "new": str(station_id)}
    if is_active is not None and is_active != user.is_active:
        if user_id == admin_id and not is_active:
            raise ValidationError.for_field("is_active", "Cannot deactivate yourself")
        changes["is_active"] = {"old": user.is_active, "new": is_active}
    if full_name is not None:
        changes["full_name"] = full_name
    if email is not None:
        changes["email"] = email

    if not changes:
        return user

    with atomic(db):
        if username is not None:
            user.username = username
        if role is not None:
            user.role = role
        if station_id is not None:
            user.station_id = station_id
        if is_active is not None:
            user.is_active = is_active
        if full_name is not None:
            user.full_name = full_name
        if email is not None:
            user.email = email
        log_action(
            db,
            user_id=admin_id,
            action="USER_UPDATED",
            resource_type="users",
            resource_id=str(user.id),
            ip_address=ip_address,
            changes=changes,
        )
    db.refresh(user)
    return user


def toggle_user_active(
    db: Session,
    *,
    user_id: UUID,
    admin_id: UUID,
    ip_address: str | None = None,
) -> User:
    """Toggle a user's is_active flag. Admins cannot deactivate themselves."""
    user = get_user(db, user_id)
    return update_user(
        db, user_id=user_id, admin_id=admin_id, is_active=not user.is_active,
        ip_address=ip_address,
    )


def delete_user(
    db: Session, *, user_id: UUID, admin_id: UUID, ip_address: str | None = None
) -> None:
    if user_id == admin_id:
        raise ValidationError.for_field("user_id", "Cannot delete yourself")
    user = get_user(db, user_id)
    with atomic(db):
        log_action(
            db,
            user_id=admin_id,
            action="USER_DELETED",
            resource_type="users",
            resource_id=str(user.id),
            ip_address=ip_address,
            changes={"username": user.username},
        )
        db.delete(user)


def change_own_password(
    db: Session,
    *,
    user_id: UUID,
    current_password: str,
    new_password: str,
) -> User:
    """User changes their own password. Raises ValidationError if current is wrong."""
    user = get_user(db, user_id)
    if not verify_password(current_password, user.hashed_password):
        raise ValidationError.for_field("current_password", "Current password is incorrect")

    with atomic(db):
        user.hashed_password = get_password_hash(new_password)
        log_action(
            db,
            user_id=user_id,
            action="USER_PASSWORD_CHANGED",
            resource_type="users",
            resource_id=str(user_id),
        )
    return user
