"""Request dependencies: authentication, role guards, station scoping.

Usage in endpoints::

    @router.post("")
    def create_pump(
        body: PumpCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_role(RoleEnum.ADMIN, RoleEnum.MANAGER)),
    ):
        ensure_station_access(current_user, body.station_id)
        ...
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from fuelflow.app.core.config import settings
from fuelflow.app.core.database import get_db
from fuelflow.app.core.exceptions import AuthError, AuthorizationError
from fuelflow.app.core.security import ALGORITHM, is_token_revoked
from fuelflow.app.models.user import RoleEnum, User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> User:
    # Revoked on logout
    if is_token_revoked(token):
        raise AuthError("Could not validate credentials")

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str | None = payload.get("sub")
        if user_id is None:
            raise AuthError("Could not validate credentials")
        uid = UUID(user_id)
    except (JWTError, ValueError):
        raise AuthError("Could not validate credentials")

    user = db.query(User).filter(User.id == uid).first()
    if user is None:
        raise AuthError("Could not validate credentials")
    if not user.is_active:
        raise AuthError("Inactive user")
    return user


def require_role(*roles: RoleEnum):
    """FastAPI dependency factory: the caller must hold one of *roles*.

    Returns the authenticated ``User`` so the endpoint can use it::

        current_user = Depends(require_role(RoleEnum.ADMIN))
    """

    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise AuthorizationError(f"Requires role: {allowed}")
        return current_user

    return _checker


def ensure_station_access(user: User, station_id: UUID | None) -> None:
    """Admins reach every station; everyone else only their own."""
    if user.role == RoleEnum.ADMIN:
        return
    if station_id is None or user.station_id != station_id:
        raise AuthorizationError("Access denied to this station")


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


manager_or_admin = require_role(RoleEnum.ADMIN, RoleEnum.MANAGER)
admin_only = require_role(RoleEnum.ADMIN)
