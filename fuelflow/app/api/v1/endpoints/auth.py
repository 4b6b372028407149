from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, get_current_user, oauth2_scheme
from fuelflow.app.core.database import get_db
from fuelflow.app.core.security import (
    cleanup_expired_tokens,
    create_access_token,
    revoke_token,
)
from fuelflow.app.middleware.rate_limit import InMemoryRateLimiter
from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.schemas.user import UserOut, validate_password
from fuelflow.app.services import auth as auth_service
from fuelflow.app.services.user_management import signup

router = APIRouter()

# ─── Rate Limiting ───────────────────────────────────────────────────────────
# In-memory per-IP rate limiter shared by both sign-in routes.
login_limiter = InMemoryRateLimiter(window_seconds=60, max_attempts=10)


# ─── Schemas ─────────────────────────────────────────────────────────────────


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class GoogleLoginIn(BaseModel):
    id_token: str = Field(..., min_length=1)


class SignupIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=150)
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = None
    email: str | None = None
    role: RoleEnum = RoleEnum.CASHIER
    station_id: UUID | None = None

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        return validate_password(v)


class SignupOut(BaseModel):
    user: UserOut
    message: str


def _token_for(user: User) -> dict:
    return {
        "access_token": create_access_token(
            subject=str(user.id), extra_claims={"role": user.role.value}
        ),
        "token_type": "bearer",
        "user": user,
    }


# ─── Endpoints ───────────────────────────────────────────────────────────────


@router.post("/login", response_model=TokenOut)
def login(
    request: Request,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> dict:
    ip = client_ip(request)
    login_limiter.check(ip)
    user = auth_service.authenticate(db, form_data.username, form_data.password, ip)
    return _token_for(user)


@router.post("/google", response_model=TokenOut)
def google_login(
    body: GoogleLoginIn,
    request: Request,
    db: Session = Depends(get_db),
) -> dict:
    ip = client_ip(request)
    login_limiter.check(ip)
    user = auth_service.google_login(db, body.id_token, ip)
    return _token_for(user)


@router.post("/signup", response_model=SignupOut, status_code=status.HTTP_201_CREATED)
def register(
    body: SignupIn,
    request: Request,
    db: Session = Depends(get_db),
) -> dict:
    user = signup(
        db,
        username=body.username,
        password=body.password,
        role=body.role,
        station_id=body.station_id,
        full_name=body.full_name,
        email=body.email,
        ip_address=client_ip(request),
    )
    message = (
        "Admin account created successfully. You can now login."
        if user.is_active
        else "Account created successfully. Please wait for admin approval."
    )
    return {"user": user, "message": message}


@router.get("/me", response_model=UserOut)
def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.post("/logout")
def logout(
    token: str = Depends(oauth2_scheme),
    _current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    """Invalidate the current access token."""
    cleanup_expired_tokens()
    revoke_token(token)
    return {"detail": "Logged out successfully"}
