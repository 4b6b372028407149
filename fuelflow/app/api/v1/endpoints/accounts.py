from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import (
    client_ip,
    ensure_station_access,
    get_current_user,
    manager_or_admin,
)
from fuelflow.app.core.database import get_db
from fuelflow.app.core.exceptions import ValidationError
from fuelflow.app.models.account import AccountType
from fuelflow.app.models.user import User
from fuelflow.app.schemas.accounting import AccountCreate, AccountOut
from fuelflow.app.services import accounts as account_service

router = APIRouter()


@router.get("", response_model=list[AccountOut])
def list_accounts(
    station_id: UUID | None = Query(None),
    account_type: AccountType | None = Query(None, alias="type"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[AccountOut]:
    station_id = station_id or current_user.station_id
    if station_id is None:
        raise ValidationError.for_field("station_id", "A station is required")
    ensure_station_access(current_user, station_id)
    return account_service.list_accounts(db, station_id, account_type)


@router.post("", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account(
    body: AccountCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> AccountOut:
    ensure_station_access(current_user, body.station_id)
    return account_service.create_account(db, body, current_user.id, client_ip(request))


@router.post("/seed/{station_id}", response_model=list[AccountOut])
def seed_accounts(
    station_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> list[AccountOut]:
    """Create any missing default accounts for the station."""
    ensure_station_access(current_user, station_id)
    return account_service.seed_station_accounts(
        db, station_id, current_user.id, client_ip(request)
    )
