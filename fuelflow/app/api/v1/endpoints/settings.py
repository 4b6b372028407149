from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import (
    client_ip,
    ensure_station_access,
    get_current_user,
    manager_or_admin,
)
from fuelflow.app.core.database import get_db
from fuelflow.app.models.station import StationSettings
from fuelflow.app.models.user import User
from fuelflow.app.schemas.station import SettingsCreate, SettingsOut, SettingsUpdate
from fuelflow.app.services import stations as station_service

router = APIRouter()


@router.get("/{station_id}", response_model=SettingsOut)
def read_settings(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> StationSettings:
    """Stored settings, or the defaults (with no id) when none were saved."""
    ensure_station_access(current_user, station_id)
    return station_service.get_settings(db, station_id)


@router.post("/{station_id}", response_model=SettingsOut, status_code=status.HTTP_201_CREATED)
def create_settings(
    station_id: UUID,
    body: SettingsCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> StationSettings:
    ensure_station_access(current_user, station_id)
    return station_service.create_settings(
        db, station_id, body, current_user.id, client_ip(request)
    )


@router.put("/{station_id}", response_model=SettingsOut)
def update_settings(
    station_id: UUID,
    body: SettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> StationSettings:
    ensure_station_access(current_user, station_id)
    return station_service.update_settings(
        db, station_id, body, current_user.id, client_ip(request)
    )
