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
from fuelflow.app.models.station import Station
from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.schemas.station import StationCreate, StationOut, StationUpdate
from fuelflow.app.services import stations as station_service

router = APIRouter()


@router.get("", response_model=list[StationOut])
def list_stations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Station]:
    stations = station_service.list_stations(db)
    if current_user.role == RoleEnum.ADMIN:
        return stations
    return [s for s in stations if s.id == current_user.station_id]


@router.post("", response_model=StationOut, status_code=status.HTTP_201_CREATED)
def create_station(
    body: StationCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Station:
    return station_service.create_station(db, body, current_user.id, client_ip(request))


@router.get("/{station_id}", response_model=StationOut)
def get_station(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Station:
    ensure_station_access(current_user, station_id)
    return station_service.get_station(db, station_id)


@router.put("/{station_id}", response_model=StationOut)
def update_station(
    station_id: UUID,
    body: StationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Station:
    ensure_station_access(current_user, station_id)
    return station_service.update_station(
        db, station_id, body, current_user.id, client_ip(request)
    )
