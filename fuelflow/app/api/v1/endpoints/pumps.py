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
from fuelflow.app.models.inventory import Pump, PumpReading
from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.schemas.inventory import (
    PumpCreate,
    PumpOut,
    PumpReadingCreate,
    PumpReadingOut,
    PumpUpdate,
)
from fuelflow.app.services import pumps as pump_service

router = APIRouter()
readings_router = APIRouter()


# ─── Pumps ───────────────────────────────────────────────────────────────────


@router.get("", response_model=list[PumpOut])
def list_pumps(
    station_id: UUID | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Pump]:
    if current_user.role != RoleEnum.ADMIN:
        station_id = station_id or current_user.station_id
        ensure_station_access(current_user, station_id)
    return pump_service.list_pumps(db, station_id)


@router.post("", response_model=PumpOut, status_code=status.HTTP_201_CREATED)
def create_pump(
    body: PumpCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Pump:
    ensure_station_access(current_user, body.station_id)
    return pump_service.create_pump(db, body, current_user.id, client_ip(request))


@router.put("/{pump_id}", response_model=PumpOut)
def update_pump(
    pump_id: UUID,
    body: PumpUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Pump:
    ensure_station_access(current_user, pump_service.get_pump(db, pump_id).station_id)
    return pump_service.update_pump(db, pump_id, body, current_user.id, client_ip(request))


@router.delete("/{pump_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pump(
    pump_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> None:
    ensure_station_access(current_user, pump_service.get_pump(db, pump_id).station_id)
    pump_service.delete_pump(db, pump_id, current_user.id, client_ip(request))


# ─── Readings ────────────────────────────────────────────────────────────────


@readings_router.get("", response_model=list[PumpReadingOut])
def list_readings(
    station_id: UUID | None = Query(None),
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PumpReading]:
    station_id = station_id or current_user.station_id
    ensure_station_access(current_user, station_id)
    if station_id is None:
        return []
    return pump_service.list_readings(db, station_id, limit)


@readings_router.post("", response_model=PumpReadingOut, status_code=status.HTTP_201_CREATED)
def create_reading(
    body: PumpReadingCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PumpReading:
    ensure_station_access(current_user, pump_service.get_pump(db, body.pump_id).station_id)
    return pump_service.create_reading(db, body, current_user.id, client_ip(request))


@readings_router.get("/{reading_id}", response_model=PumpReadingOut)
def get_reading(
    reading_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PumpReading:
    reading = pump_service.get_reading(db, reading_id)
    ensure_station_access(current_user, reading.station_id)
    return reading
