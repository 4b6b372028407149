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
from fuelflow.app.models.inventory import Tank
from fuelflow.app.models.user import User
from fuelflow.app.schemas.inventory import TankCreate, TankOut, TankUpdate
from fuelflow.app.services import inventory as inventory_service

router = APIRouter()


@router.get("/{station_id}", response_model=list[TankOut])
def list_tanks(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Tank]:
    ensure_station_access(current_user, station_id)
    return inventory_service.list_tanks(db, station_id)


@router.post("", response_model=TankOut, status_code=status.HTTP_201_CREATED)
def create_tank(
    body: TankCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Tank:
    ensure_station_access(current_user, body.station_id)
    return inventory_service.create_tank(db, body, current_user.id, client_ip(request))


@router.put("/{tank_id}", response_model=TankOut)
def update_tank(
    tank_id: UUID,
    body: TankUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Tank:
    tank = inventory_service.get_tank(db, tank_id)
    ensure_station_access(current_user, tank.station_id)
    return inventory_service.update_tank(db, tank_id, body, current_user.id, client_ip(request))
