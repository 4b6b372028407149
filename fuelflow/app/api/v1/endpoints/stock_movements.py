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
from fuelflow.app.models.inventory import StockMovement
from fuelflow.app.models.user import User
from fuelflow.app.schemas.inventory import StockMovementCreate, StockMovementOut
from fuelflow.app.services import inventory as inventory_service

router = APIRouter()


@router.get("/{tank_id}", response_model=list[StockMovementOut])
def list_movements(
    tank_id: UUID,
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[StockMovement]:
    tank = inventory_service.get_tank(db, tank_id)
    ensure_station_access(current_user, tank.station_id)
    return inventory_service.list_movements(db, tank_id, limit)


@router.post("", response_model=StockMovementOut, status_code=status.HTTP_201_CREATED)
def create_movement(
    body: StockMovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> StockMovement:
    tank = inventory_service.get_tank(db, body.tank_id)
    ensure_station_access(current_user, tank.station_id)
    return inventory_service.record_manual_movement(
        db, body, current_user.id, client_ip(request)
    )
