from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import ensure_station_access, get_current_user
from fuelflow.app.core.database import get_db
from fuelflow.app.core.dates import to_datetime
from fuelflow.app.models.user import User
from fuelflow.app.schemas.customer import ActivityType, CustomerActivityOut
from fuelflow.app.services import customers as customer_service

router = APIRouter()


@router.get("/{station_id}", response_model=list[CustomerActivityOut])
def list_customer_activities(
    station_id: UUID,
    customer_id: UUID | None = Query(None),
    activity_type: ActivityType | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[CustomerActivityOut]:
    """Sales and receipts of the station's customers with running balances."""
    ensure_station_access(current_user, station_id)
    return customer_service.list_activities(
        db,
        station_id,
        customer_id=customer_id,
        activity_type=activity_type,
        date_from=to_datetime(date_from) if date_from else None,
        date_to=to_datetime(date_to, end_of_day=True) if date_to else None,
    )
