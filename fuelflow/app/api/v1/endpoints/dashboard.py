from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import ensure_station_access, get_current_user
from fuelflow.app.core.database import get_db
from fuelflow.app.models.user import User
from fuelflow.app.schemas.reports import DashboardResponse
from fuelflow.app.services import reports as report_service

router = APIRouter()


@router.get("/{station_id}", response_model=DashboardResponse)
def dashboard(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    ensure_station_access(current_user, station_id)
    return report_service.get_dashboard_stats(db, station_id)
