from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import (
    client_ip,
    ensure_station_access,
    get_current_user,
    manager_or_admin,
)
from fuelflow.app.core.database import get_db
from fuelflow.app.models.user import User
from fuelflow.app.schemas.reports import (
    AgingResponse,
    BalanceCheckOut,
    DailyReportResponse,
    FinancialReportResponse,
    SalesReportResponse,
)
from fuelflow.app.services import aging as aging_service
from fuelflow.app.services import reconciliation
from fuelflow.app.services import reports as report_service

router = APIRouter()


def _period(from_date: date | None, to_date: date | None) -> tuple[date, date]:
    default_from, default_to = report_service.default_period()
    return from_date or default_from, to_date or default_to


@router.get("/daily/{station_id}", response_model=DailyReportResponse)
def daily_report(
    station_id: UUID,
    report_date: date | None = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    ensure_station_access(current_user, station_id)
    return report_service.get_daily_report(db, station_id, report_date or date.today())


@router.get("/sales/{station_id}", response_model=SalesReportResponse)
def sales_report(
    station_id: UUID,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    ensure_station_access(current_user, station_id)
    start, end = _period(from_date, to_date)
    return report_service.get_sales_report(db, station_id, start, end)


@router.get("/financial/{station_id}", response_model=FinancialReportResponse)
def financial_report(
    station_id: UUID,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> dict:
    ensure_station_access(current_user, station_id)
    start, end = _period(from_date, to_date)
    return report_service.get_financial_report(db, station_id, start, end)


@router.get("/aging/{station_id}", response_model=AgingResponse)
def aging_report(
    station_id: UUID,
    aging_type: str = Query("receivable", alias="type"),
    as_of_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    ensure_station_access(current_user, station_id)
    return aging_service.get_aging_report(db, station_id, aging_type, as_of_date)


@router.get("/balance-check/{station_id}", response_model=BalanceCheckOut)
def balance_check(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> BalanceCheckOut:
    ensure_station_access(current_user, station_id)
    return reconciliation.check_balances(db, station_id)


@router.post("/balance-check/{station_id}/reconcile", response_model=BalanceCheckOut)
def reconcile_balances(
    station_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> BalanceCheckOut:
    """Rewrite drifted customer and supplier balances to their recomputed values."""
    ensure_station_access(current_user, station_id)
    return reconciliation.reconcile(db, current_user.id, station_id, client_ip(request))
