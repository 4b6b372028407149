from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, ensure_station_access, get_current_user
from fuelflow.app.core.database import get_db
from fuelflow.app.core.dates import to_datetime
from fuelflow.app.models.expense import Expense
from fuelflow.app.models.user import User
from fuelflow.app.schemas.expenses import (
    ExpenseCreate,
    ExpenseDetail,
    ExpenseOut,
    ExpenseUpdate,
)
from fuelflow.app.services import expenses as expense_service

router = APIRouter()


@router.get("", response_model=list[ExpenseOut])
def list_expenses(
    station_id: UUID | None = Query(None),
    account_id: UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Expense]:
    station_id = station_id or current_user.station_id
    ensure_station_access(current_user, station_id)
    if station_id is None:
        return []
    return expense_service.list_expenses(
        db,
        station_id,
        account_id=account_id,
        date_from=to_datetime(date_from) if date_from else None,
        date_to=to_datetime(date_to, end_of_day=True) if date_to else None,
    )


@router.post("", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    body: ExpenseCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Expense:
    ensure_station_access(current_user, body.station_id)
    return expense_service.create_expense(db, body, current_user.id, client_ip(request))


@router.get("/{expense_id}", response_model=ExpenseDetail)
def get_expense(
    expense_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ExpenseDetail:
    detail = expense_service.get_expense_detail(db, expense_id)
    ensure_station_access(current_user, detail.station_id)
    return detail


@router.put("/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: UUID,
    body: ExpenseUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Expense:
    ensure_station_access(current_user, expense_service.get_expense(db, expense_id).station_id)
    return expense_service.update_expense(
        db, expense_id, body, current_user.id, client_ip(request)
    )


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    ensure_station_access(current_user, expense_service.get_expense(db, expense_id).station_id)
    expense_service.delete_expense(db, expense_id, current_user.id, client_ip(request))
