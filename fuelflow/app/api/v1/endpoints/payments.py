from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, ensure_station_access, get_current_user
from fuelflow.app.core.database import get_db
from fuelflow.app.core.exceptions import ValidationError
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.user import User
from fuelflow.app.schemas.payment import PaymentCreate, PaymentOut
from fuelflow.app.services import payments as payment_service

router = APIRouter()


@router.post("", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def record_payment(
    body: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Payment:
    station_id = body.station_id or current_user.station_id
    if station_id is None:
        raise ValidationError.for_field("station_id", "A station is required")
    ensure_station_access(current_user, station_id)
    return payment_service.record_payment(
        db, body, station_id, current_user.id, client_ip(request)
    )


@router.get("/{station_id}", response_model=list[PaymentOut])
def list_payments(
    station_id: UUID,
    payment_type: PaymentType | None = Query(None, alias="type"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Payment]:
    ensure_station_access(current_user, station_id)
    return payment_service.list_payments(db, station_id, payment_type)


@router.delete("/{station_id}/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(
    station_id: UUID,
    payment_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    ensure_station_access(current_user, station_id)
    payment_service.delete_payment(
        db, station_id, payment_id, current_user.id, client_ip(request)
    )
