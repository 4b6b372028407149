from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, get_current_user, manager_or_admin
from fuelflow.app.core.database import get_db
from fuelflow.app.models.customer import Customer
from fuelflow.app.models.user import User
from fuelflow.app.schemas.customer import CustomerCreate, CustomerOut, CustomerUpdate
from fuelflow.app.services import customers as customer_service

router = APIRouter()


@router.get("", response_model=list[CustomerOut])
def list_customers(
    q: str | None = Query(None, description="Search by name, email, or phone"),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> list[Customer]:
    return customer_service.list_customers(db, q)


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Customer:
    return customer_service.create_customer(db, payload, current_user.id, client_ip(request))


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> Customer:
    return customer_service.get_customer(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: UUID,
    payload: CustomerUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Customer:
    return customer_service.update_customer(
        db, customer_id, payload, current_user.id, client_ip(request)
    )


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> None:
    customer_service.delete_customer(db, customer_id, current_user.id, client_ip(request))
