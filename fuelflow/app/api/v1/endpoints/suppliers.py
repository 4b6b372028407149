from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, get_current_user, manager_or_admin
from fuelflow.app.core.database import get_db
from fuelflow.app.models.supplier import Supplier
from fuelflow.app.models.user import User
from fuelflow.app.schemas.supplier import SupplierCreate, SupplierOut, SupplierUpdate
from fuelflow.app.services import suppliers as supplier_service

router = APIRouter()


@router.get("", response_model=list[SupplierOut])
def list_suppliers(
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> list[Supplier]:
    return supplier_service.list_suppliers(db)


@router.post("", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Supplier:
    return supplier_service.create_supplier(db, payload, current_user.id, client_ip(request))


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(
    supplier_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> Supplier:
    return supplier_service.get_supplier(db, supplier_id)


@router.put("/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: UUID,
    payload: SupplierUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Supplier:
    return supplier_service.update_supplier(
        db, supplier_id, payload, current_user.id, client_ip(request)
    )


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> None:
    supplier_service.delete_supplier(db, supplier_id, current_user.id, client_ip(request))
