from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, get_current_user, manager_or_admin
from fuelflow.app.core.database import get_db
from fuelflow.app.models.inventory import PriceHistory, Product
from fuelflow.app.models.user import User
from fuelflow.app.schemas.inventory import (
    BulkPriceUpdate,
    PriceHistoryOut,
    ProductCreate,
    ProductOut,
    ProductUpdate,
)
from fuelflow.app.services import inventory as inventory_service

router = APIRouter()


@router.get("", response_model=list[ProductOut])
def list_products(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> list[Product]:
    return inventory_service.list_products(db, active_only=active_only)


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    body: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Product:
    return inventory_service.create_product(db, body, current_user.id, client_ip(request))


@router.post("/bulk-update", response_model=list[ProductOut])
def bulk_update(
    body: BulkPriceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> list[Product]:
    return inventory_service.bulk_update_prices(
        db, body, current_user.id, current_user.station_id, client_ip(request)
    )


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    body: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> Product:
    return inventory_service.update_product(
        db, product_id, body, current_user.id, current_user.station_id, client_ip(request)
    )


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> None:
    inventory_service.delete_product(db, product_id, current_user.id, client_ip(request))


@router.get("/{product_id}/price-history", response_model=list[PriceHistoryOut])
def price_history(
    product_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(get_current_user),
) -> list[PriceHistory]:
    return inventory_service.list_price_history(db, product_id)
