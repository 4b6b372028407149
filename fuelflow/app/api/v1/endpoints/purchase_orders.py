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
from fuelflow.app.models.supplier import PurchaseOrder
from fuelflow.app.models.user import User
from fuelflow.app.schemas.supplier import (
    PurchaseOrderCreate,
    PurchaseOrderDetail,
    PurchaseOrderOut,
    PurchaseOrderWithItems,
)
from fuelflow.app.services import purchases as purchase_service

router = APIRouter()


@router.post("", response_model=PurchaseOrderWithItems, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    body: PurchaseOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> dict:
    ensure_station_access(current_user, body.order.station_id)
    order, items = purchase_service.create_purchase_order(
        db, body.order, body.items, current_user.id, client_ip(request)
    )
    return {"order": order, "items": items}


@router.get("/detail/{order_id}", response_model=PurchaseOrderDetail)
def get_purchase_order_detail(
    order_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> PurchaseOrderDetail:
    detail = purchase_service.get_purchase_order_detail(db, order_id)
    ensure_station_access(current_user, detail.station_id)
    return detail


@router.get("/{station_id}", response_model=list[PurchaseOrderOut])
def list_purchase_orders(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PurchaseOrder]:
    ensure_station_access(current_user, station_id)
    return purchase_service.list_purchase_orders(db, station_id)


@router.post("/{order_id}/receive", response_model=PurchaseOrderOut)
def receive_purchase_order(
    order_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> PurchaseOrder:
    order = purchase_service.get_purchase_order(db, order_id)
    ensure_station_access(current_user, order.station_id)
    return purchase_service.receive_purchase_order(
        db, order_id, current_user.id, client_ip(request)
    )


@router.post("/{order_id}/cancel", response_model=PurchaseOrderOut)
def cancel_purchase_order(
    order_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> PurchaseOrder:
    order = purchase_service.get_purchase_order(db, order_id)
    ensure_station_access(current_user, order.station_id)
    return purchase_service.cancel_purchase_order(
        db, order_id, current_user.id, client_ip(request)
    )


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase_order(
    order_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> None:
    order = purchase_service.get_purchase_order(db, order_id)
    ensure_station_access(current_user, order.station_id)
    purchase_service.delete_purchase_order(db, order_id, current_user.id, client_ip(request))
