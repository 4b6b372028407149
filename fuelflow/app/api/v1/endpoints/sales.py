from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import client_ip, ensure_station_access, get_current_user
from fuelflow.app.core.database import get_db
from fuelflow.app.models.sales import SalesTransaction
from fuelflow.app.models.user import User
from fuelflow.app.schemas.sales import SaleCreate, SaleDetail, SaleOut, SaleWithItems
from fuelflow.app.services import sales as sales_service

router = APIRouter()

RECENT_SALES_LIMIT = 10


@router.post("", response_model=SaleWithItems, status_code=status.HTTP_201_CREATED)
def create_sale(
    body: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    ensure_station_access(current_user, body.transaction.station_id)
    sale, items = sales_service.record_sale(
        db, body.transaction, body.items, current_user.id, client_ip(request)
    )
    return {"transaction": sale, "items": items}


@router.get("/detail/{sale_id}", response_model=SaleDetail)
def get_sale_detail(
    sale_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SaleDetail:
    detail = sales_service.get_sale_detail(db, sale_id)
    ensure_station_access(current_user, detail.station_id)
    return detail


@router.get("/{station_id}", response_model=list[SaleOut])
def list_sales(
    station_id: UUID,
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[SalesTransaction]:
    ensure_station_access(current_user, station_id)
    return sales_service.list_sales(db, station_id, limit)


@router.get("/{station_id}/recent", response_model=list[SaleOut])
def recent_sales(
    station_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[SalesTransaction]:
    ensure_station_access(current_user, station_id)
    return sales_service.list_sales(db, station_id, RECENT_SALES_LIMIT)


@router.put("/{sale_id}", response_model=SaleWithItems)
def update_sale(
    sale_id: UUID,
    body: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    ensure_station_access(current_user, sales_service.get_sale(db, sale_id).station_id)
    sale, items = sales_service.update_sale(
        db, sale_id, body.transaction, body.items, current_user.id, client_ip(request)
    )
    return {"transaction": sale, "items": items}


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(
    sale_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> None:
    ensure_station_access(current_user, sales_service.get_sale(db, sale_id).station_id)
    sales_service.delete_sale(db, sale_id, current_user.id, client_ip(request))
