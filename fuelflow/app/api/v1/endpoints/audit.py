from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import admin_only
from fuelflow.app.core.database import get_db
from fuelflow.app.models.user import User
from fuelflow.app.services.audit import list_audit_logs as _list_audit_logs

router = APIRouter()


class AuditLogOut(BaseModel):
    id: UUID
    user_id: UUID | None
    action: str
    resource_type: str
    resource_id: str
    changes: dict[str, Any] | None
    ip_address: str | None
    timestamp: datetime


@router.get("", response_model=list[AuditLogOut])
def list_audit_logs(
    user_id: UUID | None = Query(None, description="Filter by user ID"),
    action: str | None = Query(None, description="Filter by action (e.g. LOGIN_SUCCESS, SALE_RECORDED)"),
    resource_type: str | None = Query(None, description="Filter by table (e.g. sales_transactions, tanks)"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _admin: User = Depends(admin_only),
) -> list[AuditLogOut]:
    rows = _list_audit_logs(
        db,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        limit=limit,
        offset=offset,
    )
    return [
        AuditLogOut(
            id=r.id,
            user_id=r.changed_by,
            action=r.action,
            resource_type=r.table_name,
            resource_id=r.record_id,
            changes=r.new_values,
            ip_address=r.ip_address,
            timestamp=r.created_at,
        )
        for r in rows
    ]
