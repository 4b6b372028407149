from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import NotFoundError, ValidationError
from fuelflow.app.models.supplier import Supplier
from fuelflow.app.schemas.supplier import SupplierCreate, SupplierUpdate
from fuelflow.app.services.audit import log_action


def get_supplier(db: Session, supplier_id: UUID) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def list_suppliers(db: Session) -> list[Supplier]:
    return db.query(Supplier).order_by(Supplier.name).all()


def create_supplier(
    db: Session, payload: SupplierCreate, user_id: UUID, ip_address: str | None = None
) -> Supplier:
    with atomic(db):
        supplier = Supplier(**payload.model_dump())
        db.add(supplier)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="SUPPLIER_CREATED",
            resource_type="suppliers",
            resource_id=str(supplier.id),
            ip_address=ip_address,
            changes={"name": supplier.name},
        )
    db.refresh(supplier)
    return supplier


def update_supplier(
    db: Session,
    supplier_id: UUID,
    payload: SupplierUpdate,
    user_id: UUID,
    ip_address: str | None = None,
) -> Supplier:
    supplier = get_supplier(db, supplier_id)
    data = payload.model_dump(exclude_unset=True)
    with atomic(db):
        for field, value in data.items():
            setattr(supplier, field, value)
        log_action(
            db,
            user_id=user_id,
            action="SUPPLIER_UPDATED",
            resource_type="suppliers",
            resource_id=str(supplier.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(supplier)
    return supplier


def delete_supplier(
    db: Session, supplier_id: UUID, user_id: UUID, ip_address: str | None = None
) -> None:
    supplier = get_supplier(db, supplier_id)
    if supplier.outstanding_amount > 0:
        raise ValidationError.for_field(
            "outstanding_amount", "Cannot delete supplier with outstanding balance"
        )
    with atomic(db):
        db.delete(supplier)
        log_action(
            db,
            user_id=user_id,
            action="SUPPLIER_DELETED",
            resource_type="suppliers",
            resource_id=str(supplier_id),
            ip_address=ip_address,
            changes={"name": supplier.name},
        )


def adjust_outstanding(db: Session, supplier_id: UUID, delta: Decimal) -> None:
    """Move a supplier's running balance by *delta* in a single UPDATE.

    Does not commit; call inside ``atomic``.
    """
    result = db.execute(
        update(Supplier)
        .where(Supplier.id == supplier_id)
        .values(outstanding_amount=Supplier.outstanding_amount + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Supplier", supplier_id)
    supplier = db.get(Supplier, supplier_id)
    if supplier is not None:
        db.expire(supplier, ["outstanding_amount"])
