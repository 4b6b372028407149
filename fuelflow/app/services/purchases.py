"""Purchase orders: creation, delivery, cancellation.

Creating an order books the supplier's payable immediately; stock only
moves when the order is received.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from fuelflow.app.core.database import atomic
from fuelflow.app.core.dates import utcnow
from fuelflow.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from fuelflow.app.models.inventory import MovementReference, MovementType, Product
from fuelflow.app.models.journal import SourceType
from fuelflow.app.models.supplier import POStatus, PurchaseOrder, PurchaseOrderItem
from fuelflow.app.schemas.supplier import (
    POHeaderCreate,
    POItemCreate,
    POItemOut,
    PurchaseOrderDetail,
    PurchaseOrderOut,
)
from fuelflow.app.services import posting
from fuelflow.app.services import suppliers as supplier_service
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.inventory import apply_movement, get_tank
from fuelflow.app.services.numbering import generate_purchase_order_number
from fuelflow.app.services.stations import get_or_create_settings, get_station

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def create_purchase_order(
    db: Session,
    header: POHeaderCreate,
    items: list[POItemCreate],
    user_id: UUID,
    ip_address: str | None = None,
) -> tuple[PurchaseOrder, list[PurchaseOrderItem]]:
    if not items:
        raise ValidationError.for_field("items", "A purchase order must contain at least one item")
    get_station(db, header.station_id)
    supplier_service.get_supplier(db, header.supplier_id)
    product_ids = {item.product_id for item in items}
    found = {p.id for p in db.query(Product.id).filter(Product.id.in_(product_ids)).all()}
    missing = product_ids - found
    if missing:
        raise NotFoundError("Product", next(iter(missing)))
    for index, item in enumerate(items):
        if item.tank_id is None:
            continue
        tank = get_tank(db, item.tank_id)
        if tank.station_id != header.station_id or tank.product_id != item.product_id:
            raise ValidationError.for_field(
                f"items.{index}.tank_id", "Tank must belong to the station and hold the product"
            )

    with atomic(db):
        settings_row = get_or_create_settings(db, header.station_id)
        subtotal = sum((_money(i.quantity * i.unit_price) for i in items), Decimal("0"))
        tax = (
            _money(subtotal * settings_row.tax_rate / 100)
            if settings_row.tax_enabled
            else Decimal("0")
        )

        order = PurchaseOrder(
            order_number=generate_purchase_order_number(),
            user_id=user_id,
            currency_code=settings_row.currency_code,
            subtotal=subtotal,
            tax_amount=tax,
            total_amount=subtotal + tax,
            **header.model_dump(exclude_none=True),
        )
        db.add(order)
        db.flush()

        created = []
        for position, item in enumerate(items):
            row = PurchaseOrderItem(
                order_id=order.id,
                position=position,
                product_id=item.product_id,
                tank_id=item.tank_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=_money(item.quantity * item.unit_price),
            )
            db.add(row)
            created.append(row)
        db.flush()

        supplier_service.adjust_outstanding(db, order.supplier_id, order.total_amount)

        if posting.posting_enabled(db, order.station_id):
            posting.post_purchase(db, order, user_id)

        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_ORDER_CREATED",
            resource_type="purchase_orders",
            resource_id=str(order.id),
            ip_address=ip_address,
            changes={
                "order_number": order.order_number,
                "supplier_id": str(order.supplier_id),
                "total_amount": str(order.total_amount),
            },
        )

    logger.info("Created purchase order %s (total %s)", order.order_number, order.total_amount)
    db.refresh(order)
    return order, created


def get_purchase_order(db: Session, order_id: UUID) -> PurchaseOrder:
    order = (
        db.query(PurchaseOrder)
        .options(selectinload(PurchaseOrder.items))
        .filter(PurchaseOrder.id == order_id)
        .first()
    )
    if not order:
        raise NotFoundError("Purchase order", order_id)
    return order


def receive_purchase_order(
    db: Session, order_id: UUID, user_id: UUID, ip_address: str | None = None
) -> PurchaseOrder:
    """Mark a pending order delivered and put its tank items into stock."""
    order = get_purchase_order(db, order_id)
    if order.status != POStatus.PENDING:
        raise ConflictError(f"Purchase order {order.order_number} is {order.status.value}")

    with atomic(db):
        for item in order.items:
            if item.tank_id is not None:
                apply_movement(
                    db,
                    tank_id=item.tank_id,
                    station_id=order.station_id,
                    user_id=user_id,
                    movement_type=MovementType.IN,
                    quantity=item.quantity,
                    product_id=item.product_id,
                    reference_id=order.id,
                    reference_type=MovementReference.PURCHASE,
                    notes=f"Purchase - PO {order.order_number}",
                )
            item.received_quantity = item.quantity
        order.status = POStatus.DELIVERED
        order.actual_delivery_date = utcnow()
        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_ORDER_RECEIVED",
            resource_type="purchase_orders",
            resource_id=str(order.id),
            ip_address=ip_address,
        )

    logger.info("Received purchase order %s", order.order_number)
    db.refresh(order)
    return order


def cancel_purchase_order(
    db: Session, order_id: UUID, user_id: UUID, ip_address: str | None = None
) -> PurchaseOrder:
    order = get_purchase_order(db, order_id)
    if order.status != POStatus.PENDING:
        raise ConflictError("Only pending purchase orders can be cancelled")

    with atomic(db):
        supplier_service.adjust_outstanding(db, order.supplier_id, -order.total_amount)
        if posting.entries_exist(db, SourceType.PURCHASE, order.id):
            posting.reverse_entries(db, SourceType.PURCHASE, order.id, user_id)
        order.status = POStatus.CANCELLED
        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_ORDER_CANCELLED",
            resource_type="purchase_orders",
            resource_id=str(order.id),
            ip_address=ip_address,
        )
    db.refresh(order)
    return order


def delete_purchase_order(
    db: Session,
    order_id: UUID,
    user_id: UUID,
    ip_address: str | None = None,
) -> PurchaseOrder:
    """Delete a pending or cancelled order. Returns the deleted row for scope checks."""
    order = get_purchase_order(db, order_id)
    if order.status == POStatus.DELIVERED:
        raise ConflictError("Delivered purchase orders cannot be deleted")

    with atomic(db):
        if order.status == POStatus.PENDING:
            supplier_service.adjust_outstanding(db, order.supplier_id, -order.total_amount)
            if posting.entries_exist(db, SourceType.PURCHASE, order.id):
                posting.reverse_entries(db, SourceType.PURCHASE, order.id, user_id)
        log_action(
            db,
            user_id=user_id,
            action="PURCHASE_ORDER_DELETED",
            resource_type="purchase_orders",
            resource_id=str(order.id),
            ip_address=ip_address,
            changes={"order_number": order.order_number},
        )
        db.delete(order)
    return order


def list_purchase_orders(db: Session, station_id: UUID) -> list[PurchaseOrder]:
    return (
        db.query(PurchaseOrder)
        .filter(PurchaseOrder.station_id == station_id)
        .order_by(PurchaseOrder.order_date.desc())
        .all()
    )


def get_purchase_order_detail(db: Session, order_id: UUID) -> PurchaseOrderDetail:
    order = get_purchase_order(db, order_id)
    return PurchaseOrderDetail(
        **PurchaseOrderOut.model_validate(order).model_dump(),
        supplier_name=order.supplier.name,
        items=[POItemOut.model_validate(i) for i in order.items],
    )
