"""Sale recording.

One sale is one unit of work: the header, its items, the outbound stock
movement for every tank-backed item, the customer's balance change for
credit sales and (optionally) the ledger entry all commit together or not
at all.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import NotFoundError, ValidationError
from fuelflow.app.models.customer import Customer
from fuelflow.app.models.inventory import MovementReference, MovementType, Product, Tank
from fuelflow.app.models.journal import SourceType
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction, SalesTransactionItem
from fuelflow.app.models.user import User
from fuelflow.app.schemas.sales import (
    SaleDetail,
    SaleHeaderCreate,
    SaleItemCreate,
    SaleItemDetail,
    SaleOut,
)
from fuelflow.app.services import customers as customer_service
from fuelflow.app.services import posting
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.inventory import apply_movement, movements_for_reference
from fuelflow.app.services.numbering import generate_sale_invoice_number
from fuelflow.app.services.stations import get_station

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return (quantity * unit_price).quantize(CENTS, rounding=ROUND_HALF_UP)


# ─── Validation ──────────────────────────────────────────────────────────────


def validate_sale(
    db: Session, header: SaleHeaderCreate, items: list[SaleItemCreate]
) -> None:
    """Reject malformed sales before anything is written."""
    errors: list[dict[str, str]] = []

    if not items:
        errors.append({"field": "items", "message": "A sale must contain at least one item"})

    for name in ("subtotal", "tax_amount", "total_amount", "paid_amount", "outstanding_amount"):
        if getattr(header, name) < 0:
            errors.append({"field": f"transaction.{name}", "message": "Amount must be non-negative"})

    if header.subtotal + header.tax_amount != header.total_amount:
        errors.append({
            "field": "transaction.total_amount",
            "message": "Total must equal subtotal plus tax",
        })
    if header.paid_amount > header.total_amount:
        errors.append({
            "field": "transaction.paid_amount",
            "message": "Paid amount cannot exceed total amount",
        })
    if (
        header.payment_method == PaymentMethod.CREDIT
        and header.outstanding_amount != header.total_amount - header.paid_amount
    ):
        errors.append({
            "field": "transaction.outstanding_amount",
            "message": "Outstanding amount must equal total minus paid for credit sales",
        })

    if errors:
        raise ValidationError(errors[0]["message"], errors=errors)

    get_station(db, header.station_id)
    if header.customer_id is not None:
        customer_service.get_customer(db, header.customer_id)

    product_ids = {item.product_id for item in items}
    found = {p.id for p in db.query(Product.id).filter(Product.id.in_(product_ids)).all()}
    for index, item in enumerate(items):
        if item.product_id not in found:
            errors.append({"field": f"items.{index}.product_id", "message": "Product not found"})
    if errors:
        raise ValidationError(errors[0]["message"], errors=errors)


# ─── Item & balance helpers (no commit) ──────────────────────────────────────


def _create_items(
    db: Session,
    sale: SalesTransaction,
    items: list[SaleItemCreate],
    user_id: UUID,
) -> list[SalesTransactionItem]:
    created: list[SalesTransactionItem] = []
    for position, item in enumerate(items):
        row = SalesTransactionItem(
            transaction_id=sale.id,
            position=position,
            product_id=item.product_id,
            tank_id=item.tank_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=line_total(item.quantity, item.unit_price),
        )
        db.add(row)
        if item.tank_id is not None:
            apply_movement(
                db,
                tank_id=item.tank_id,
                station_id=sale.station_id,
                user_id=user_id,
                movement_type=MovementType.OUT,
                quantity=item.quantity,
                product_id=item.product_id,
                reference_id=sale.id,
                reference_type=MovementReference.SALE,
                notes=f"Sale - Invoice {sale.invoice_number}",
            )
        created.append(row)
    db.flush()
    return created


def _credit_exposure(sale: SalesTransaction) -> Decimal:
    if sale.payment_method == PaymentMethod.CREDIT and sale.customer_id is not None:
        return sale.outstanding_amount
    return ZERO


def _reverse_items(db: Session, sale: SalesTransaction, user_id: UUID, reason: str) -> None:
    """Return tank stock taken by *sale* and drop its items."""
    for item in list(sale.items):
        if item.tank_id is not None:
            apply_movement(
                db,
                tank_id=item.tank_id,
                station_id=sale.station_id,
                user_id=user_id,
                movement_type=MovementType.IN,
                quantity=item.quantity,
                reference_id=sale.id,
                reference_type=MovementReference.SALE,
                notes=f"{reason} - Invoice {sale.invoice_number}",
                enforce_capacity=False,
            )
        db.delete(item)
    db.flush()
    db.expire(sale, ["items"])


# ─── Operations ──────────────────────────────────────────────────────────────


def record_sale(
    db: Session,
    header: SaleHeaderCreate,
    items: list[SaleItemCreate],
    user_id: UUID,
    ip_address: str | None = None,
) -> tuple[SalesTransaction, list[SalesTransactionItem]]:
    """Persist a sale with its items, stock movements and balance change."""
    validate_sale(db, header, items)

    with atomic(db):
        sale = SalesTransaction(
            invoice_number=generate_sale_invoice_number(),
            user_id=user_id,
            **header.model_dump(exclude_none=True),
        )
        db.add(sale)
        db.flush()

        created = _create_items(db, sale, items, user_id)

        exposure = _credit_exposure(sale)
        if exposure:
            customer_service.adjust_outstanding(db, sale.customer_id, exposure)

        if posting.posting_enabled(db, sale.station_id):
            posting.post_sale(db, sale, user_id)

        log_action(
            db,
            user_id=user_id,
            action="SALE_RECORDED",
            resource_type="sales_transactions",
            resource_id=str(sale.id),
            ip_address=ip_address,
            changes={
                "invoice_number": sale.invoice_number,
                "payment_method": sale.payment_method.value,
                "total_amount": str(sale.total_amount),
                "items": len(created),
            },
        )

    logger.info(
        "Recorded sale %s (%s items, total %s)",
        sale.invoice_number, len(created), sale.total_amount,
    )
    db.refresh(sale)
    return sale, created


def get_sale(db: Session, sale_id: UUID) -> SalesTransaction:
    sale = (
        db.query(SalesTransaction)
        .options(selectinload(SalesTransaction.items))
        .filter(SalesTransaction.id == sale_id)
        .first()
    )
    if not sale:
        raise NotFoundError("Sales transaction", sale_id)
    return sale


def update_sale(
    db: Session,
    sale_id: UUID,
    header: SaleHeaderCreate,
    items: list[SaleItemCreate],
    user_id: UUID,
    ip_address: str | None = None,
) -> tuple[SalesTransaction, list[SalesTransactionItem]]:
    """Replace a sale's header and items in one transaction.

    Old items are deleted and recreated. Stock taken by the old items is
    returned first, the customer balance moves by the difference in credit
    exposure, and a posted ledger entry is reversed and re-posted.
    """
    sale = get_sale(db, sale_id)
    if header.station_id != sale.station_id:
        raise ValidationError.for_field(
            "transaction.station_id", "A sale cannot be moved to another station"
        )
    validate_sale(db, header, items)

    old_customer_id = sale.customer_id
    old_exposure = _credit_exposure(sale)

    with atomic(db):
        _reverse_items(db, sale, user_id, "Sale edited")

        for field, value in header.model_dump(exclude={"station_id"}).items():
            if field == "transaction_date" and value is None:
                continue
            setattr(sale, field, value)
        db.flush()

        created = _create_items(db, sale, items, user_id)

        new_exposure = _credit_exposure(sale)
        if old_customer_id is not None and old_customer_id == sale.customer_id:
            if new_exposure != old_exposure:
                customer_service.adjust_outstanding(db, sale.customer_id, new_exposure - old_exposure)
        else:
            if old_exposure:
                customer_service.adjust_outstanding(db, old_customer_id, -old_exposure)
            if new_exposure:
                customer_service.adjust_outstanding(db, sale.customer_id, new_exposure)

        has_entries = posting.entries_exist(db, SourceType.SALE, sale.id)
        if has_entries:
            posting.reverse_entries(db, SourceType.SALE, sale.id, user_id)
        if has_entries or posting.posting_enabled(db, sale.station_id):
            posting.post_sale(db, sale, user_id)

        log_action(
            db,
            user_id=user_id,
            action="SALE_UPDATED",
            resource_type="sales_transactions",
            resource_id=str(sale.id),
            ip_address=ip_address,
            changes={
                "total_amount": str(sale.total_amount),
                "items": len(created),
            },
        )

    db.refresh(sale)
    return sale, created


def delete_sale(
    db: Session, sale_id: UUID, user_id: UUID, ip_address: str | None = None
) -> None:
    """Delete a sale, returning its stock and undoing its balance change."""
    sale = get_sale(db, sale_id)
    exposure = _credit_exposure(sale)

    with atomic(db):
        _reverse_items(db, sale, user_id, "Sale deleted")
        if exposure:
            customer_service.adjust_outstanding(db, sale.customer_id, -exposure)
        if posting.entries_exist(db, SourceType.SALE, sale.id):
            posting.reverse_entries(db, SourceType.SALE, sale.id, user_id)
        log_action(
            db,
            user_id=user_id,
            action="SALE_DELETED",
            resource_type="sales_transactions",
            resource_id=str(sale.id),
            ip_address=ip_address,
            changes={"invoice_number": sale.invoice_number},
        )
        db.delete(sale)

    logger.info("Deleted sale %s", sale_id)


def list_sales(db: Session, station_id: UUID, limit: int | None = None) -> list[SalesTransaction]:
    query = (
        db.query(SalesTransaction)
        .filter(SalesTransaction.station_id == station_id)
        .order_by(SalesTransaction.transaction_date.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def get_sale_detail(db: Session, sale_id: UUID) -> SaleDetail:
    sale = get_sale(db, sale_id)
    station = get_station(db, sale.station_id)
    customer = (
        db.query(Customer).filter(Customer.id == sale.customer_id).first()
        if sale.customer_id
        else None
    )
    cashier = db.query(User).filter(User.id == sale.user_id).first()

    tank_names = {
        t.id: t.name
        for t in db.query(Tank).filter(
            Tank.id.in_({i.tank_id for i in sale.items if i.tank_id})
        )
    }
    items = [
        SaleItemDetail(
            id=item.id,
            transaction_id=item.transaction_id,
            product_id=item.product_id,
            tank_id=item.tank_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            product_name=item.product.name,
            tank_name=tank_names.get(item.tank_id) if item.tank_id else None,
        )
        for item in sale.items
    ]
    base = SaleOut.model_validate(sale).model_dump()
    return SaleDetail(
        **base,
        customer_name=customer.name if customer else None,
        station_name=station.name,
        cashier_username=cashier.username if cashier else None,
        items=items,
    )


def sale_movements(db: Session, sale_id: UUID):
    return movements_for_reference(db, MovementReference.SALE, sale_id)
