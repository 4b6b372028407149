from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from fuelflow.app.core.database import atomic
from fuelflow.app.core.dates import as_utc
from fuelflow.app.core.exceptions import NotFoundError, ValidationError
from fuelflow.app.models.customer import Customer
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction, SalesTransactionItem
from fuelflow.app.schemas.customer import (
    ActivityType,
    CustomerActivityOut,
    CustomerCreate,
    CustomerUpdate,
)
from fuelflow.app.services.audit import log_action


def get_customer(db: Session, customer_id: UUID) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError("Customer", customer_id)
    return customer


def list_customers(db: Session, q: str | None = None) -> list[Customer]:
    query = db.query(Customer)
    if q:
        like = f"%{q}%"
        query = query.filter(
            Customer.name.ilike(like)
            | Customer.contact_email.ilike(like)
            | Customer.contact_phone.ilike(like)
        )
    return query.order_by(Customer.name).all()


def create_customer(
    db: Session, payload: CustomerCreate, user_id: UUID, ip_address: str | None = None
) -> Customer:
    with atomic(db):
        customer = Customer(**payload.model_dump())
        db.add(customer)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="CUSTOMER_CREATED",
            resource_type="customers",
            resource_id=str(customer.id),
            ip_address=ip_address,
            changes={"name": customer.name, "type": customer.customer_type.value},
        )
    db.refresh(customer)
    return customer


def update_customer(
    db: Session,
    customer_id: UUID,
    payload: CustomerUpdate,
    user_id: UUID,
    ip_address: str | None = None,
) -> Customer:
    customer = get_customer(db, customer_id)
    data = payload.model_dump(exclude_unset=True)
    with atomic(db):
        for field, value in data.items():
            setattr(customer, field, value)
        log_action(
            db,
            user_id=user_id,
            action="CUSTOMER_UPDATED",
            resource_type="customers",
            resource_id=str(customer.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(customer)
    return customer


def delete_customer(
    db: Session, customer_id: UUID, user_id: UUID, ip_address: str | None = None
) -> None:
    customer = get_customer(db, customer_id)
    if customer.outstanding_amount > 0:
        raise ValidationError.for_field(
            "outstanding_amount", "Cannot delete customer with outstanding balance"
        )
    with atomic(db):
        db.delete(customer)
        log_action(
            db,
            user_id=user_id,
            action="CUSTOMER_DELETED",
            resource_type="customers",
            resource_id=str(customer_id),
            ip_address=ip_address,
            changes={"name": customer.name},
        )


def adjust_outstanding(db: Session, customer_id: UUID, delta: Decimal) -> None:
    """Move a customer's running balance by *delta* in a single UPDATE.

    Does not commit; call inside ``atomic``.
    """
    result = db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(outstanding_amount=Customer.outstanding_amount + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Customer", customer_id)
    customer = db.get(Customer, customer_id)
    if customer is not None:
        db.expire(customer, ["outstanding_amount"])


def _sale_description(sale: SalesTransaction) -> str:
    lines = ", ".join(f"{item.product.name} ({item.quantity})" for item in sale.items)
    return f"Sale {sale.invoice_number}: {lines}" if lines else f"Sale {sale.invoice_number}"


def list_activities(
    db: Session,
    station_id: UUID,
    customer_id: UUID | None = None,
    activity_type: ActivityType | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[CustomerActivityOut]:
    """Merge a station's customer sales and receipts into one feed, newest first.

    Each row carries the customer's running balance after it. Only credit
    sales move the balance (by their unpaid part) and receivable payments
    reduce it. Balances are accumulated over the customer's history at every
    station, so the figure matches ``outstanding_amount``; the station and
    the filters only decide which rows are returned.
    """
    sales_q = (
        db.query(SalesTransaction)
        .options(
            selectinload(SalesTransaction.items).selectinload(SalesTransactionItem.product),
            selectinload(SalesTransaction.customer),
        )
        .filter(SalesTransaction.customer_id.isnot(None))
    )
    payments_q = (
        db.query(Payment)
        .options(selectinload(Payment.customer))
        .filter(Payment.payment_type == PaymentType.RECEIVABLE, Payment.customer_id.isnot(None))
    )
    if customer_id:
        sales_q = sales_q.filter(SalesTransaction.customer_id == customer_id)
        payments_q = payments_q.filter(Payment.customer_id == customer_id)

    events: list[tuple[datetime, int, object]] = []
    for sale in sales_q.all():
        events.append((as_utc(sale.transaction_date), 0, sale))
    for payment in payments_q.all():
        events.append((as_utc(payment.payment_date), 1, payment))
    # same-instant ties: the sale lands before the payment settling it
    events.sort(key=lambda e: (e[0], e[1]))

    running: dict[UUID, Decimal] = {}
    feed: list[CustomerActivityOut] = []
    for when, _, record in events:
        if isinstance(record, SalesTransaction):
            delta = (
                record.outstanding_amount
                if record.payment_method == PaymentMethod.CREDIT
                else Decimal("0")
            )
            kind: ActivityType = "sale"
        else:
            delta = -record.amount
            kind = "payment"
        balance = running.get(record.customer_id, Decimal("0")) + delta
        running[record.customer_id] = balance

        if record.station_id != station_id:
            continue
        if activity_type and kind != activity_type:
            continue
        if date_from and when < date_from:
            continue
        if date_to and when >= date_to:
            continue

        if kind == "sale":
            row = CustomerActivityOut(
                id=record.id,
                customer_id=record.customer_id,
                customer_name=record.customer.name,
                type="sale",
                description=_sale_description(record),
                amount=record.total_amount,
                balance=balance,
                date=when,
                reference_number=record.invoice_number,
                payment_method=record.payment_method.value,
            )
        else:
            row = CustomerActivityOut(
                id=record.id,
                customer_id=record.customer_id,
                customer_name=record.customer.name,
                type="payment",
                description="Payment received",
                amount=record.amount,
                balance=balance,
                date=when,
                reference_number=record.reference_number,
                payment_method=record.payment_method,
            )
        feed.append(row)

    feed.reverse()
    return feed
