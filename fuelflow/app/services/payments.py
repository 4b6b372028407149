"""Customer receipts and supplier payments.

A receivable payment lowers the customer's outstanding amount, a payable
payment lowers the supplier's. The party's running balance and the payment
row are written in the same transaction.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import NotFoundError, ValidationError
from fuelflow.app.models.journal import SourceType
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.schemas.payment import PaymentCreate
from fuelflow.app.services import customers as customer_service
from fuelflow.app.services import posting
from fuelflow.app.services import suppliers as supplier_service
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.stations import get_station

logger = logging.getLogger(__name__)


def _adjust_party(db: Session, payment: Payment, sign: int) -> None:
    if payment.payment_type == PaymentType.RECEIVABLE:
        customer_service.adjust_outstanding(db, payment.customer_id, sign * payment.amount)
    else:
        supplier_service.adjust_outstanding(db, payment.supplier_id, sign * payment.amount)


def record_payment(
    db: Session,
    payload: PaymentCreate,
    station_id: UUID,
    user_id: UUID,
    ip_address: str | None = None,
) -> Payment:
    get_station(db, station_id)
    if payload.payment_type == PaymentType.RECEIVABLE:
        if payload.customer_id is None:
            raise ValidationError.for_field("customer_id", "A receivable payment requires a customer")
        customer_service.get_customer(db, payload.customer_id)
        supplier_id, customer_id = None, payload.customer_id
    else:
        if payload.supplier_id is None:
            raise ValidationError.for_field("supplier_id", "A payable payment requires a supplier")
        supplier_service.get_supplier(db, payload.supplier_id)
        supplier_id, customer_id = payload.supplier_id, None

    with atomic(db):
        payment = Payment(
            station_id=station_id,
            user_id=user_id,
            customer_id=customer_id,
            supplier_id=supplier_id,
            **payload.model_dump(
                exclude={"station_id", "customer_id", "supplier_id"}, exclude_none=True
            ),
        )
        db.add(payment)
        db.flush()
        _adjust_party(db, payment, -1)
        if posting.posting_enabled(db, station_id):
            posting.post_payment(db, payment, user_id)
        log_action(
            db,
            user_id=user_id,
            action="PAYMENT_RECORDED",
            resource_type="payments",
            resource_id=str(payment.id),
            ip_address=ip_address,
            changes={
                "payment_type": payment.payment_type.value,
                "amount": str(payment.amount),
                "party_id": str(customer_id or supplier_id),
            },
        )

    logger.info(
        "Recorded %s payment %s of %s",
        payment.payment_type.value, payment.id, payment.amount,
    )
    db.refresh(payment)
    return payment


def get_payment(db: Session, payment_id: UUID) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError("Payment", payment_id)
    return payment


def list_payments(
    db: Session, station_id: UUID, payment_type: PaymentType | None = None
) -> list[Payment]:
    query = db.query(Payment).filter(Payment.station_id == station_id)
    if payment_type:
        query = query.filter(Payment.payment_type == payment_type)
    return query.order_by(Payment.payment_date.desc()).all()


def delete_payment(
    db: Session,
    station_id: UUID,
    payment_id: UUID,
    user_id: UUID,
    ip_address: str | None = None,
) -> None:
    """Delete a payment of *station_id* and put its amount back on the party's balance."""
    payment = get_payment(db, payment_id)
    if payment.station_id != station_id:
        raise NotFoundError("Payment", payment_id)

    with atomic(db):
        _adjust_party(db, payment, 1)
        if posting.entries_exist(db, SourceType.PAYMENT, payment.id):
            posting.reverse_entries(db, SourceType.PAYMENT, payment.id, user_id)
        log_action(
            db,
            user_id=user_id,
            action="PAYMENT_DELETED",
            resource_type="payments",
            resource_id=str(payment.id),
            ip_address=ip_address,
            changes={"amount": str(payment.amount)},
        )
        db.delete(payment)

    logger.info("Deleted payment %s", payment_id)
