"""Check stored running balances against the transaction history.

Customer and supplier ``outstanding_amount`` are counters moved by sales,
purchase orders and payments. They can be recomputed from history at any
time:

    customer  = Σ outstanding of credit sales   − Σ receivable payments
    supplier  = Σ total of non-cancelled orders − Σ payable payments

Parties are global, so expected balances always span every station. When a
station is given, only parties with activity at that station are reported.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.dates import utcnow
from fuelflow.app.models.customer import Customer
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction
from fuelflow.app.models.supplier import POStatus, PurchaseOrder, Supplier
from fuelflow.app.schemas.reports import BalanceCheckOut, BalanceDrift
from fuelflow.app.services.audit import log_action

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _sum_by(db: Session, key, amount, *filters) -> dict[UUID, Decimal]:
    rows = (
        db.query(key, func.coalesce(func.sum(amount), 0))
        .filter(key.isnot(None), *filters)
        .group_by(key)
        .all()
    )
    return {party_id: Decimal(str(total)) for party_id, total in rows}


def _active_parties(db: Session, station_id: UUID) -> tuple[set[UUID], set[UUID]]:
    customers = {
        cid for (cid,) in db.query(SalesTransaction.customer_id)
        .filter(SalesTransaction.station_id == station_id, SalesTransaction.customer_id.isnot(None))
        .distinct()
    }
    customers |= {
        cid for (cid,) in db.query(Payment.customer_id)
        .filter(Payment.station_id == station_id, Payment.customer_id.isnot(None))
        .distinct()
    }
    suppliers = {
        sid for (sid,) in db.query(PurchaseOrder.supplier_id)
        .filter(PurchaseOrder.station_id == station_id)
        .distinct()
    }
    suppliers |= {
        sid for (sid,) in db.query(Payment.supplier_id)
        .filter(Payment.station_id == station_id, Payment.supplier_id.isnot(None))
        .distinct()
    }
    return customers, suppliers


def expected_customer_balances(db: Session) -> dict[UUID, Decimal]:
    credits = _sum_by(
        db,
        SalesTransaction.customer_id,
        SalesTransaction.outstanding_amount,
        SalesTransaction.payment_method == PaymentMethod.CREDIT,
    )
    receipts = _sum_by(
        db, Payment.customer_id, Payment.amount, Payment.payment_type == PaymentType.RECEIVABLE
    )
    return {
        cid: credits.get(cid, ZERO) - receipts.get(cid, ZERO)
        for cid in credits.keys() | receipts.keys()
    }


def expected_supplier_balances(db: Session) -> dict[UUID, Decimal]:
    orders = _sum_by(
        db,
        PurchaseOrder.supplier_id,
        PurchaseOrder.total_amount,
        PurchaseOrder.status != POStatus.CANCELLED,
    )
    paid = _sum_by(
        db, Payment.supplier_id, Payment.amount, Payment.payment_type == PaymentType.PAYABLE
    )
    return {
        sid: orders.get(sid, ZERO) - paid.get(sid, ZERO)
        for sid in orders.keys() | paid.keys()
    }


def check_balances(db: Session, station_id: UUID | None = None) -> BalanceCheckOut:
    """Report every customer/supplier whose stored balance differs from history."""
    expected_c = expected_customer_balances(db)
    expected_s = expected_supplier_balances(db)

    customers = db.query(Customer).all()
    suppliers = db.query(Supplier).all()
    if station_id is not None:
        active_c, active_s = _active_parties(db, station_id)
        customers = [c for c in customers if c.id in active_c]
        suppliers = [s for s in suppliers if s.id in active_s]

    drift: list[BalanceDrift] = []
    for party_type, parties, expected in (
        ("customer", customers, expected_c),
        ("supplier", suppliers, expected_s),
    ):
        for party in parties:
            want = expected.get(party.id, ZERO)
            if party.outstanding_amount != want:
                drift.append(
                    BalanceDrift(
                        party_type=party_type,
                        party_id=party.id,
                        name=party.name,
                        stored=party.outstanding_amount,
                        expected=want,
                        difference=party.outstanding_amount - want,
                    )
                )

    if drift:
        logger.warning("Balance check found %d drifted parties", len(drift))
    return BalanceCheckOut(
        station_id=station_id,
        checked_at=utcnow(),
        customers_checked=len(customers),
        suppliers_checked=len(suppliers),
        drift=drift,
    )


def reconcile(
    db: Session,
    user_id: UUID,
    station_id: UUID | None = None,
    ip_address: str | None = None,
) -> BalanceCheckOut:
    """Rewrite drifted counters to their recomputed values."""
    report = check_balances(db, station_id)
    if not report.drift:
        return report

    with atomic(db):
        for row in report.drift:
            model = Customer if row.party_type == "customer" else Supplier
            db.execute(
                update(model)
                .where(model.id == row.party_id)
                .values(outstanding_amount=row.expected)
                .execution_options(synchronize_session=False)
            )
            log_action(
                db,
                user_id=user_id,
                action="BALANCE_RECONCILED",
                resource_type=f"{row.party_type}s",
                resource_id=str(row.party_id),
                ip_address=ip_address,
                changes={"stored": str(row.stored), "expected": str(row.expected)},
            )
    db.expire_all()

    logger.info("Reconciled %d balances", len(report.drift))
    report.reconciled = True
    return report
