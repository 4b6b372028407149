from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from fuelflow.app.core.dates import as_utc, day_bounds
from fuelflow.app.core.exceptions import ValidationError
from fuelflow.app.models.customer import Customer
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction
from fuelflow.app.models.supplier import POStatus, PurchaseOrder, Supplier

ZERO = Decimal("0")
BUCKETS = ("current", "days_31_60", "days_61_90", "over_90")


def bucket(days_overdue: int) -> str:
    """Assign an aging bucket based on days overdue."""
    if days_overdue <= 30:
        return "current"
    elif days_overdue <= 60:
        return "days_31_60"
    elif days_overdue <= 90:
        return "days_61_90"
    else:
        return "over_90"


def empty_buckets() -> dict[str, Decimal]:
    return {name: ZERO for name in BUCKETS}


def _row(name: str, b: dict[str, Decimal]) -> dict[str, str]:
    row = {k: str(b[k]) for k in BUCKETS}
    row["name"] = name
    row["total"] = str(sum(b.values(), ZERO))
    return row


def _payments_by_party(db: Session, station_id: UUID, column, payment_type: PaymentType) -> dict:
    rows = (
        db.query(column, sa_func.coalesce(sa_func.sum(Payment.amount), 0))
        .filter(
            Payment.station_id == station_id,
            Payment.payment_type == payment_type,
            column.isnot(None),
        )
        .group_by(column)
        .all()
    )
    return {party_id: Decimal(str(total)) for party_id, total in rows}


def _age_documents(
    documents: list[tuple[UUID, datetime, Decimal]],
    paid: dict[UUID, Decimal],
    as_of: datetime,
) -> dict[UUID, tuple[dict[str, Decimal], Decimal]]:
    """Apply each party's payments oldest-first, then bucket what is left.

    *documents* are (party_id, due_date, amount) sorted by due date.
    Returns party_id -> (buckets, overdue).
    """
    remaining_paid = dict(paid)
    result: dict[UUID, tuple[dict[str, Decimal], Decimal]] = {}
    for party_id, due, amount in documents:
        credit = remaining_paid.get(party_id, ZERO)
        applied = min(credit, amount)
        remaining_paid[party_id] = credit - applied
        open_amount = amount - applied
        if open_amount <= ZERO:
            continue

        buckets, overdue = result.get(party_id, (empty_buckets(), ZERO))
        days_since_due = (as_of - as_utc(due)).days
        buckets[bucket(max(0, days_since_due))] += open_amount
        if days_since_due > 0:
            overdue += open_amount
        result[party_id] = (buckets, overdue)
    return result


def get_aging_report(
    db: Session,
    station_id: UUID,
    aging_type: str = "receivable",
    as_of_date: date | None = None,
) -> dict:
    """Receivable or payable aging for one station.

    Receivable: open credit sales aged by due date (transaction date when
    none), reduced FIFO by the customer's receivable payments.
    Payable: non-cancelled purchase orders aged the same way against payable
    payments.
    """
    as_of_date = as_of_date or date.today()
    _, as_of = day_bounds(as_of_date)

    if aging_type == "receivable":
        sales = (
            db.query(SalesTransaction)
            .filter(
                SalesTransaction.station_id == station_id,
                SalesTransaction.payment_method == PaymentMethod.CREDIT,
                SalesTransaction.customer_id.isnot(None),
                SalesTransaction.outstanding_amount > 0,
            )
            .all()
        )
        documents = [
            (s.customer_id, s.due_date or s.transaction_date, s.outstanding_amount)
            for s in sales
        ]
        paid = _payments_by_party(db, station_id, Payment.customer_id, PaymentType.RECEIVABLE)
        model = Customer
    elif aging_type == "payable":
        orders = (
            db.query(PurchaseOrder)
            .filter(
                PurchaseOrder.station_id == station_id,
                PurchaseOrder.status != POStatus.CANCELLED,
            )
            .all()
        )
        documents = [
            (o.supplier_id, o.due_date or o.order_date, o.total_amount) for o in orders
        ]
        paid = _payments_by_party(db, station_id, Payment.supplier_id, PaymentType.PAYABLE)
        model = Supplier
    else:
        raise ValidationError.for_field("type", "Aging type must be 'receivable' or 'payable'")

    documents.sort(key=lambda d: as_utc(d[1]))
    aged = _age_documents(documents, paid, as_of)

    names = defaultdict(str)
    if aged:
        names.update(
            {p.id: p.name for p in db.query(model).filter(model.id.in_(aged.keys()))}
        )

    grand = empty_buckets()
    total_overdue = ZERO
    rows = []
    for party_id, (b, overdue) in sorted(aged.items(), key=lambda x: names[x[0]]):
        rows.append(_row(names[party_id], b))
        for k in grand:
            grand[k] += b[k]
        total_overdue += overdue

    return {
        "station_id": station_id,
        "aging_type": aging_type,
        "as_of_date": str(as_of_date),
        "total_outstanding": str(sum(grand.values(), ZERO)),
        "total_overdue": str(total_overdue),
        "parties": rows,
        "totals": _row("Total", grand),
    }
