"""Service layer for station reports."""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from fuelflow.app.core.dates import as_utc, day_bounds, utcnow
from fuelflow.app.models.customer import Customer
from fuelflow.app.models.expense import Expense
from fuelflow.app.models.inventory import Product, Tank, TankStatus
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction, SalesTransactionItem
from fuelflow.app.models.supplier import POStatus, PurchaseOrder, Supplier
from fuelflow.app.services.stations import get_station

ZERO = Decimal("0")
CENTS = Decimal("0.01")


# ── Helpers ──────────────────────────────────────────────────────────────────


def _range(from_date: date, to_date: date) -> tuple[datetime, datetime]:
    """[start, end) covering both dates inclusively."""
    start, _ = day_bounds(from_date)
    _, end = day_bounds(to_date)
    return start, end


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


def _sum(db: Session, column, *filters) -> Decimal:
    return _dec(db.query(func.coalesce(func.sum(column), 0)).filter(*filters).scalar())


def _lines(totals: dict[str, Decimal], counts: dict[str, int] | None = None,
           quantities: dict[str, Decimal] | None = None) -> list[dict]:
    return [
        {
            "name": name,
            "amount": str(amount),
            "count": counts.get(name) if counts else None,
            "quantity": str(quantities[name]) if quantities else None,
        }
        for name, amount in sorted(totals.items())
    ]


def _sales_in(db: Session, station_id: UUID, start: datetime, end: datetime):
    return (
        db.query(SalesTransaction)
        .filter(
            SalesTransaction.station_id == station_id,
            SalesTransaction.transaction_date >= start,
            SalesTransaction.transaction_date < end,
        )
        .all()
    )


def _items_by_product(db: Session, station_id: UUID, start: datetime, end: datetime):
    rows = (
        db.query(
            Product.name,
            Product.category,
            func.coalesce(func.sum(SalesTransactionItem.quantity), 0),
            func.coalesce(func.sum(SalesTransactionItem.total_price), 0),
        )
        .join(SalesTransactionItem, SalesTransactionItem.product_id == Product.id)
        .join(SalesTransaction, SalesTransactionItem.transaction_id == SalesTransaction.id)
        .filter(
            SalesTransaction.station_id == station_id,
            SalesTransaction.transaction_date >= start,
            SalesTransaction.transaction_date < end,
        )
        .group_by(Product.name, Product.category)
        .all()
    )
    return [(name, category, _dec(qty), _dec(amount)) for name, category, qty, amount in rows]


def _expenses_by_category(db: Session, station_id: UUID, start: datetime, end: datetime):
    rows = (
        db.query(Expense.category, func.coalesce(func.sum(Expense.amount), 0))
        .filter(
            Expense.station_id == station_id,
            Expense.expense_date >= start,
            Expense.expense_date < end,
        )
        .group_by(Expense.category)
        .all()
    )
    return {category: _dec(total) for category, total in rows}


# ── Daily report ─────────────────────────────────────────────────────────────


def get_daily_report(db: Session, station_id: UUID, report_date: date) -> dict:
    get_station(db, station_id)
    start, end = day_bounds(report_date)
    sales = _sales_in(db, station_id, start, end)

    by_method: dict[str, Decimal] = defaultdict(lambda: ZERO)
    method_counts: dict[str, int] = defaultdict(int)
    for s in sales:
        by_method[s.payment_method.value] += s.total_amount
        method_counts[s.payment_method.value] += 1

    products = _items_by_product(db, station_id, start, end)
    expenses = _expenses_by_category(db, station_id, start, end)
    total_expenses = sum(expenses.values(), ZERO)

    new_credit = sum(
        (s.outstanding_amount for s in sales if s.payment_method == PaymentMethod.CREDIT), ZERO
    )
    day_payments = (
        db.query(Payment)
        .filter(
            Payment.station_id == station_id,
            Payment.payment_date >= start,
            Payment.payment_date < end,
        )
        .all()
    )
    received = sum(
        (p.amount for p in day_payments if p.payment_type == PaymentType.RECEIVABLE), ZERO
    )
    paid_out = sum(
        (p.amount for p in day_payments if p.payment_type == PaymentType.PAYABLE), ZERO
    )
    cash_payments_in = sum(
        (p.amount for p in day_payments
         if p.payment_type == PaymentType.RECEIVABLE and p.payment_method == "cash"),
        ZERO,
    )

    purchase_filters = (
        PurchaseOrder.station_id == station_id,
        PurchaseOrder.status != POStatus.CANCELLED,
        PurchaseOrder.order_date >= start,
        PurchaseOrder.order_date < end,
    )
    new_purchases = _sum(db, PurchaseOrder.total_amount, *purchase_filters)
    purchase_tax = _sum(db, PurchaseOrder.tax_amount, *purchase_filters)

    # Cash sales are paid in full; credit sales contribute only their paid part
    cash_receipts = sum(
        (s.total_amount for s in sales if s.payment_method == PaymentMethod.CASH), ZERO
    ) + sum(
        (s.paid_amount for s in sales
         if s.payment_method in (PaymentMethod.CREDIT, PaymentMethod.FLEET)),
        ZERO,
    ) + cash_payments_in
    card_receipts = by_method.get(PaymentMethod.CARD.value, ZERO)
    cash_expenses = _sum(
        db, Expense.amount,
        Expense.station_id == station_id,
        Expense.expense_date >= start,
        Expense.expense_date < end,
        Expense.payment_method == "cash",
    )
    tax_collected = sum((s.tax_amount for s in sales), ZERO)

    return {
        "station_id": station_id,
        "date": str(report_date),
        "total_sales": str(sum((s.total_amount for s in sales), ZERO)),
        "transaction_count": len(sales),
        "sales_by_payment_method": _lines(dict(by_method), dict(method_counts)),
        "sales_by_product": _lines(
            {name: amount for name, _, _, amount in products},
            quantities={name: qty for name, _, qty, _ in products},
        ),
        "expenses_by_category": _lines(expenses),
        "total_expenses": str(total_expenses),
        "receivables": {
            "new_credit": str(new_credit),
            "payments_received": str(received),
            "outstanding": str(_sum(db, Customer.outstanding_amount)),
        },
        "payables": {
            "new_purchases": str(new_purchases),
            "payments_made": str(paid_out),
            "outstanding": str(_sum(db, Supplier.outstanding_amount)),
        },
        "cash_flow": {
            "opening_cash": str(ZERO),
            "cash_receipts": str(cash_receipts),
            "cash_expenses": str(cash_expenses),
            "card_receipts": str(card_receipts),
            "closing_cash": str(cash_receipts - cash_expenses),
        },
        "tax": {
            "tax_collected": str(tax_collected),
            "tax_paid": str(purchase_tax),
            "net_tax": str(tax_collected - purchase_tax),
        },
    }


# ── Sales report ─────────────────────────────────────────────────────────────


def get_sales_report(db: Session, station_id: UUID, from_date: date, to_date: date) -> dict:
    get_station(db, station_id)
    start, end = _range(from_date, to_date)
    sales = _sales_in(db, station_id, start, end)

    by_day: dict[str, Decimal] = defaultdict(lambda: ZERO)
    day_counts: dict[str, int] = defaultdict(int)
    for s in sales:
        key = as_utc(s.transaction_date).date().isoformat()
        by_day[key] += s.total_amount
        day_counts[key] += 1

    products = _items_by_product(db, station_id, start, end)
    total = sum((s.total_amount for s in sales), ZERO)
    average = (total / len(sales)).quantize(CENTS, rounding=ROUND_HALF_UP) if sales else ZERO

    return {
        "station_id": station_id,
        "from_date": str(from_date),
        "to_date": str(to_date),
        "total_sales": str(total),
        "total_tax": str(sum((s.tax_amount for s in sales), ZERO)),
        "transaction_count": len(sales),
        "average_sale": str(average),
        "by_day": _lines(dict(by_day), dict(day_counts)),
        "by_product": _lines(
            {name: amount for name, _, _, amount in products},
            quantities={name: qty for name, _, qty, _ in products},
        ),
    }


# ── Financial report ─────────────────────────────────────────────────────────


def get_financial_report(db: Session, station_id: UUID, from_date: date, to_date: date) -> dict:
    """Profit and loss from operational records.

    Revenue is sale item value (excluding tax), cost of goods is the
    subtotal of non-cancelled purchase orders in the period.
    """
    get_station(db, station_id)
    start, end = _range(from_date, to_date)

    by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for _, category, _, amount in _items_by_product(db, station_id, start, end):
        by_category[category.value] += amount
    revenue = sum(by_category.values(), ZERO)

    cogs = _sum(
        db, PurchaseOrder.subtotal,
        PurchaseOrder.station_id == station_id,
        PurchaseOrder.status != POStatus.CANCELLED,
        PurchaseOrder.order_date >= start,
        PurchaseOrder.order_date < end,
    )
    expenses = _expenses_by_category(db, station_id, start, end)
    operating = sum(expenses.values(), ZERO)
    gross = revenue - cogs
    net = gross - operating
    margin = (
        (net / revenue * 100).quantize(CENTS, rounding=ROUND_HALF_UP) if revenue else ZERO
    )

    return {
        "station_id": station_id,
        "from_date": str(from_date),
        "to_date": str(to_date),
        "revenue": str(revenue),
        "revenue_by_category": _lines(dict(by_category)),
        "cost_of_goods": str(cogs),
        "gross_profit": str(gross),
        "operating_expenses": str(operating),
        "expenses_by_category": _lines(expenses),
        "net_profit": str(net),
        "profit_margin": str(margin),
    }


# ── Dashboard ────────────────────────────────────────────────────────────────


def get_dashboard_stats(db: Session, station_id: UUID, recent_limit: int = 5) -> dict:
    get_station(db, station_id)
    start, end = day_bounds(utcnow().date())
    today = _sales_in(db, station_id, start, end)

    tanks = db.query(Tank).filter(Tank.station_id == station_id).order_by(Tank.name).all()
    levels = []
    for t in tanks:
        fill = (
            (t.current_stock / t.capacity * 100).quantize(CENTS, rounding=ROUND_HALF_UP)
            if t.capacity
            else ZERO
        )
        levels.append(
            {
                "tank_id": t.id,
                "name": t.name,
                "product_name": t.product.name,
                "current_stock": str(t.current_stock),
                "capacity": str(t.capacity),
                "fill_percentage": str(fill),
                "status": t.status.value,
                "is_low": t.status in (TankStatus.LOW, TankStatus.CRITICAL),
            }
        )

    recent = (
        db.query(SalesTransaction)
        .filter(SalesTransaction.station_id == station_id)
        .order_by(SalesTransaction.transaction_date.desc())
        .limit(recent_limit)
        .all()
    )

    return {
        "station_id": station_id,
        "today_sales": str(sum((s.total_amount for s in today), ZERO)),
        "today_transactions": len(today),
        "tank_levels": levels,
        "low_stock_count": sum(1 for lvl in levels if lvl["is_low"]),
        "total_receivables": str(_sum(db, Customer.outstanding_amount)),
        "total_payables": str(_sum(db, Supplier.outstanding_amount)),
        "recent_sales": [
            {
                "id": s.id,
                "invoice_number": s.invoice_number,
                "transaction_date": s.transaction_date,
                "payment_method": s.payment_method.value,
                "total_amount": str(s.total_amount),
            }
            for s in recent
        ],
    }


def default_period(days: int = 30) -> tuple[date, date]:
    today = utcnow().date()
    return today - timedelta(days=days - 1), today
