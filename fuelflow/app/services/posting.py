"""Ledger posting for operational events.

Each function stages one balanced, already-posted journal entry in the
caller's transaction, so the operational rows and their ledger entry commit
or roll back together. Posting only happens when the station has
``ledger_posting_enabled`` set.

Sale (cash / card)::

    DEBIT  Cash 1001 / Card Clearing 1010      total
    CREDIT Fuel Sales Revenue 4001             subtotal
    CREDIT Sales Tax Payable 2100              tax

Sale (credit / fleet)::

    DEBIT  Accounts Receivable 1100            outstanding   (customer sub-ledger)
    DEBIT  Cash 1001                           paid
    CREDIT Fuel Sales Revenue 4001             subtotal
    CREDIT Sales Tax Payable 2100              tax

Purchase order::

    DEBIT  Fuel Purchases 5100                 subtotal
    DEBIT  Sales Tax Payable 2100              tax           (input tax)
    CREDIT Accounts Payable 2001               total         (supplier sub-ledger)

Expense::

    DEBIT  expense account (or General 5900)   amount
    CREDIT Cash 1001 / Card Clearing 1010      amount

Payment::

    receivable: DEBIT Cash 1001 / CREDIT Accounts Receivable 1100
    payable:    DEBIT Accounts Payable 2001 / CREDIT Cash 1001
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from fuelflow.app.models.expense import Expense
from fuelflow.app.models.journal import JournalEntry, SourceType
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction
from fuelflow.app.models.supplier import PurchaseOrder
from fuelflow.app.services.accounts import (
    CARD_CLEARING_ACCOUNT_CODE,
    CASH_ACCOUNT_CODE,
    FUEL_SALES_ACCOUNT_CODE,
    GENERAL_EXPENSE_ACCOUNT_CODE,
    PAYABLE_ACCOUNT_CODE,
    PURCHASES_ACCOUNT_CODE,
    RECEIVABLE_ACCOUNT_CODE,
    TAX_PAYABLE_ACCOUNT_CODE,
    get_account_by_code,
)
from fuelflow.app.services.journal import LineSpec, build_journal_entry, entries_for_source
from fuelflow.app.services.stations import get_or_create_settings

ZERO = Decimal("0")


def posting_enabled(db: Session, station_id: UUID) -> bool:
    return get_or_create_settings(db, station_id).ledger_posting_enabled


def _account_id(db: Session, station_id: UUID, code: str) -> UUID:
    return get_account_by_code(db, station_id, code).id


def _settlement_code(method: str) -> str:
    return CARD_CLEARING_ACCOUNT_CODE if method == "card" else CASH_ACCOUNT_CODE


def post_sale(db: Session, sale: SalesTransaction, user_id: UUID) -> JournalEntry:
    station_id = sale.station_id
    revenue = _account_id(db, station_id, FUEL_SALES_ACCOUNT_CODE)
    tax = _account_id(db, station_id, TAX_PAYABLE_ACCOUNT_CODE)

    if sale.payment_method in (PaymentMethod.CREDIT, PaymentMethod.FLEET):
        debit_lines = [
            LineSpec(
                account_id=_account_id(db, station_id, RECEIVABLE_ACCOUNT_CODE),
                debit_amount=sale.total_amount - sale.paid_amount,
                customer_id=sale.customer_id,
            ),
            LineSpec(
                account_id=_account_id(db, station_id, CASH_ACCOUNT_CODE),
                debit_amount=sale.paid_amount,
            ),
        ]
    else:
        debit_lines = [
            LineSpec(
                account_id=_account_id(db, station_id, _settlement_code(sale.payment_method.value)),
                debit_amount=sale.total_amount,
            ),
        ]

    return build_journal_entry(
        db,
        station_id=station_id,
        user_id=user_id,
        description=f"Sale {sale.invoice_number}",
        lines=debit_lines + [
            LineSpec(account_id=revenue, credit_amount=sale.subtotal),
            LineSpec(account_id=tax, credit_amount=sale.tax_amount),
        ],
        source_type=SourceType.SALE,
        source_id=sale.id,
        currency_code=sale.currency_code,
        entry_date=sale.transaction_date,
        posted=True,
    )


def post_purchase(db: Session, order: PurchaseOrder, user_id: UUID) -> JournalEntry:
    station_id = order.station_id
    return build_journal_entry(
        db,
        station_id=station_id,
        user_id=user_id,
        description=f"Purchase order {order.order_number}",
        lines=[
            LineSpec(
                account_id=_account_id(db, station_id, PURCHASES_ACCOUNT_CODE),
                debit_amount=order.subtotal,
            ),
            LineSpec(
                account_id=_account_id(db, station_id, TAX_PAYABLE_ACCOUNT_CODE),
                debit_amount=order.tax_amount,
            ),
            LineSpec(
                account_id=_account_id(db, station_id, PAYABLE_ACCOUNT_CODE),
                credit_amount=order.total_amount,
                supplier_id=order.supplier_id,
            ),
        ],
        source_type=SourceType.PURCHASE,
        source_id=order.id,
        currency_code=order.currency_code,
        entry_date=order.order_date,
        posted=True,
    )


def post_expense(db: Session, expense: Expense, user_id: UUID) -> JournalEntry:
    station_id = expense.station_id
    expense_account = expense.account_id or _account_id(
        db, station_id, GENERAL_EXPENSE_ACCOUNT_CODE
    )
    return build_journal_entry(
        db,
        station_id=station_id,
        user_id=user_id,
        description=f"Expense: {expense.description}",
        lines=[
            LineSpec(account_id=expense_account, debit_amount=expense.amount),
            LineSpec(
                account_id=_account_id(db, station_id, _settlement_code(expense.payment_method)),
                credit_amount=expense.amount,
            ),
        ],
        source_type=SourceType.EXPENSE,
        source_id=expense.id,
        currency_code=expense.currency_code,
        entry_date=expense.expense_date,
        posted=True,
    )


def post_payment(db: Session, payment: Payment, user_id: UUID) -> JournalEntry:
    station_id = payment.station_id
    cash = _account_id(db, station_id, _settlement_code(payment.payment_method))
    if payment.payment_type == PaymentType.RECEIVABLE:
        lines = [
            LineSpec(account_id=cash, debit_amount=payment.amount),
            LineSpec(
                account_id=_account_id(db, station_id, RECEIVABLE_ACCOUNT_CODE),
                credit_amount=payment.amount,
                customer_id=payment.customer_id,
            ),
        ]
    else:
        lines = [
            LineSpec(
                account_id=_account_id(db, station_id, PAYABLE_ACCOUNT_CODE),
                debit_amount=payment.amount,
                supplier_id=payment.supplier_id,
            ),
            LineSpec(account_id=cash, credit_amount=payment.amount),
        ]
    return build_journal_entry(
        db,
        station_id=station_id,
        user_id=user_id,
        description=f"Payment {payment.payment_type.value}"
        + (f" ref {payment.reference_number}" if payment.reference_number else ""),
        lines=lines,
        source_type=SourceType.PAYMENT,
        source_id=payment.id,
        currency_code=payment.currency_code,
        entry_date=payment.payment_date,
        posted=True,
    )


def entries_exist(db: Session, source_type: SourceType, source_id: UUID) -> bool:
    return bool(entries_for_source(db, source_type, source_id))


def reverse_entries(db: Session, source_type: SourceType, source_id: UUID, user_id: UUID) -> None:
    """Stage mirror-image entries cancelling every entry of one source."""
    originals = (
        db.query(JournalEntry)
        .filter(JournalEntry.source_type == source_type, JournalEntry.source_id == source_id)
        .all()
    )
    reversed_numbers = {
        o.description.removeprefix("Reversal of ")
        for o in originals
        if o.description.startswith("Reversal of ")
    }
    for original in originals:
        if original.description.startswith("Reversal of "):
            continue
        if original.entry_number in reversed_numbers:
            continue
        build_journal_entry(
            db,
            station_id=original.station_id,
            user_id=user_id,
            description=f"Reversal of {original.entry_number}",
            lines=[
                LineSpec(
                    account_id=ln.account_id,
                    debit_amount=ln.credit_amount,
                    credit_amount=ln.debit_amount,
                    customer_id=ln.customer_id,
                    supplier_id=ln.supplier_id,
                )
                for ln in original.lines
            ],
            source_type=source_type,
            source_id=source_id,
            currency_code=original.currency_code,
            posted=True,
        )
