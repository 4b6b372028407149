from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from fuelflow.app.core.database import atomic
from fuelflow.app.core.dates import as_utc, utcnow
from fuelflow.app.core.exceptions import (
    ConflictError,
    NotFoundError,
    UnbalancedEntryError,
    ValidationError,
)
from fuelflow.app.models.account import Account, NormalBalance
from fuelflow.app.models.journal import JournalEntry, JournalLine, SourceType
from fuelflow.app.schemas.accounting import (
    GeneralLedgerOut,
    JournalEntryCreate,
    LedgerRow,
)
from fuelflow.app.services.accounts import get_account
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.numbering import generate_journal_entry_number

ZERO = Decimal("0")


@dataclass
class LineSpec:
    """One debit or credit line, before it is persisted."""

    account_id: UUID
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    customer_id: UUID | None = None
    supplier_id: UUID | None = None
    notes: str | None = None


def build_journal_entry(
    db: Session,
    *,
    station_id: UUID,
    user_id: UUID,
    description: str,
    lines: list[LineSpec],
    source_type: SourceType = SourceType.ADJUSTMENT,
    source_id: UUID | None = None,
    currency_code: str = "PKR",
    entry_date: datetime | None = None,
    posted: bool = False,
) -> JournalEntry:
    """Validate and stage a balanced entry in the current transaction.

    Zero-amount lines are dropped first, so callers can pass optional legs
    (e.g. tax) unconditionally. Raises ``UnbalancedEntryError`` when the
    remaining debits and credits differ. Does not commit.
    """
    lines = [ln for ln in lines if ln.debit_amount > 0 or ln.credit_amount > 0]
    if len(lines) < 2:
        raise ValidationError.for_field("lines", "A journal entry requires at least two lines")
    for ln in lines:
        if ln.debit_amount < 0 or ln.credit_amount < 0:
            raise ValidationError.for_field("lines", "Line amounts must be non-negative")
        if ln.debit_amount > 0 and ln.credit_amount > 0:
            raise ValidationError.for_field("lines", "A line cannot be both debit and credit")

    total_debit = sum((ln.debit_amount for ln in lines), ZERO)
    total_credit = sum((ln.credit_amount for ln in lines), ZERO)
    if total_debit != total_credit:
        raise UnbalancedEntryError(total_debit, total_credit)

    account_ids = {ln.account_id for ln in lines}
    found = (
        db.query(Account)
        .filter(Account.id.in_(account_ids), Account.station_id == station_id)
        .all()
    )
    if len(found) != len(account_ids):
        raise ValidationError.for_field("lines", "Every line must use an account of this station")
    inactive = [a.code for a in found if not a.is_active]
    if inactive:
        raise ValidationError.for_field("lines", f"Inactive accounts: {', '.join(inactive)}")

    now = utcnow()
    entry_date = entry_date or now
    entry = JournalEntry(
        station_id=station_id,
        entry_number=generate_journal_entry_number(db, station_id, entry_date.year),
        entry_date=entry_date,
        description=description,
        source_type=source_type,
        source_id=source_id,
        currency_code=currency_code,
        total_debit=total_debit,
        total_credit=total_credit,
        is_posted=posted,
        posted_at=now if posted else None,
        created_by=user_id,
    )
    db.add(entry)
    db.flush()

    for ln in lines:
        db.add(
            JournalLine(
                journal_entry_id=entry.id,
                account_id=ln.account_id,
                debit_amount=ln.debit_amount,
                credit_amount=ln.credit_amount,
                customer_id=ln.customer_id,
                supplier_id=ln.supplier_id,
                notes=ln.notes,
            )
        )
    db.flush()
    return entry


def create_journal_entry(
    db: Session,
    payload: JournalEntryCreate,
    user_id: UUID,
    ip_address: str | None = None,
) -> JournalEntry:
    with atomic(db):
        entry = build_journal_entry(
            db,
            station_id=payload.station_id,
            user_id=user_id,
            description=payload.description,
            lines=[LineSpec(**ln.model_dump()) for ln in payload.lines],
            source_type=payload.source_type,
            source_id=payload.source_id,
            currency_code=payload.currency_code,
            entry_date=payload.entry_date,
        )
        log_action(
            db,
            user_id=user_id,
            action="JOURNAL_ENTRY_CREATED",
            resource_type="journal_entries",
            resource_id=str(entry.id),
            ip_address=ip_address,
            changes={
                "entry_number": entry.entry_number,
                "description": payload.description,
                "lines": [
                    {
                        "account_id": str(ln.account_id),
                        "debit": str(ln.debit_amount),
                        "credit": str(ln.credit_amount),
                    }
                    for ln in payload.lines
                ],
            },
        )
    db.refresh(entry)
    return entry


def get_journal_entry(db: Session, entry_id: UUID) -> JournalEntry:
    entry = (
        db.query(JournalEntry)
        .options(selectinload(JournalEntry.lines))
        .filter(JournalEntry.id == entry_id)
        .first()
    )
    if not entry:
        raise NotFoundError("Journal entry", entry_id)
    return entry


def post_journal_entry(
    db: Session, entry_id: UUID, user_id: UUID, ip_address: str | None = None
) -> JournalEntry:
    entry = get_journal_entry(db, entry_id)
    if entry.is_posted:
        raise ConflictError(f"Journal entry {entry.entry_number} is already posted")
    with atomic(db):
        entry.is_posted = True
        entry.posted_at = utcnow()
        log_action(
            db,
            user_id=user_id,
            action="JOURNAL_ENTRY_POSTED",
            resource_type="journal_entries",
            resource_id=str(entry.id),
            ip_address=ip_address,
        )
    db.refresh(entry)
    return entry


def list_journal_entries(
    db: Session,
    station_id: UUID,
    source_type: SourceType | None = None,
    limit: int | None = None,
) -> list[JournalEntry]:
    query = (
        db.query(JournalEntry)
        .options(selectinload(JournalEntry.lines))
        .filter(JournalEntry.station_id == station_id)
    )
    if source_type:
        query = query.filter(JournalEntry.source_type == source_type)
    query = query.order_by(JournalEntry.entry_date.desc(), JournalEntry.entry_number.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def entries_for_source(
    db: Session, source_type: SourceType, source_id: UUID
) -> list[JournalEntry]:
    return (
        db.query(JournalEntry)
        .filter(JournalEntry.source_type == source_type, JournalEntry.source_id == source_id)
        .all()
    )


def get_general_ledger(
    db: Session,
    account_id: UUID,
    start: datetime | None = None,
    end: datetime | None = None,
) -> GeneralLedgerOut:
    """Lines hitting one account with a running balance in its normal direction."""
    account = get_account(db, account_id)
    sign = Decimal("1") if account.normal_balance == NormalBalance.DEBIT else Decimal("-1")

    rows = (
        db.query(JournalLine, JournalEntry)
        .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
        .filter(JournalLine.account_id == account_id)
        .order_by(JournalEntry.entry_date, JournalEntry.entry_number)
        .all()
    )

    opening = ZERO
    running = ZERO
    ledger_rows: list[LedgerRow] = []
    for line, entry in rows:
        movement = sign * (line.debit_amount - line.credit_amount)
        entry_date = as_utc(entry.entry_date)
        if start and entry_date < as_utc(start):
            opening += movement
            running += movement
            continue
        if end and entry_date >= as_utc(end):
            continue
        running += movement
        ledger_rows.append(
            LedgerRow(
                entry_id=entry.id,
                entry_number=entry.entry_number,
                entry_date=entry.entry_date,
                description=entry.description,
                debit=line.debit_amount,
                credit=line.credit_amount,
                balance=running,
            )
        )

    return GeneralLedgerOut(
        account_id=account.id,
        account_code=account.code,
        account_name=account.name,
        normal_balance=account.normal_balance,
        opening_balance=opening,
        closing_balance=running,
        rows=ledger_rows,
    )
