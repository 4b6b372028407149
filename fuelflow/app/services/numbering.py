from __future__ import annotations

import secrets
import time
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from fuelflow.app.models.journal import JournalEntry
from fuelflow.app.models.station import Station


def _time_suffix() -> str:
    # Last six digits of the millisecond clock plus two random digits;
    # uniqueness is still guaranteed by the column's unique constraint.
    millis = str(int(time.time() * 1000))[-6:]
    return f"{millis}{secrets.randbelow(100):02d}"


def generate_sale_invoice_number() -> str:
    """Return a sale invoice number like SAL12345607."""
    return f"SAL{_time_suffix()}"


def generate_purchase_order_number() -> str:
    """Return a purchase order number like PUR12345607."""
    return f"PUR{_time_suffix()}"


def generate_journal_entry_number(
    db: Session, station_id: UUID, year: int | None = None
) -> str:
    """Return the next per-station entry number like JE-2026-0001.

    Locks the station row (SELECT ... FOR UPDATE) so concurrent postings for
    one station take numbers one at a time; the lock is held until the
    caller's transaction ends.
    """
    if year is None:
        year = datetime.now().year
    prefix = f"JE-{year}-"
    db.query(Station.id).filter(Station.id == station_id).with_for_update().one()
    last = (
        db.query(JournalEntry.entry_number)
        .filter(
            JournalEntry.station_id == station_id,
            JournalEntry.entry_number.like(f"{prefix}%"),
        )
        .order_by(func.length(JournalEntry.entry_number).desc(), JournalEntry.entry_number.desc())
        .limit(1)
        .scalar()
    )
    sequence = int(last[len(prefix):]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"
