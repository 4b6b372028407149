from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import (
    client_ip,
    ensure_station_access,
    get_current_user,
    manager_or_admin,
)
from fuelflow.app.core.database import get_db
from fuelflow.app.core.dates import to_datetime
from fuelflow.app.models.journal import JournalEntry, SourceType
from fuelflow.app.models.user import User
from fuelflow.app.schemas.accounting import (
    GeneralLedgerOut,
    JournalEntryCreate,
    JournalEntryOut,
)
from fuelflow.app.services import accounts as account_service
from fuelflow.app.services import journal as journal_service

router = APIRouter()


@router.post("", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    body: JournalEntryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> JournalEntry:
    ensure_station_access(current_user, body.station_id)
    return journal_service.create_journal_entry(db, body, current_user.id, client_ip(request))


@router.get("/ledger/{account_id}", response_model=GeneralLedgerOut)
def general_ledger(
    account_id: UUID,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> GeneralLedgerOut:
    account = account_service.get_account(db, account_id)
    ensure_station_access(current_user, account.station_id)
    return journal_service.get_general_ledger(
        db,
        account_id,
        start=to_datetime(from_date) if from_date else None,
        end=to_datetime(to_date, end_of_day=True) if to_date else None,
    )


@router.get("/{station_id}", response_model=list[JournalEntryOut])
def list_journal_entries(
    station_id: UUID,
    source_type: SourceType | None = Query(None),
    limit: int | None = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[JournalEntry]:
    ensure_station_access(current_user, station_id)
    return journal_service.list_journal_entries(db, station_id, source_type, limit)


@router.post("/{entry_id}/post", response_model=JournalEntryOut)
def post_journal_entry(
    entry_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(manager_or_admin),
) -> JournalEntry:
    entry = journal_service.get_journal_entry(db, entry_id)
    ensure_station_access(current_user, entry.station_id)
    return journal_service.post_journal_entry(db, entry_id, current_user.id, client_ip(request))
