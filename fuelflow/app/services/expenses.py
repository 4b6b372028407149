from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import NotFoundError, ValidationError
from fuelflow.app.models.account import Account, AccountType
from fuelflow.app.models.expense import Expense
from fuelflow.app.models.journal import SourceType
from fuelflow.app.schemas.expenses import ExpenseCreate, ExpenseDetail, ExpenseOut, ExpenseUpdate
from fuelflow.app.services import posting
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.stations import get_station


def _check_expense_account(db: Session, station_id: UUID, account_id: UUID | None) -> None:
    if account_id is None:
        return
    account = db.query(Account).filter(Account.id == account_id).first()
    if not account or account.station_id != station_id:
        raise ValidationError.for_field("account_id", "Expense account not found for this station")
    if account.account_type != AccountType.EXPENSE:
        raise ValidationError.for_field(
            "account_id", f"Account '{account.name}' is not an EXPENSE account"
        )


def get_expense(db: Session, expense_id: UUID) -> Expense:
    expense = db.query(Expense).filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError("Expense", expense_id)
    return expense


def list_expenses(
    db: Session,
    station_id: UUID,
    account_id: UUID | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Expense]:
    query = db.query(Expense).filter(Expense.station_id == station_id)
    if account_id:
        query = query.filter(Expense.account_id == account_id)
    if date_from:
        query = query.filter(Expense.expense_date >= date_from)
    if date_to:
        query = query.filter(Expense.expense_date <= date_to)
    return query.order_by(Expense.expense_date.desc()).all()


def get_expense_detail(db: Session, expense_id: UUID) -> ExpenseDetail:
    expense = get_expense(db, expense_id)
    account = expense.account
    return ExpenseDetail(
        **ExpenseOut.model_validate(expense).model_dump(),
        account_code=account.code if account else None,
        account_name=account.name if account else None,
    )


def create_expense(
    db: Session, payload: ExpenseCreate, user_id: UUID, ip_address: str | None = None
) -> Expense:
    """Record an expense and, when enabled, its ledger entry.

    DEBIT  expense account (General Expenses when none is given)
    CREDIT Cash / Card Clearing
    """
    get_station(db, payload.station_id)
    _check_expense_account(db, payload.station_id, payload.account_id)

    with atomic(db):
        expense = Expense(user_id=user_id, **payload.model_dump(exclude_none=True))
        db.add(expense)
        db.flush()
        if posting.posting_enabled(db, expense.station_id):
            posting.post_expense(db, expense, user_id)
        log_action(
            db,
            user_id=user_id,
            action="EXPENSE_CREATED",
            resource_type="expenses",
            resource_id=str(expense.id),
            ip_address=ip_address,
            changes={
                "category": expense.category,
                "amount": str(expense.amount),
                "description": expense.description,
            },
        )
    db.refresh(expense)
    return expense


def update_expense(
    db: Session,
    expense_id: UUID,
    payload: ExpenseUpdate,
    user_id: UUID,
    ip_address: str | None = None,
) -> Expense:
    expense = get_expense(db, expense_id)
    data = payload.model_dump(exclude_unset=True)
    if "account_id" in data:
        _check_expense_account(db, expense.station_id, data["account_id"])

    with atomic(db):
        for field, value in data.items():
            setattr(expense, field, value)
        db.flush()
        if posting.entries_exist(db, SourceType.EXPENSE, expense.id):
            posting.reverse_entries(db, SourceType.EXPENSE, expense.id, user_id)
            posting.post_expense(db, expense, user_id)
        log_action(
            db,
            user_id=user_id,
            action="EXPENSE_UPDATED",
            resource_type="expenses",
            resource_id=str(expense.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(expense)
    return expense


def delete_expense(
    db: Session, expense_id: UUID, user_id: UUID, ip_address: str | None = None
) -> None:
    expense = get_expense(db, expense_id)
    with atomic(db):
        if posting.entries_exist(db, SourceType.EXPENSE, expense.id):
            posting.reverse_entries(db, SourceType.EXPENSE, expense.id, user_id)
        log_action(
            db,
            user_id=user_id,
            action="EXPENSE_DELETED",
            resource_type="expenses",
            resource_id=str(expense.id),
            ip_address=ip_address,
            changes={"amount": str(expense.amount), "description": expense.description},
        )
        db.delete(expense)
