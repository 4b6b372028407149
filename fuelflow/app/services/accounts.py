from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from fuelflow.app.models.account import (
    NORMAL_BALANCE_BY_TYPE,
    Account,
    AccountType,
    NormalBalance,
)
from fuelflow.app.models.journal import JournalLine
from fuelflow.app.schemas.accounting import AccountCreate, AccountOut
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.stations import get_station

# ─── Well-known codes used by ledger posting ─────────────────────────────────

CASH_ACCOUNT_CODE = "1001"
CARD_CLEARING_ACCOUNT_CODE = "1010"
RECEIVABLE_ACCOUNT_CODE = "1100"
FUEL_INVENTORY_ACCOUNT_CODE = "1200"
PAYABLE_ACCOUNT_CODE = "2001"
TAX_PAYABLE_ACCOUNT_CODE = "2100"
EQUITY_ACCOUNT_CODE = "3001"
FUEL_SALES_ACCOUNT_CODE = "4001"
PURCHASES_ACCOUNT_CODE = "5100"
GENERAL_EXPENSE_ACCOUNT_CODE = "5900"

DEFAULT_CHART: list[tuple[str, str, AccountType]] = [
    (CASH_ACCOUNT_CODE, "Cash in Hand", AccountType.ASSET),
    (CARD_CLEARING_ACCOUNT_CODE, "Card Clearing", AccountType.ASSET),
    (RECEIVABLE_ACCOUNT_CODE, "Accounts Receivable", AccountType.ASSET),
    (FUEL_INVENTORY_ACCOUNT_CODE, "Fuel Inventory", AccountType.ASSET),
    (PAYABLE_ACCOUNT_CODE, "Accounts Payable", AccountType.LIABILITY),
    (TAX_PAYABLE_ACCOUNT_CODE, "Sales Tax Payable", AccountType.LIABILITY),
    (EQUITY_ACCOUNT_CODE, "Owner's Equity", AccountType.EQUITY),
    (FUEL_SALES_ACCOUNT_CODE, "Fuel Sales Revenue", AccountType.INCOME),
    ("5001", "Electricity", AccountType.EXPENSE),
    ("5002", "Maintenance", AccountType.EXPENSE),
    ("5003", "Office Supplies", AccountType.EXPENSE),
    (PURCHASES_ACCOUNT_CODE, "Fuel Purchases", AccountType.EXPENSE),
    ("5200", "Salaries", AccountType.EXPENSE),
    (GENERAL_EXPENSE_ACCOUNT_CODE, "General Expenses", AccountType.EXPENSE),
]


def get_account(db: Session, account_id: UUID) -> Account:
    account = db.query(Account).filter(Account.id == account_id).first()
    if not account:
        raise NotFoundError("Account", account_id)
    return account


def get_account_by_code(db: Session, station_id: UUID, code: str) -> Account:
    account = (
        db.query(Account)
        .filter(Account.station_id == station_id, Account.code == code)
        .first()
    )
    if not account:
        raise ValidationError.for_field(
            "account", f"Account {code} not found in chart of accounts"
        )
    return account


def compute_balance(db: Session, account: Account) -> Decimal:
    row = (
        db.query(
            func.coalesce(func.sum(JournalLine.debit_amount), Decimal("0")).label("total_debit"),
            func.coalesce(func.sum(JournalLine.credit_amount), Decimal("0")).label("total_credit"),
        )
        .filter(JournalLine.account_id == account.id)
        .one()
    )
    total_debit = Decimal(str(row.total_debit))
    total_credit = Decimal(str(row.total_credit))
    if account.normal_balance == NormalBalance.DEBIT:
        return total_debit - total_credit
    return total_credit - total_debit


def _to_out(db: Session, account: Account) -> AccountOut:
    out = AccountOut.model_validate(account)
    out.balance = compute_balance(db, account)
    return out


def list_accounts(
    db: Session, station_id: UUID, account_type: AccountType | None = None
) -> list[AccountOut]:
    query = db.query(Account).filter(Account.station_id == station_id)
    if account_type:
        query = query.filter(Account.account_type == account_type)
    return [_to_out(db, a) for a in query.order_by(Account.code).all()]


def create_account(
    db: Session,
    payload: AccountCreate,
    user_id: UUID,
    ip_address: str | None = None,
) -> AccountOut:
    existing = (
        db.query(Account)
        .filter(Account.station_id == payload.station_id, Account.code == payload.code)
        .first()
    )
    if existing:
        raise ConflictError(f"Account code '{payload.code}' already exists")
    if payload.parent_id:
        parent = get_account(db, payload.parent_id)
        if parent.station_id != payload.station_id:
            raise ValidationError.for_field("parent_id", "Parent account belongs to another station")

    with atomic(db):
        account = Account(
            station_id=payload.station_id,
            code=payload.code,
            name=payload.name,
            account_type=payload.account_type,
            normal_balance=payload.normal_balance
            or NORMAL_BALANCE_BY_TYPE[payload.account_type],
            parent_id=payload.parent_id,
            description=payload.description,
            currency_code=payload.currency_code,
            is_system=False,
        )
        db.add(account)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="ACCOUNT_CREATED",
            resource_type="accounts",
            resource_id=str(account.id),
            changes={
                "code": payload.code,
                "name": payload.name,
                "account_type": payload.account_type.value,
            },
            ip_address=ip_address,
        )
    db.refresh(account)
    return _to_out(db, account)


def seed_chart_of_accounts(db: Session, station_id: UUID, currency_code: str = "PKR") -> list[Account]:
    """Create the default system accounts a station is missing.

    Does not commit; the caller owns the transaction.
    """
    existing = {
        a.code: a
        for a in db.query(Account).filter(Account.station_id == station_id).all()
    }
    accounts: list[Account] = []
    for code, name, account_type in DEFAULT_CHART:
        account = existing.get(code)
        if account is None:
            account = Account(
                station_id=station_id,
                code=code,
                name=name,
                account_type=account_type,
                normal_balance=NORMAL_BALANCE_BY_TYPE[account_type],
                currency_code=currency_code,
                is_system=True,
            )
            db.add(account)
        accounts.append(account)
    db.flush()
    return accounts


def seed_station_accounts(
    db: Session, station_id: UUID, user_id: UUID, ip_address: str | None = None
) -> list[AccountOut]:
    station = get_station(db, station_id)
    with atomic(db):
        accounts = seed_chart_of_accounts(db, station_id, station.default_currency or "PKR")
        log_action(
            db,
            user_id=user_id,
            action="CHART_OF_ACCOUNTS_SEEDED",
            resource_type="accounts",
            resource_id=str(station_id),
            ip_address=ip_address,
            changes={"accounts": len(accounts)},
        )
    return [_to_out(db, a) for a in accounts]
