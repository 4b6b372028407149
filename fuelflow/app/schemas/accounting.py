from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from fuelflow.app.models.account import AccountType, NormalBalance
from fuelflow.app.models.journal import SourceType


# ─── Chart of accounts ───────────────────────────────────────────────────────


class AccountCreate(BaseModel):
    station_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance | None = None
    parent_id: UUID | None = None
    description: str | None = None
    currency_code: str = "PKR"

    @field_validator("code")
    @classmethod
    def code_must_be_digits(cls, v: str) -> str:
        v = v.strip()
        if not re.match(r"^\d{3,20}$", v):
            raise ValueError("Code must be 3-20 digits")
        return v

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be empty")
        return v.strip()


class AccountOut(BaseModel):
    id: UUID
    station_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    parent_id: UUID | None
    currency_code: str
    is_active: bool
    is_system: bool
    balance: Decimal = Decimal("0")

    class Config:
        from_attributes = True


# ─── Journal entries ─────────────────────────────────────────────────────────


class JournalLineCreate(BaseModel):
    account_id: UUID
    debit_amount: Decimal = Decimal("0")
    credit_amount: Decimal = Decimal("0")
    customer_id: UUID | None = None
    supplier_id: UUID | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def debit_xor_credit(self) -> JournalLineCreate:
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValueError("Line amounts must be non-negative")
        if (self.debit_amount > 0) == (self.credit_amount > 0):
            raise ValueError("Each line must be either a debit or a credit")
        return self


class JournalEntryCreate(BaseModel):
    station_id: UUID
    description: str
    entry_date: datetime | None = None
    source_type: SourceType = SourceType.ADJUSTMENT
    source_id: UUID | None = None
    currency_code: str = "PKR"
    lines: list[JournalLineCreate]


class JournalLineOut(BaseModel):
    id: UUID
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    customer_id: UUID | None
    supplier_id: UUID | None
    notes: str | None

    class Config:
        from_attributes = True


class JournalEntryOut(BaseModel):
    id: UUID
    station_id: UUID
    entry_number: str
    entry_date: datetime
    description: str
    source_type: SourceType
    source_id: UUID | None
    currency_code: str
    total_debit: Decimal
    total_credit: Decimal
    is_posted: bool
    posted_at: datetime | None
    created_by: UUID
    lines: list[JournalLineOut]

    class Config:
        from_attributes = True


class LedgerRow(BaseModel):
    entry_id: UUID
    entry_number: str
    entry_date: datetime
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


class GeneralLedgerOut(BaseModel):
    account_id: UUID
    account_code: str
    account_name: str
    normal_balance: NormalBalance
    opening_balance: Decimal
    closing_balance: Decimal
    rows: list[LedgerRow]
