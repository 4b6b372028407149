from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, field_validator

from fuelflow.app.models.expense import EXPENSE_CATEGORIES
from fuelflow.app.schemas.station import CurrencyCode

ExpensePaymentMethod = Literal["cash", "card", "bank_transfer", "cheque"]


class ExpenseCreate(BaseModel):
    station_id: UUID
    category: str
    description: str
    amount: Decimal
    account_id: UUID | None = None
    currency_code: CurrencyCode = "PKR"
    expense_date: datetime | None = None
    receipt_number: str | None = None
    payment_method: ExpensePaymentMethod = "cash"
    vendor_name: str | None = None
    is_recurring: bool = False

    @field_validator("category")
    @classmethod
    def category_known(cls, v: str) -> str:
        if v not in EXPENSE_CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(EXPENSE_CATEGORIES)}")
        return v

    @field_validator("description")
    @classmethod
    def description_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description must not be empty")
        return v

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v


class ExpenseUpdate(BaseModel):
    category: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    account_id: UUID | None = None
    expense_date: datetime | None = None
    receipt_number: str | None = None
    payment_method: ExpensePaymentMethod | None = None
    vendor_name: str | None = None
    is_recurring: bool | None = None

    @field_validator("category")
    @classmethod
    def category_known(cls, v: str | None) -> str | None:
        if v is not None and v not in EXPENSE_CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(EXPENSE_CATEGORIES)}")
        return v

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v


class ExpenseOut(BaseModel):
    id: UUID
    station_id: UUID
    user_id: UUID
    account_id: UUID | None
    category: str
    description: str
    amount: Decimal
    currency_code: str
    expense_date: datetime
    receipt_number: str | None
    payment_method: str
    vendor_name: str | None
    is_recurring: bool

    class Config:
        from_attributes = True


class ExpenseDetail(ExpenseOut):
    account_code: str | None = None
    account_name: str | None = None
