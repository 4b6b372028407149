from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, field_validator

from fuelflow.app.models.customer import CustomerType


# ─── Customer CRUD ────────────────────────────────────────────────────────────


class CustomerCreate(BaseModel):
    name: str
    customer_type: CustomerType = CustomerType.WALK_IN
    contact_phone: str | None = None
    contact_email: str | None = None
    address: str | None = None
    gst_number: str | None = None
    credit_limit: Decimal = Decimal("0")
    is_active: bool = True

    @field_validator("credit_limit")
    @classmethod
    def limit_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Credit limit must be non-negative")
        return v


class CustomerUpdate(BaseModel):
    # outstanding_amount moves only through sales and payments
    name: str | None = None
    customer_type: CustomerType | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    address: str | None = None
    gst_number: str | None = None
    credit_limit: Decimal | None = None
    is_active: bool | None = None


class CustomerOut(BaseModel):
    id: UUID
    name: str
    customer_type: CustomerType
    contact_phone: str | None
    contact_email: str | None
    address: str | None
    gst_number: str | None
    credit_limit: Decimal
    outstanding_amount: Decimal
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ─── Activity feed ────────────────────────────────────────────────────────────


ActivityType = Literal["sale", "payment"]


class CustomerActivityOut(BaseModel):
    id: UUID
    customer_id: UUID
    customer_name: str
    type: ActivityType
    description: str
    amount: Decimal
    # customer's running balance after this activity
    balance: Decimal
    date: datetime
    reference_number: str | None
    payment_method: str
    status: str = "completed"
