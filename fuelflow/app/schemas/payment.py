from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from fuelflow.app.models.payment import PaymentType
from fuelflow.app.schemas.station import CamelInput, CurrencyCode


class PaymentCreate(CamelInput):
    # station_id falls back to the caller's own station
    station_id: UUID | None = None
    payment_type: PaymentType
    customer_id: UUID | None = None
    supplier_id: UUID | None = None
    amount: Decimal
    currency_code: CurrencyCode = "PKR"
    payment_date: datetime | None = None
    payment_method: str = "cash"
    reference_number: str | None = None
    notes: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Amount must be greater than 0")
        return v

    @model_validator(mode="after")
    def party_matches_type(self) -> "PaymentCreate":
        if self.payment_type == PaymentType.RECEIVABLE and self.customer_id is None:
            raise ValueError("A receivable payment requires customer_id")
        if self.payment_type == PaymentType.PAYABLE and self.supplier_id is None:
            raise ValueError("A payable payment requires supplier_id")
        return self


class PaymentOut(BaseModel):
    id: UUID
    station_id: UUID
    user_id: UUID
    payment_type: PaymentType
    customer_id: UUID | None
    supplier_id: UUID | None
    amount: Decimal
    currency_code: str
    payment_date: datetime
    payment_method: str
    reference_number: str | None
    notes: str | None

    class Config:
        from_attributes = True
