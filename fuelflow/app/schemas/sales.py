from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator

from fuelflow.app.models.sales import PaymentMethod
from fuelflow.app.schemas.station import CamelInput, CurrencyCode


# ─── Request ──────────────────────────────────────────────────────────────────


class SaleItemCreate(CamelInput):
    product_id: UUID
    tank_id: UUID | None = None
    quantity: Decimal
    unit_price: Decimal

    @field_validator("tank_id", mode="before")
    @classmethod
    def blank_tank_is_none(cls, v: object) -> object:
        if v in ("", "null"):
            return None
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Unit price must be non-negative")
        return v


class SaleHeaderCreate(CamelInput):
    """Sale header as computed by the till; amounts are checked, not recomputed."""

    station_id: UUID
    customer_id: UUID | None = None
    payment_method: PaymentMethod
    currency_code: CurrencyCode = "PKR"
    transaction_date: datetime | None = None
    due_date: datetime | None = None
    subtotal: Decimal
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    outstanding_amount: Decimal = Decimal("0")
    notes: str | None = None


class SaleCreate(CamelInput):
    transaction: SaleHeaderCreate
    items: list[SaleItemCreate]


# ─── Response ─────────────────────────────────────────────────────────────────


class SaleItemOut(BaseModel):
    id: UUID
    transaction_id: UUID
    product_id: UUID
    tank_id: UUID | None
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: UUID
    invoice_number: str
    station_id: UUID
    customer_id: UUID | None
    user_id: UUID
    transaction_date: datetime
    due_date: datetime | None
    payment_method: PaymentMethod
    currency_code: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    notes: str | None

    class Config:
        from_attributes = True


class SaleWithItems(BaseModel):
    transaction: SaleOut
    items: list[SaleItemOut]


class SaleItemDetail(SaleItemOut):
    product_name: str
    tank_name: str | None = None


class SaleDetail(SaleOut):
    customer_name: str | None
    station_name: str
    cashier_username: str | None
    items: list[SaleItemDetail]
