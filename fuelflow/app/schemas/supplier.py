from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator

from fuelflow.app.models.supplier import POStatus
from fuelflow.app.schemas.station import CamelInput


# ─── Supplier CRUD ────────────────────────────────────────────────────────────


class SupplierCreate(BaseModel):
    name: str
    contact_person: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    address: str | None = None
    gst_number: str | None = None
    payment_terms: str | None = None
    is_active: bool = True


class SupplierUpdate(BaseModel):
    name: str | None = None
    contact_person: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    address: str | None = None
    gst_number: str | None = None
    payment_terms: str | None = None
    is_active: bool | None = None


class SupplierOut(BaseModel):
    id: UUID
    name: str
    contact_person: str | None
    contact_phone: str | None
    contact_email: str | None
    address: str | None
    gst_number: str | None
    payment_terms: str | None
    outstanding_amount: Decimal
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ─── Purchase Orders ─────────────────────────────────────────────────────────


class POItemCreate(CamelInput):
    product_id: UUID
    tank_id: UUID | None = None
    quantity: Decimal
    unit_price: Decimal

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


class POHeaderCreate(CamelInput):
    station_id: UUID
    supplier_id: UUID
    order_date: datetime | None = None
    due_date: datetime | None = None
    expected_delivery_date: datetime | None = None
    notes: str | None = None


class PurchaseOrderCreate(CamelInput):
    order: POHeaderCreate
    items: list[POItemCreate]


class POItemOut(BaseModel):
    id: UUID
    product_id: UUID
    tank_id: UUID | None
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    received_quantity: Decimal

    class Config:
        from_attributes = True


class PurchaseOrderOut(BaseModel):
    id: UUID
    order_number: str
    station_id: UUID
    supplier_id: UUID
    user_id: UUID
    order_date: datetime
    due_date: datetime | None
    expected_delivery_date: datetime | None
    actual_delivery_date: datetime | None
    status: POStatus
    currency_code: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    notes: str | None

    class Config:
        from_attributes = True


class PurchaseOrderWithItems(BaseModel):
    order: PurchaseOrderOut
    items: list[POItemOut]


class PurchaseOrderDetail(PurchaseOrderOut):
    supplier_name: str
    items: list[POItemOut]
