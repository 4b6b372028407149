from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from fuelflow.app.models.inventory import (
    MovementReference,
    MovementType,
    ProductCategory,
    TankStatus,
)


# ─── Products ────────────────────────────────────────────────────────────────


class ProductCreate(BaseModel):
    name: str
    category: ProductCategory
    unit: str = "litre"
    current_price: Decimal
    density: Decimal | None = None
    hsn_code: str | None = None
    is_active: bool = True

    @field_validator("current_price")
    @classmethod
    def price_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price must be non-negative")
        return v


class ProductUpdate(BaseModel):
    name: str | None = None
    category: ProductCategory | None = None
    unit: str | None = None
    current_price: Decimal | None = None
    density: Decimal | None = None
    hsn_code: str | None = None
    is_active: bool | None = None
    price_change_reason: str | None = None

    @field_validator("current_price")
    @classmethod
    def price_non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Price must be non-negative")
        return v


class ProductOut(BaseModel):
    id: UUID
    name: str
    category: ProductCategory
    unit: str
    current_price: Decimal
    density: Decimal | None
    hsn_code: str | None
    is_active: bool

    class Config:
        from_attributes = True


class BulkUpdateType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class BulkPriceUpdate(BaseModel):
    """Shift prices of the listed products (or every active product)."""

    update_type: BulkUpdateType
    value: Decimal
    product_ids: list[UUID] | None = None
    category: ProductCategory | None = None
    reason: str | None = None


class PriceHistoryOut(BaseModel):
    id: UUID
    product_id: UUID
    station_id: UUID | None
    old_price: Decimal | None
    new_price: Decimal
    changed_by: UUID | None
    reason: str | None
    effective_date: datetime

    class Config:
        from_attributes = True


# ─── Tanks & stock movements ─────────────────────────────────────────────────


class TankCreate(BaseModel):
    station_id: UUID
    product_id: UUID
    name: str
    capacity: Decimal
    minimum_level: Decimal = Decimal("0")
    opening_stock: Decimal = Decimal("0")

    @model_validator(mode="after")
    def check_levels(self) -> TankCreate:
        if self.capacity <= 0:
            raise ValueError("Capacity must be greater than zero")
        if self.opening_stock < 0 or self.opening_stock > self.capacity:
            raise ValueError("Opening stock must be between 0 and capacity")
        if self.minimum_level < 0 or self.minimum_level > self.capacity:
            raise ValueError("Minimum level must be between 0 and capacity")
        return self


class TankUpdate(BaseModel):
    name: str | None = None
    minimum_level: Decimal | None = None
    status: TankStatus | None = None


class TankOut(BaseModel):
    id: UUID
    station_id: UUID
    product_id: UUID
    name: str
    capacity: Decimal
    current_stock: Decimal
    minimum_level: Decimal
    status: TankStatus
    last_refill_date: datetime | None

    class Config:
        from_attributes = True


class StockMovementCreate(BaseModel):
    """Manual movement. For ``adjustment`` the quantity is the counted level."""

    tank_id: UUID
    movement_type: MovementType
    quantity: Decimal
    notes: str | None = None

    @field_validator("quantity")
    @classmethod
    def quantity_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Quantity must be non-negative")
        return v


class StockMovementOut(BaseModel):
    id: UUID
    tank_id: UUID
    station_id: UUID
    user_id: UUID
    movement_type: MovementType
    quantity: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    reference_id: UUID | None
    reference_type: MovementReference | None
    notes: str | None
    movement_date: datetime

    class Config:
        from_attributes = True


# ─── Pumps & readings ────────────────────────────────────────────────────────


class PumpCreate(BaseModel):
    station_id: UUID
    name: str
    pump_number: str
    product_id: UUID | None = None
    tank_id: UUID | None = None
    is_active: bool = True


class PumpUpdate(BaseModel):
    name: str | None = None
    pump_number: str | None = None
    product_id: UUID | None = None
    tank_id: UUID | None = None
    is_active: bool | None = None


class PumpOut(BaseModel):
    id: UUID
    station_id: UUID
    name: str
    pump_number: str
    product_id: UUID | None
    tank_id: UUID | None
    is_active: bool

    class Config:
        from_attributes = True


class PumpReadingCreate(BaseModel):
    pump_id: UUID
    product_id: UUID | None = None
    reading_date: datetime | None = None
    opening_reading: Decimal
    closing_reading: Decimal
    shift_number: int = 1
    operator_name: str | None = None

    @model_validator(mode="after")
    def closing_after_opening(self) -> PumpReadingCreate:
        if self.opening_reading < 0:
            raise ValueError("Opening reading must be non-negative")
        if self.closing_reading < self.opening_reading:
            raise ValueError("Closing reading cannot be less than opening reading")
        return self


class PumpReadingOut(BaseModel):
    id: UUID
    pump_id: UUID
    station_id: UUID
    user_id: UUID
    product_id: UUID
    reading_date: datetime
    opening_reading: Decimal
    closing_reading: Decimal
    total_sale: Decimal
    shift_number: int
    operator_name: str | None

    class Config:
        from_attributes = True
