from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelflow.app.core.database import Base
from fuelflow.app.core.dates import utcnow


class ProductCategory(str, enum.Enum):
    FUEL = "fuel"
    LUBRICANT = "lubricant"
    ADDITIVE = "additive"
    OTHER = "other"


class TankStatus(str, enum.Enum):
    NORMAL = "normal"
    LOW = "low"
    CRITICAL = "critical"
    MAINTENANCE = "maintenance"


class MovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class MovementReference(str, enum.Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    ADJUSTMENT = "adjustment"


class Product(Base):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[ProductCategory] = mapped_column(
        Enum(ProductCategory), nullable=False
    )
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="litre")
    current_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    density: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=8, scale=4), nullable=True
    )
    hsn_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("current_price >= 0", name="ck_product_price_non_negative"),
        Index("ix_products_category", "category"),
    )


class PriceHistory(Base):
    """One row per product price change."""

    __tablename__ = "price_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id"), nullable=False
    )
    station_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("stations.id"), nullable=True
    )
    old_price: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=12, scale=2), nullable=True
    )
    new_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    changed_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    effective_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    product: Mapped[Product] = relationship()

    __table_args__ = (
        Index("ix_price_history_product", "product_id"),
    )


class Tank(Base):
    """Physical fuel reservoir.

    ``current_stock`` is only ever changed by ``services.inventory.apply_movement``,
    which writes a StockMovement row alongside every change.
    """

    __tablename__ = "tanks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    capacity: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    current_stock: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False, default=Decimal("0")
    )
    minimum_level: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False, default=Decimal("0")
    )
    status: Mapped[TankStatus] = mapped_column(
        Enum(TankStatus), nullable=False, default=TankStatus.NORMAL
    )
    last_refill_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    station: Mapped["Station"] = relationship(back_populates="tanks")  # noqa: F821
    product: Mapped[Product] = relationship()

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_tank_stock_non_negative"),
        CheckConstraint("capacity > 0", name="ck_tank_capacity_positive"),
        Index("ix_tanks_station", "station_id"),
    )


class StockMovement(Base):
    """Append-only record of a single tank quantity change."""

    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tank_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tanks.id"), nullable=False)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    movement_type: Mapped[MovementType] = mapped_column(
        Enum(MovementType), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    previous_stock: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    new_stock: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    reference_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reference_type: Mapped[MovementReference | None] = mapped_column(
        Enum(MovementReference), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    movement_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    tank: Mapped[Tank] = relationship()

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_movement_quantity_non_negative"),
        CheckConstraint("new_stock >= 0", name="ck_movement_new_stock_non_negative"),
        Index("ix_movements_tank", "tank_id"),
        Index("ix_movements_reference", "reference_type", "reference_id"),
    )


class Pump(Base):
    __tablename__ = "pumps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False
    )
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("products.id"), nullable=True
    )
    tank_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("tanks.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    pump_number: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    product: Mapped[Product | None] = relationship()

    __table_args__ = (
        UniqueConstraint("station_id", "pump_number", name="uq_pump_station_number"),
    )


class PumpReading(Base):
    """Shift meter reading for one pump; ``total_sale`` is closing minus opening."""

    __tablename__ = "pump_readings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pump_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("pumps.id"), nullable=False)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id"), nullable=False
    )
    reading_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    opening_reading: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    closing_reading: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    total_sale: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=3), nullable=False
    )
    shift_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    operator_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    pump: Mapped[Pump] = relationship()
    product: Mapped[Product] = relationship()

    __table_args__ = (
        CheckConstraint(
            "closing_reading >= opening_reading", name="ck_reading_closing_after_opening"
        ),
        Index("ix_pump_readings_station_date", "station_id", "reading_date"),
    )
