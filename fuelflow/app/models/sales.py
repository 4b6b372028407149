from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelflow.app.core.database import Base
from fuelflow.app.core.dates import utcnow


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    CREDIT = "credit"
    FLEET = "fleet"


class SalesTransaction(Base):
    """Sale header.

    Amounts are computed by the caller and checked, not re-derived:
    ``total_amount == subtotal + tax_amount`` and ``paid_amount <= total_amount``.
    For credit sales ``outstanding_amount == total_amount - paid_amount``.
    """

    __tablename__ = "sales_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod), nullable=False
    )
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="PKR")
    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0")
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0")
    )
    outstanding_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=Decimal("0")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    customer: Mapped["Customer | None"] = relationship(back_populates="sales")  # noqa: F821
    items: Mapped[list[SalesTransactionItem]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="SalesTransactionItem.position",
    )

    __table_args__ = (
        CheckConstraint("paid_amount <= total_amount", name="ck_sale_paid_within_total"),
        CheckConstraint("outstanding_amount >= 0", name="ck_sale_outstanding_non_negative"),
        Index("ix_sales_station_date", "station_id", "transaction_date"),
        Index("ix_sales_customer", "customer_id"),
    )


class SalesTransactionItem(Base):
    __tablename__ = "sales_transaction_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sales_transactions.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id"), nullable=False
    )
    tank_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("tanks.id"), nullable=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=3), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )

    transaction: Mapped[SalesTransaction] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship()  # noqa: F821

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sale_item_price_non_negative"),
        Index("ix_sale_items_transaction", "transaction_id"),
    )
