from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelflow.app.core.database import Base

SUPPORTED_CURRENCIES = ("PKR", "INR", "USD", "EUR", "GBP", "AED", "SAR", "CNY")


class Station(Base):
    """A single fuel retail location; most records are scoped to one."""

    __tablename__ = "stations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    gst_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="PKR")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    users: Mapped[list["User"]] = relationship(back_populates="station")  # noqa: F821
    settings: Mapped[StationSettings | None] = relationship(
        back_populates="station", uselist=False
    )
    tanks: Mapped[list["Tank"]] = relationship(back_populates="station")  # noqa: F821


class StationSettings(Base):
    """Per-station tax, currency and receipt configuration.

    Exactly one row per station. Read it through
    ``services.stations.get_or_create_settings`` so the defaults live in
    one place.
    """

    __tablename__ = "station_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False
    )
    tax_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2), nullable=False, default=Decimal("0")
    )
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="PKR")
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    receipt_footer: Mapped[str | None] = mapped_column(Text, nullable=True)
    ledger_posting_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    station: Mapped[Station] = relationship(back_populates="settings")

    __table_args__ = (
        UniqueConstraint("station_id", name="uq_station_settings_station"),
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 100", name="ck_settings_tax_rate_range"),
    )
