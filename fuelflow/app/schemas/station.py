from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from fuelflow.app.models.station import SUPPORTED_CURRENCIES


def _check_currency(v: str) -> str:
    if v not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency '{v}'")
    return v


CurrencyCode = Annotated[str, AfterValidator(_check_currency)]


class CamelInput(BaseModel):
    """Request bodies accept both snake_case and the dashboard's camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StationCreate(BaseModel):
    name: str
    address: str | None = None
    gst_number: str | None = None
    license_number: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    default_currency: CurrencyCode = "PKR"
    is_active: bool = True


class StationUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    gst_number: str | None = None
    license_number: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    default_currency: CurrencyCode | None = None
    is_active: bool | None = None


class StationOut(BaseModel):
    id: UUID
    name: str
    address: str | None
    gst_number: str | None
    license_number: str | None
    contact_phone: str | None
    contact_email: str | None
    default_currency: str
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ─── Settings ────────────────────────────────────────────────────────────────


class SettingsBase(BaseModel):
    tax_enabled: bool = False
    tax_rate: Decimal = Decimal("0")
    currency_code: CurrencyCode = "PKR"
    company_name: str | None = None
    company_address: str | None = None
    company_phone: str | None = None
    company_email: str | None = None
    receipt_footer: str | None = None
    ledger_posting_enabled: bool = False

    @field_validator("tax_rate")
    @classmethod
    def rate_in_range(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 100:
            raise ValueError("Tax rate must be between 0 and 100")
        return v


class SettingsCreate(SettingsBase):
    pass


class SettingsUpdate(BaseModel):
    tax_enabled: bool | None = None
    tax_rate: Decimal | None = None
    currency_code: CurrencyCode | None = None
    company_name: str | None = None
    company_address: str | None = None
    company_phone: str | None = None
    company_email: str | None = None
    receipt_footer: str | None = None
    ledger_posting_enabled: bool | None = None

    @field_validator("tax_rate")
    @classmethod
    def rate_in_range(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and (v < 0 or v > 100):
            raise ValueError("Tax rate must be between 0 and 100")
        return v


class SettingsOut(SettingsBase):
    id: UUID | None = None
    station_id: UUID

    class Config:
        from_attributes = True
