from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import ConflictError, NotFoundError
from fuelflow.app.models.station import Station, StationSettings
from fuelflow.app.schemas.station import (
    SettingsCreate,
    SettingsUpdate,
    StationCreate,
    StationUpdate,
)
from fuelflow.app.services.audit import log_action


def get_station(db: Session, station_id: UUID) -> Station:
    station = db.query(Station).filter(Station.id == station_id).first()
    if not station:
        raise NotFoundError("Station", station_id)
    return station


def list_stations(db: Session) -> list[Station]:
    return db.query(Station).order_by(Station.name).all()


def create_station(
    db: Session, payload: StationCreate, user_id: UUID, ip_address: str | None = None
) -> Station:
    with atomic(db):
        station = Station(**payload.model_dump())
        db.add(station)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="STATION_CREATED",
            resource_type="stations",
            resource_id=str(station.id),
            ip_address=ip_address,
            changes={"name": station.name},
        )
    db.refresh(station)
    return station


def update_station(
    db: Session,
    station_id: UUID,
    payload: StationUpdate,
    user_id: UUID,
    ip_address: str | None = None,
) -> Station:
    station = get_station(db, station_id)
    data = payload.model_dump(exclude_unset=True)
    with atomic(db):
        for field, value in data.items():
            setattr(station, field, value)
        log_action(
            db,
            user_id=user_id,
            action="STATION_UPDATED",
            resource_type="stations",
            resource_id=str(station.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(station)
    return station


# ─── Settings ────────────────────────────────────────────────────────────────


def default_settings(station: Station) -> StationSettings:
    """The single definition of a station's default settings (unsaved)."""
    return StationSettings(
        station_id=station.id,
        tax_enabled=False,
        tax_rate=Decimal("0"),
        currency_code=station.default_currency or "PKR",
        company_name=station.name,
        company_address=station.address,
        company_phone=station.contact_phone,
        company_email=station.contact_email,
        ledger_posting_enabled=False,
    )


def find_settings(db: Session, station_id: UUID) -> StationSettings | None:
    return (
        db.query(StationSettings)
        .filter(StationSettings.station_id == station_id)
        .first()
    )


def get_settings(db: Session, station_id: UUID) -> StationSettings:
    """Return stored settings, or unsaved defaults when none exist yet."""
    station = get_station(db, station_id)
    return find_settings(db, station_id) or default_settings(station)


def get_or_create_settings(db: Session, station_id: UUID) -> StationSettings:
    """Return the station's settings row, inserting the defaults if missing.

    Does not commit; the new row joins the caller's unit of work.
    """
    existing = find_settings(db, station_id)
    if existing:
        return existing
    settings_row = default_settings(get_station(db, station_id))
    db.add(settings_row)
    db.flush()
    return settings_row


def create_settings(
    db: Session,
    station_id: UUID,
    payload: SettingsCreate,
    user_id: UUID,
    ip_address: str | None = None,
) -> StationSettings:
    get_station(db, station_id)
    if find_settings(db, station_id):
        raise ConflictError("Settings already exist for this station")
    with atomic(db):
        settings_row = StationSettings(station_id=station_id, **payload.model_dump())
        db.add(settings_row)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="SETTINGS_CREATED",
            resource_type="station_settings",
            resource_id=str(settings_row.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in payload.model_dump().items()},
        )
    db.refresh(settings_row)
    return settings_row


def update_settings(
    db: Session,
    station_id: UUID,
    payload: SettingsUpdate,
    user_id: UUID,
    ip_address: str | None = None,
) -> StationSettings:
    data = payload.model_dump(exclude_unset=True)
    with atomic(db):
        settings_row = get_or_create_settings(db, station_id)
        for field, value in data.items():
            setattr(settings_row, field, value)
        log_action(
            db,
            user_id=user_id,
            action="SETTINGS_UPDATED",
            resource_type="station_settings",
            resource_id=str(settings_row.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(settings_row)
    return settings_row
