from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.exceptions import ConflictError, NotFoundError, ValidationError
from fuelflow.app.models.inventory import Pump, PumpReading
from fuelflow.app.schemas.inventory import PumpCreate, PumpReadingCreate, PumpUpdate
from fuelflow.app.services.audit import log_action
from fuelflow.app.services.inventory import get_product, get_tank
from fuelflow.app.services.stations import get_station


def _check_links(db: Session, station_id: UUID, product_id: UUID | None, tank_id: UUID | None) -> None:
    if product_id is not None:
        get_product(db, product_id)
    if tank_id is not None:
        tank = get_tank(db, tank_id)
        if tank.station_id != station_id:
            raise ValidationError.for_field("tank_id", "Tank does not belong to this station")
        if product_id is not None and tank.product_id != product_id:
            raise ValidationError.for_field("tank_id", "Tank does not hold this product")


# ─── Pumps ───────────────────────────────────────────────────────────────────


def get_pump(db: Session, pump_id: UUID) -> Pump:
    pump = db.query(Pump).filter(Pump.id == pump_id).first()
    if not pump:
        raise NotFoundError("Pump", pump_id)
    return pump


def list_pumps(db: Session, station_id: UUID | None = None) -> list[Pump]:
    query = db.query(Pump)
    if station_id:
        query = query.filter(Pump.station_id == station_id)
    return query.order_by(Pump.pump_number).all()


def create_pump(
    db: Session, payload: PumpCreate, user_id: UUID, ip_address: str | None = None
) -> Pump:
    get_station(db, payload.station_id)
    _check_links(db, payload.station_id, payload.product_id, payload.tank_id)
    with atomic(db):
        pump = Pump(**payload.model_dump())
        db.add(pump)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="PUMP_CREATED",
            resource_type="pumps",
            resource_id=str(pump.id),
            ip_address=ip_address,
            changes={"name": pump.name, "pump_number": pump.pump_number},
        )
    db.refresh(pump)
    return pump


def update_pump(
    db: Session, pump_id: UUID, payload: PumpUpdate, user_id: UUID,
    ip_address: str | None = None,
) -> Pump:
    pump = get_pump(db, pump_id)
    data = payload.model_dump(exclude_unset=True)
    _check_links(
        db, pump.station_id,
        data.get("product_id", pump.product_id),
        data.get("tank_id", pump.tank_id),
    )
    with atomic(db):
        for field, value in data.items():
            setattr(pump, field, value)
        log_action(
            db,
            user_id=user_id,
            action="PUMP_UPDATED",
            resource_type="pumps",
            resource_id=str(pump.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(pump)
    return pump


def delete_pump(db: Session, pump_id: UUID, user_id: UUID, ip_address: str | None = None) -> Pump:
    pump = get_pump(db, pump_id)
    if db.query(PumpReading).filter(PumpReading.pump_id == pump_id).first():
        raise ConflictError("Pump has readings; deactivate it instead")
    with atomic(db):
        log_action(
            db,
            user_id=user_id,
            action="PUMP_DELETED",
            resource_type="pumps",
            resource_id=str(pump.id),
            ip_address=ip_address,
            changes={"name": pump.name},
        )
        db.delete(pump)
    return pump


# ─── Readings ────────────────────────────────────────────────────────────────


def get_reading(db: Session, reading_id: UUID) -> PumpReading:
    reading = db.query(PumpReading).filter(PumpReading.id == reading_id).first()
    if not reading:
        raise NotFoundError("Pump reading", reading_id)
    return reading


def list_readings(db: Session, station_id: UUID, limit: int | None = None) -> list[PumpReading]:
    query = (
        db.query(PumpReading)
        .filter(PumpReading.station_id == station_id)
        .order_by(PumpReading.reading_date.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def create_reading(
    db: Session, payload: PumpReadingCreate, user_id: UUID, ip_address: str | None = None
) -> PumpReading:
    """Record a shift's meter reading; the product defaults to the pump's."""
    pump = get_pump(db, payload.pump_id)
    product_id = payload.product_id or pump.product_id
    if product_id is None:
        raise ValidationError.for_field("product_id", "Pump has no product; pass product_id")
    get_product(db, product_id)

    with atomic(db):
        reading = PumpReading(
            station_id=pump.station_id,
            user_id=user_id,
            product_id=product_id,
            total_sale=payload.closing_reading - payload.opening_reading,
            **payload.model_dump(exclude={"product_id"}, exclude_none=True),
        )
        db.add(reading)
        db.flush()
        log_action(
            db,
            user_id=user_id,
            action="PUMP_READING_RECORDED",
            resource_type="pump_readings",
            resource_id=str(reading.id),
            ip_address=ip_address,
            changes={
                "pump_id": str(pump.id),
                "opening": str(reading.opening_reading),
                "closing": str(reading.closing_reading),
            },
        )
    db.refresh(reading)
    return reading
