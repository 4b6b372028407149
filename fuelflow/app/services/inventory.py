from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from fuelflow.app.core.database import atomic
from fuelflow.app.core.dates import utcnow
from fuelflow.app.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from fuelflow.app.models.inventory import (
    MovementReference,
    MovementType,
    PriceHistory,
    Product,
    StockMovement,
    Tank,
    TankStatus,
)
from fuelflow.app.models.station import Station
from fuelflow.app.schemas.inventory import (
    BulkPriceUpdate,
    BulkUpdateType,
    ProductCreate,
    ProductUpdate,
    StockMovementCreate,
    TankCreate,
    TankUpdate,
)
from fuelflow.app.services.audit import log_action

logger = logging.getLogger(__name__)

QTY = Decimal("0.001")
CENTS = Decimal("0.01")
ZERO = Decimal("0")


# ─── Products ────────────────────────────────────────────────────────────────


def get_product(db: Session, product_id: UUID) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product", product_id)
    return product


def list_products(db: Session, active_only: bool = False) -> list[Product]:
    query = db.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name).all()


def create_product(
    db: Session, payload: ProductCreate, user_id: UUID, ip_address: str | None = None
) -> Product:
    with atomic(db):
        product = Product(**payload.model_dump())
        db.add(product)
        db.flush()
        db.add(
            PriceHistory(
                product_id=product.id,
                new_price=product.current_price,
                changed_by=user_id,
                reason="Initial price",
            )
        )
        log_action(
            db,
            user_id=user_id,
            action="PRODUCT_CREATED",
            resource_type="products",
            resource_id=str(product.id),
            ip_address=ip_address,
            changes={"name": product.name, "price": str(product.current_price)},
        )
    db.refresh(product)
    return product


def _record_price_change(
    db: Session,
    product: Product,
    new_price: Decimal,
    user_id: UUID,
    reason: str | None,
    station_id: UUID | None = None,
) -> None:
    old_price = product.current_price
    if old_price == new_price:
        return
    product.current_price = new_price
    db.add(
        PriceHistory(
            product_id=product.id,
            station_id=station_id,
            old_price=old_price,
            new_price=new_price,
            changed_by=user_id,
            reason=reason,
        )
    )


def update_product(
    db: Session,
    product_id: UUID,
    payload: ProductUpdate,
    user_id: UUID,
    station_id: UUID | None = None,
    ip_address: str | None = None,
) -> Product:
    product = get_product(db, product_id)
    data = payload.model_dump(exclude_unset=True)
    new_price = data.pop("current_price", None)
    reason = data.pop("price_change_reason", None)

    with atomic(db):
        for field, value in data.items():
            setattr(product, field, value)
        if new_price is not None:
            _record_price_change(db, product, new_price, user_id, reason, station_id)
        log_action(
            db,
            user_id=user_id,
            action="PRODUCT_UPDATED",
            resource_type="products",
            resource_id=str(product.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in payload.model_dump(exclude_unset=True).items()},
        )
    db.refresh(product)
    return product


def delete_product(
    db: Session, product_id: UUID, user_id: UUID, ip_address: str | None = None
) -> None:
    """Deactivate a product; rows referenced by sales or tanks are kept."""
    product = get_product(db, product_id)
    with atomic(db):
        product.is_active = False
        log_action(
            db,
            user_id=user_id,
            action="PRODUCT_DEACTIVATED",
            resource_type="products",
            resource_id=str(product.id),
            ip_address=ip_address,
        )


def bulk_update_prices(
    db: Session,
    payload: BulkPriceUpdate,
    user_id: UUID,
    station_id: UUID | None = None,
    ip_address: str | None = None,
) -> list[Product]:
    """Shift prices by a percentage or a fixed amount in one transaction.

    A change that would make any price negative rejects the whole batch.
    """
    query = db.query(Product).filter(Product.is_active.is_(True))
    if payload.product_ids:
        query = query.filter(Product.id.in_(payload.product_ids))
    if payload.category:
        query = query.filter(Product.category == payload.category)
    products = query.order_by(Product.name).all()
    if not products:
        raise ValidationError.for_field("product_ids", "No matching products to update")

    new_prices: dict[UUID, Decimal] = {}
    for product in products:
        if payload.update_type == BulkUpdateType.PERCENTAGE:
            price = product.current_price * (1 + payload.value / Decimal("100"))
        else:
            price = product.current_price + payload.value
        price = price.quantize(CENTS, rounding=ROUND_HALF_UP)
        if price < 0:
            raise ValidationError.for_field(
                "value", f"Price of '{product.name}' would become negative"
            )
        new_prices[product.id] = price

    with atomic(db):
        for product in products:
            _record_price_change(
                db, product, new_prices[product.id], user_id,
                payload.reason or f"Bulk {payload.update_type.value} update", station_id,
            )
        log_action(
            db,
            user_id=user_id,
            action="PRICES_BULK_UPDATED",
            resource_type="products",
            resource_id="bulk",
            ip_address=ip_address,
            changes={
                "update_type": payload.update_type.value,
                "value": str(payload.value),
                "products": [str(p.id) for p in products],
            },
        )
    for product in products:
        db.refresh(product)
    return products


def list_price_history(db: Session, product_id: UUID) -> list[PriceHistory]:
    get_product(db, product_id)
    return (
        db.query(PriceHistory)
        .filter(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.effective_date.desc())
        .all()
    )


# ─── Tanks ───────────────────────────────────────────────────────────────────


def get_tank(db: Session, tank_id: UUID) -> Tank:
    tank = db.query(Tank).filter(Tank.id == tank_id).first()
    if not tank:
        raise NotFoundError("Tank", tank_id)
    return tank


def list_tanks(db: Session, station_id: UUID) -> list[Tank]:
    return db.query(Tank).filter(Tank.station_id == station_id).order_by(Tank.name).all()


def derive_tank_status(tank: Tank, stock: Decimal) -> TankStatus:
    if tank.status == TankStatus.MAINTENANCE:
        return TankStatus.MAINTENANCE
    if tank.minimum_level > 0 and stock <= tank.minimum_level / 2:
        return TankStatus.CRITICAL
    if stock <= tank.minimum_level:
        return TankStatus.LOW
    return TankStatus.NORMAL


def create_tank(
    db: Session, payload: TankCreate, user_id: UUID, ip_address: str | None = None
) -> Tank:
    if not db.query(Station).filter(Station.id == payload.station_id).first():
        raise NotFoundError("Station", payload.station_id)
    get_product(db, payload.product_id)

    with atomic(db):
        tank = Tank(
            station_id=payload.station_id,
            product_id=payload.product_id,
            name=payload.name,
            capacity=payload.capacity,
            minimum_level=payload.minimum_level,
            current_stock=ZERO,
        )
        db.add(tank)
        db.flush()
        if payload.opening_stock > 0:
            apply_movement(
                db,
                tank_id=tank.id,
                station_id=tank.station_id,
                user_id=user_id,
                movement_type=MovementType.IN,
                quantity=payload.opening_stock,
                reference_type=MovementReference.ADJUSTMENT,
                notes="Opening stock",
            )
        else:
            tank.status = derive_tank_status(tank, ZERO)
        log_action(
            db,
            user_id=user_id,
            action="TANK_CREATED",
            resource_type="tanks",
            resource_id=str(tank.id),
            ip_address=ip_address,
            changes={"name": tank.name, "capacity": str(tank.capacity)},
        )
    db.refresh(tank)
    return tank


def update_tank(
    db: Session, tank_id: UUID, payload: TankUpdate, user_id: UUID,
    ip_address: str | None = None,
) -> Tank:
    tank = get_tank(db, tank_id)
    data = payload.model_dump(exclude_unset=True)
    with atomic(db):
        for field, value in data.items():
            setattr(tank, field, value)
        if "status" not in data:
            tank.status = derive_tank_status(tank, tank.current_stock)
        log_action(
            db,
            user_id=user_id,
            action="TANK_UPDATED",
            resource_type="tanks",
            resource_id=str(tank.id),
            ip_address=ip_address,
            changes={k: str(v) for k, v in data.items()},
        )
    db.refresh(tank)
    return tank


# ─── Stock movements ─────────────────────────────────────────────────────────


def apply_movement(
    db: Session,
    *,
    tank_id: UUID,
    station_id: UUID,
    user_id: UUID,
    movement_type: MovementType,
    quantity: Decimal,
    product_id: UUID | None = None,
    reference_id: UUID | None = None,
    reference_type: MovementReference | None = None,
    notes: str | None = None,
    enforce_capacity: bool = True,
) -> StockMovement:
    """Change a tank's stock and append the matching StockMovement row.

    Outbound movements use a conditional ``UPDATE ... WHERE current_stock >= q``
    so two concurrent withdrawals can never both pass the stock check.
    Inbound movements are capped by tank capacity the same way unless
    *enforce_capacity* is off (reversals of recorded sales). Adjustments
    set an absolute counted level under a row lock.

    Does not commit; call inside ``atomic``.
    """
    tank = get_tank(db, tank_id)
    if tank.station_id != station_id:
        raise ValidationError.for_field("tank_id", "Tank does not belong to this station")
    if product_id is not None and tank.product_id != product_id:
        raise ValidationError.for_field("tank_id", "Tank does not hold this product")

    quantity = Decimal(quantity).quantize(QTY, rounding=ROUND_HALF_UP)

    if movement_type == MovementType.ADJUSTMENT:
        locked = (
            db.query(Tank).filter(Tank.id == tank_id).with_for_update().populate_existing().one()
        )
        if quantity > locked.capacity:
            raise ValidationError.for_field("quantity", "Counted level exceeds tank capacity")
        previous = locked.current_stock
        new_stock = quantity
        locked.current_stock = new_stock
        moved = abs(new_stock - previous)
    else:
        if quantity <= 0:
            raise ValidationError.for_field("quantity", "Quantity must be greater than zero")
        if movement_type == MovementType.OUT:
            stmt = (
                update(Tank)
                .where(Tank.id == tank_id, Tank.current_stock >= quantity)
                .values(current_stock=Tank.current_stock - quantity)
                .execution_options(synchronize_session=False)
            )
        else:
            conditions = [Tank.id == tank_id]
            if enforce_capacity:
                conditions.append(Tank.current_stock + quantity <= Tank.capacity)
            stmt = (
                update(Tank)
                .where(*conditions)
                .values(current_stock=Tank.current_stock + quantity)
                .execution_options(synchronize_session=False)
            )
        result = db.execute(stmt)
        if result.rowcount != 1:
            if movement_type == MovementType.OUT:
                logger.info("Stock check failed for tank %s (%s requested)", tank.name, quantity)
                raise InsufficientStockError(tank.name, quantity)
            raise ValidationError.for_field(
                "quantity", f"Receiving {quantity} would exceed capacity of tank '{tank.name}'"
            )
        new_stock = db.execute(
            select(Tank.current_stock).where(Tank.id == tank_id)
        ).scalar_one()
        new_stock = Decimal(new_stock).quantize(QTY)
        previous = new_stock + quantity if movement_type == MovementType.OUT else new_stock - quantity
        moved = quantity
        db.expire(tank, ["current_stock"])

    tank.status = derive_tank_status(tank, new_stock)
    if movement_type == MovementType.IN:
        tank.last_refill_date = utcnow()

    movement = StockMovement(
        tank_id=tank_id,
        station_id=station_id,
        user_id=user_id,
        movement_type=movement_type,
        quantity=moved,
        previous_stock=previous,
        new_stock=new_stock,
        reference_id=reference_id,
        reference_type=reference_type,
        notes=notes,
    )
    db.add(movement)
    db.flush()
    return movement


def record_manual_movement(
    db: Session,
    payload: StockMovementCreate,
    user_id: UUID,
    ip_address: str | None = None,
) -> StockMovement:
    tank = get_tank(db, payload.tank_id)
    with atomic(db):
        movement = apply_movement(
            db,
            tank_id=tank.id,
            station_id=tank.station_id,
            user_id=user_id,
            movement_type=payload.movement_type,
            quantity=payload.quantity,
            reference_type=MovementReference.ADJUSTMENT,
            notes=payload.notes,
        )
        log_action(
            db,
            user_id=user_id,
            action="STOCK_MOVEMENT",
            resource_type="tanks",
            resource_id=str(tank.id),
            ip_address=ip_address,
            changes={
                "movement_type": payload.movement_type.value,
                "quantity": str(movement.quantity),
                "previous_stock": str(movement.previous_stock),
                "new_stock": str(movement.new_stock),
            },
        )
    db.refresh(movement)
    return movement


def list_movements(db: Session, tank_id: UUID, limit: int | None = None) -> list[StockMovement]:
    get_tank(db, tank_id)
    query = (
        db.query(StockMovement)
        .filter(StockMovement.tank_id == tank_id)
        .order_by(StockMovement.movement_date.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def movements_for_reference(
    db: Session, reference_type: MovementReference, reference_id: UUID
) -> list[StockMovement]:
    return (
        db.query(StockMovement)
        .filter(
            StockMovement.reference_type == reference_type,
            StockMovement.reference_id == reference_id,
        )
        .order_by(StockMovement.movement_date)
        .all()
    )
