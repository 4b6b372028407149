# fuelflow/app/models/accounting.py
#
# Loads every model module so the mapper registry and ``Base.metadata`` are
# complete, and re-exports the public names for callers that want a single
# import.

from fuelflow.app.models.user import RoleEnum, User
from fuelflow.app.models.station import Station, StationSettings
from fuelflow.app.models.inventory import (
    MovementReference,
    MovementType,
    PriceHistory,
    Product,
    ProductCategory,
    Pump,
    PumpReading,
    StockMovement,
    Tank,
    TankStatus,
)
from fuelflow.app.models.customer import Customer, CustomerType
from fuelflow.app.models.supplier import POStatus, PurchaseOrder, PurchaseOrderItem, Supplier
from fuelflow.app.models.sales import PaymentMethod, SalesTransaction, SalesTransactionItem
from fuelflow.app.models.expense import Expense
from fuelflow.app.models.payment import Payment, PaymentType
from fuelflow.app.models.account import Account, AccountType, NormalBalance
from fuelflow.app.models.journal import JournalEntry, JournalLine, SourceType
from fuelflow.app.models.audit import AuditLog

__all__ = [
    "RoleEnum",
    "User",
    "Station",
    "StationSettings",
    "MovementReference",
    "MovementType",
    "PriceHistory",
    "Product",
    "ProductCategory",
    "Pump",
    "PumpReading",
    "StockMovement",
    "Tank",
    "TankStatus",
    "Customer",
    "CustomerType",
    "POStatus",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Supplier",
    "PaymentMethod",
    "SalesTransaction",
    "SalesTransactionItem",
    "Expense",
    "Payment",
    "PaymentType",
    "Account",
    "AccountType",
    "NormalBalance",
    "JournalEntry",
    "JournalLine",
    "SourceType",
    "AuditLog",
]
