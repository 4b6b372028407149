from fastapi import APIRouter

from fuelflow.app.api.v1.endpoints import (
    accounts,
    audit,
    auth,
    customer_activities,
    customers,
    dashboard,
    expenses,
    journal,
    payments,
    products,
    pumps,
    purchase_orders,
    reports,
    sales,
    settings,
    stations,
    stock_movements,
    suppliers,
    tanks,
    users,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(stations.router, prefix="/stations", tags=["stations"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(tanks.router, prefix="/tanks", tags=["tanks"])
api_router.include_router(stock_movements.router, prefix="/stock-movements", tags=["stock-movements"])
api_router.include_router(pumps.router, prefix="/pumps", tags=["pumps"])
api_router.include_router(pumps.readings_router, prefix="/pump-readings", tags=["pumps"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(
    customer_activities.router, prefix="/customer-activities", tags=["customers"]
)
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(journal.router, prefix="/journal-entries", tags=["journal"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(audit.router, prefix="/audit-logs", tags=["audit"])
