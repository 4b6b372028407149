"""Pydantic response schemas for station reports."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


# ── Shared line-item ─────────────────────────────────────────────────────────

class AmountLine(BaseModel):
    name: str
    amount: str
    count: int | None = None
    quantity: str | None = None


# ── Daily Report ─────────────────────────────────────────────────────────────

class ReceivablesSummary(BaseModel):
    new_credit: str
    payments_received: str
    outstanding: str


class PayablesSummary(BaseModel):
    new_purchases: str
    payments_made: str
    outstanding: str


class CashFlowSummary(BaseModel):
    opening_cash: str
    cash_receipts: str
    cash_expenses: str
    card_receipts: str
    closing_cash: str


class TaxSummary(BaseModel):
    tax_collected: str
    tax_paid: str
    net_tax: str


class DailyReportResponse(BaseModel):
    station_id: UUID
    date: str
    total_sales: str
    transaction_count: int
    sales_by_payment_method: list[AmountLine]
    sales_by_product: list[AmountLine]
    expenses_by_category: list[AmountLine]
    total_expenses: str
    receivables: ReceivablesSummary
    payables: PayablesSummary
    cash_flow: CashFlowSummary
    tax: TaxSummary


# ── Sales Report ─────────────────────────────────────────────────────────────

class SalesReportResponse(BaseModel):
    station_id: UUID
    from_date: str
    to_date: str
    total_sales: str
    total_tax: str
    transaction_count: int
    average_sale: str
    by_day: list[AmountLine]
    by_product: list[AmountLine]


# ── Financial Report ─────────────────────────────────────────────────────────

class FinancialReportResponse(BaseModel):
    station_id: UUID
    from_date: str
    to_date: str
    revenue: str
    revenue_by_category: list[AmountLine]
    cost_of_goods: str
    gross_profit: str
    operating_expenses: str
    expenses_by_category: list[AmountLine]
    net_profit: str
    profit_margin: str


# ── Aging ────────────────────────────────────────────────────────────────────

class AgingBucketRow(BaseModel):
    name: str
    current: str  # 0-30 days
    days_31_60: str
    days_61_90: str
    over_90: str
    total: str


class AgingResponse(BaseModel):
    station_id: UUID
    aging_type: Literal["receivable", "payable"]
    as_of_date: str
    total_outstanding: str
    total_overdue: str
    parties: list[AgingBucketRow]
    totals: AgingBucketRow


# ── Dashboard ────────────────────────────────────────────────────────────────

class TankLevel(BaseModel):
    tank_id: UUID
    name: str
    product_name: str
    current_stock: str
    capacity: str
    fill_percentage: str
    status: str
    is_low: bool


class RecentSale(BaseModel):
    id: UUID
    invoice_number: str
    transaction_date: datetime
    payment_method: str
    total_amount: str


class DashboardResponse(BaseModel):
    station_id: UUID
    today_sales: str
    today_transactions: int
    tank_levels: list[TankLevel]
    low_stock_count: int
    total_receivables: str
    total_payables: str
    recent_sales: list[RecentSale]


# ── Balance check ────────────────────────────────────────────────────────────

class BalanceDrift(BaseModel):
    party_type: Literal["customer", "supplier"]
    party_id: UUID
    name: str
    stored: Decimal
    expected: Decimal
    difference: Decimal


class BalanceCheckOut(BaseModel):
    station_id: UUID | None
    checked_at: datetime
    customers_checked: int
    suppliers_checked: int
    drift: list[BalanceDrift]
    reconciled: bool = False
