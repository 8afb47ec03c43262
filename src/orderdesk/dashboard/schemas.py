"""Pydantic schemas for the dashboard endpoint."""

from decimal import Decimal

from pydantic import BaseModel

from orderdesk.orders.schemas import OrderSummary


class DashboardStats(BaseModel):
    status_counts: dict[str, int]
    total_revenue: Decimal
    recent_orders: list[OrderSummary]
