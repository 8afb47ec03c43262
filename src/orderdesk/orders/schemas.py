"""Pydantic schemas for order endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from orderdesk.catalog.schemas import CustomerResponse, ProductResponse
from orderdesk.orders.transitions import OrderStatus


class OrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    customer_id: int
    items: list[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = None


class OrderUpdate(BaseModel):
    notes: Optional[str] = None
    status: Optional[OrderStatus] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class BulkStatusUpdate(BaseModel):
    order_ids: list[int] = Field(..., min_length=1)
    status: OrderStatus


class BulkStatusFailure(BaseModel):
    id: int
    reason: str


class BulkStatusResult(BaseModel):
    succeeded: list[int] = []
    failed: list[BulkStatusFailure] = []


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    product: Optional[ProductResponse] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class OrderSummary(BaseModel):
    id: int
    customer_id: int
    customer: Optional[CustomerResponse] = None
    status: OrderStatus
    total_amount: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrderResponse(OrderSummary):
    items: list[OrderItemResponse] = []
