"""Order service: creation, queries and the status-change orchestrator."""

import logging
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.catalog.models import CustomerModel
from orderdesk.catalog.service import CENT, CatalogService
from orderdesk.common.config import OrderDeskSettings
from orderdesk.common.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from orderdesk.orders.models import OrderItemModel, OrderModel
from orderdesk.orders.schemas import BulkStatusFailure, BulkStatusResult, OrderResponse
from orderdesk.orders.transitions import OrderStatus, can_transition, status_event

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "id": OrderModel.id,
    "status": OrderModel.status,
    "total_amount": OrderModel.total_amount,
    "created_at": OrderModel.created_at,
}


class OrderService:
    """Order lifecycle operations."""

    def __init__(
        self,
        settings: OrderDeskSettings,
        catalog_service: CatalogService,
        webhook_service=None,
    ):
        self.settings = settings
        self.catalog_service = catalog_service
        self.webhook_service = webhook_service

    # ── Create ──

    async def create_order(
        self,
        session: AsyncSession,
        customer_id: int,
        items: list[dict[str, int]],
        notes: str | None = None,
    ) -> OrderModel:
        """Create a PENDING order, capturing each product's current price.

        ``items`` is a list of ``{"product_id": ..., "quantity": ...}``.
        Nothing is written unless every check passes.
        """
        if not items:
            raise ValidationError("Order must contain at least one item")
        for item in items:
            if item["quantity"] < 1:
                raise ValidationError("Item quantity must be at least 1")

        customer = await self.catalog_service.get_customer(session, customer_id)
        if customer is None:
            raise ValidationError(f"Customer {customer_id} not found")

        products = await self.catalog_service.get_products(
            session, [item["product_id"] for item in items]
        )
        requested = Counter()
        for item in items:
            if item["product_id"] not in products:
                raise ValidationError(f"Product {item['product_id']} not found")
            requested[item["product_id"]] += item["quantity"]

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.stock_quantity < quantity:
                raise ValidationError(
                    f"Insufficient stock for product '{product.name}': "
                    f"requested {quantity}, available {product.stock_quantity}"
                )

        order_items = []
        for position, item in enumerate(items):
            product = products[item["product_id"]]
            unit_price = Decimal(product.price).quantize(CENT)
            order_items.append(OrderItemModel(
                product_id=product.id,
                product=product,
                position=position,
                quantity=item["quantity"],
                unit_price=unit_price,
                line_total=(unit_price * item["quantity"]).quantize(CENT),
            ))

        order = OrderModel(
            customer_id=customer.id,
            customer=customer,
            status=OrderStatus.PENDING,
            items=order_items,
            total_amount=sum((i.line_total for i in order_items), Decimal("0.00")),
            notes=notes,
        )
        session.add(order)
        await session.flush()
        logger.info("Created order %s for customer %s", order.id, customer.id)
        return order

    # ── Read ──

    async def get_order(
        self, session: AsyncSession, order_id: int,
    ) -> OrderModel | None:
        return await session.get(OrderModel, order_id)

    async def list_orders(
        self,
        session: AsyncSession,
        statuses: list[str] | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[OrderModel], int]:
        """List orders with filtering and sorting. Returns (items, total_count)."""
        if sort_by not in SORTABLE_COLUMNS:
            raise ValidationError(
                f"Invalid sort column: {sort_by}. Valid columns: {sorted(SORTABLE_COLUMNS)}"
            )
        if sort_dir.lower() not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort direction: {sort_dir}")

        base_filter = []
        if statuses:
            try:
                wanted = [OrderStatus(s.strip().upper()) for s in statuses if s.strip()]
            except ValueError as exc:
                raise ValidationError(f"Invalid status filter: {statuses}") from exc
            if wanted:
                base_filter.append(OrderModel.status.in_(wanted))
        if search:
            base_filter.append(CustomerModel.name.ilike(f"%{search.strip()}%"))

        count_result = await session.execute(
            select(func.count(OrderModel.id))
            .join(CustomerModel, OrderModel.customer_id == CustomerModel.id)
            .where(*base_filter)
        )
        total = count_result.scalar() or 0

        column = SORTABLE_COLUMNS[sort_by]
        ordering = column.asc() if sort_dir.lower() == "asc" else column.desc()
        query = (
            select(OrderModel)
            .join(CustomerModel, OrderModel.customer_id == CustomerModel.id)
            .where(*base_filter)
            .order_by(ordering, OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(query)
        return list(result.scalars().all()), total

    # ── Update ──

    async def update_order(
        self,
        session: AsyncSession,
        order_id: int,
        **updates: Any,
    ) -> OrderModel:
        """Update notes and/or status.

        A status change is routed through :meth:`change_status`, so the
        transition table and the webhook fan-out apply here too.
        """
        order = await self.get_order(session, order_id)
        if order is None:
            raise NotFoundError("Order not found")

        new_status = updates.get("status")
        if new_status is not None:
            new_status = OrderStatus(new_status)
            if new_status != order.status and not can_transition(order.status, new_status):
                raise InvalidTransitionError(order.status.value, new_status.value)

        if "notes" in updates and updates["notes"] is not None:
            order.notes = updates["notes"]
            order.updated_at = datetime.now(timezone.utc)
            await session.flush()

        if new_status is not None and new_status != order.status:
            order = await self.change_status(session, order_id, new_status)
        return order

    async def change_status(
        self,
        session: AsyncSession,
        order_id: int,
        new_status: OrderStatus,
    ) -> OrderModel:
        """Move an order to ``new_status`` and notify subscribers.

        The transition is committed before fan-out starts; delivery results
        never undo it.
        """
        new_status = OrderStatus(new_status)
        order = await self.get_order(session, order_id)
        if order is None:
            raise NotFoundError("Order not found")

        previous_status = order.status
        if not can_transition(previous_status, new_status):
            raise InvalidTransitionError(previous_status.value, new_status.value)

        order.status = new_status
        order.updated_at = datetime.now(timezone.utc)
        await session.commit()
        logger.info(
            "Order %s moved %s -> %s", order.id, previous_status.value, new_status.value,
        )

        if self.webhook_service:
            await self.webhook_service.trigger_webhooks(
                session,
                order.id,
                status_event(new_status),
                {
                    "previousStatus": previous_status.value,
                    "newStatus": new_status.value,
                    "order": OrderResponse.model_validate(order).model_dump(mode="json"),
                },
            )
        return order

    async def bulk_change_status(
        self,
        session: AsyncSession,
        order_ids: list[int],
        new_status: OrderStatus,
    ) -> BulkStatusResult:
        """Apply :meth:`change_status` to each id in turn, never stopping early."""
        result = BulkStatusResult()
        for order_id in order_ids:
            try:
                await self.change_status(session, order_id, new_status)
            except NotFoundError:
                result.failed.append(BulkStatusFailure(id=order_id, reason="Order not found"))
            except InvalidTransitionError as e:
                result.failed.append(BulkStatusFailure(id=order_id, reason=e.message))
            else:
                result.succeeded.append(order_id)
        return result
