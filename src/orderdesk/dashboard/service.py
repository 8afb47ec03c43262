"""Dashboard aggregates over the orders table."""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.catalog.service import CENT
from orderdesk.orders.models import OrderModel
from orderdesk.orders.transitions import OrderStatus

RECENT_ORDERS_LIMIT = 10


class DashboardService:

    async def status_counts(self, session: AsyncSession) -> dict[str, int]:
        result = await session.execute(
            select(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status)
        )
        counts = {status.value: 0 for status in OrderStatus}
        for status, count in result.all():
            counts[OrderStatus(status).value] = count
        return counts

    async def total_revenue(self, session: AsyncSession) -> Decimal:
        """Sum of order totals, cancelled orders excluded."""
        result = await session.execute(
            select(func.coalesce(func.sum(OrderModel.total_amount), 0)).where(
                OrderModel.status != OrderStatus.CANCELLED,
            )
        )
        return Decimal(str(result.scalar() or 0)).quantize(CENT)

    async def recent_orders(
        self, session: AsyncSession, limit: int = RECENT_ORDERS_LIMIT,
    ) -> list[OrderModel]:
        result = await session.execute(
            select(OrderModel)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_stats(self, session: AsyncSession) -> dict:
        return {
            "status_counts": await self.status_counts(session),
            "total_revenue": await self.total_revenue(session),
            "recent_orders": await self.recent_orders(session),
        }
