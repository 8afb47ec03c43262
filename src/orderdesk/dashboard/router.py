"""Dashboard API router."""

from fastapi import APIRouter, Depends

from orderdesk.dashboard.schemas import DashboardStats
from orderdesk.deps import ServiceContainer, get_container
from orderdesk.orders.schemas import OrderSummary

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats(container: ServiceContainer = Depends(get_container)):
    async with container.db.get_session() as session:
        stats = await container.dashboard.get_stats(session)
        return DashboardStats(
            status_counts=stats["status_counts"],
            total_revenue=stats["total_revenue"],
            recent_orders=[OrderSummary.model_validate(o) for o in stats["recent_orders"]],
        )
