"""Service wiring for OrderDesk.

Everything is built once per application by :func:`build_container` and kept
on ``app.state``; request handlers reach it through :func:`get_container`.
"""

from dataclasses import dataclass

import httpx
from fastapi import Request

from orderdesk.catalog.service import CatalogService
from orderdesk.common.config import OrderDeskSettings
from orderdesk.common.database import DatabaseManager
from orderdesk.dashboard.service import DashboardService
from orderdesk.orders.service import OrderService
from orderdesk.webhooks.service import WebhookService


@dataclass
class ServiceContainer:
    settings: OrderDeskSettings
    db: DatabaseManager
    catalog: CatalogService
    webhooks: WebhookService
    orders: OrderService
    dashboard: DashboardService

    async def startup(self) -> None:
        await self.db.init()
        await self.db.create_all()

    async def shutdown(self) -> None:
        await self.webhooks.close()
        await self.db.close()


def build_container(
    settings: OrderDeskSettings,
    http_client: httpx.AsyncClient | None = None,
) -> ServiceContainer:
    catalog = CatalogService()
    webhooks = WebhookService(settings, http_client=http_client)
    return ServiceContainer(
        settings=settings,
        db=DatabaseManager(settings),
        catalog=catalog,
        webhooks=webhooks,
        orders=OrderService(settings, catalog, webhook_service=webhooks),
        dashboard=DashboardService(),
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
