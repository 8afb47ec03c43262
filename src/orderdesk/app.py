"""FastAPI application factory for OrderDesk."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderdesk.common.config import OrderDeskSettings, get_settings
from orderdesk.common.logging import setup_logging
from orderdesk.common.schemas import HealthResponse
from orderdesk.deps import build_container

logger = logging.getLogger(__name__)


def create_app(
    settings: OrderDeskSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, json_lines=settings.log_json)
    container = build_container(settings, http_client=http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await container.startup()
        if settings.seed_on_startup:
            from orderdesk.seed import seed_demo_data
            async with container.db.get_session() as session:
                await seed_demo_data(session, container.catalog, container.orders)
        logger.info("OrderDesk started (%s)", settings.environment)
        yield
        # Shutdown
        await container.shutdown()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    prefix = settings.api_prefix

    @app.get(f"{prefix}/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            version=settings.api_version,
            timestamp=datetime.now(timezone.utc),
        )

    # Mount routers
    from orderdesk.catalog.router import router as catalog_router
    from orderdesk.orders.router import router as orders_router
    from orderdesk.webhooks.router import router as webhook_router
    from orderdesk.dashboard.router import router as dashboard_router

    app.include_router(catalog_router, prefix=prefix, tags=["catalog"])
    app.include_router(orders_router, prefix=prefix, tags=["orders"])
    app.include_router(webhook_router, prefix=prefix, tags=["webhooks"])
    app.include_router(dashboard_router, prefix=prefix, tags=["dashboard"])

    return app
