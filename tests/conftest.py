"""Shared test fixtures for OrderDesk."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from orderdesk.common.config import OrderDeskSettings
from orderdesk.common.database import DatabaseManager


def make_settings(**overrides) -> OrderDeskSettings:
    defaults = {
        "db_url": "sqlite+aiosqlite://",
        "log_json": False,
        "webhook_timeout_seconds": 2.0,
    }
    defaults.update(overrides)
    return OrderDeskSettings(**defaults)


class WebhookReceiver:
    """In-process stand-in for subscriber endpoints.

    The reply depends on the host name:
    ``down.*`` refuses the connection, ``slow.*`` times out,
    ``error.*`` answers 500 and anything else answers 200.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host.startswith("down."):
            raise httpx.ConnectError("Connection refused", request=request)
        if host.startswith("slow."):
            raise httpx.ReadTimeout("Read timed out", request=request)
        if host.startswith("error."):
            return httpx.Response(500, text="Internal Server Error")
        return httpx.Response(200, text="ok")

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def receiver():
    return WebhookReceiver()


@pytest.fixture
async def http_client(receiver):
    client = httpx.AsyncClient(transport=httpx.MockTransport(receiver.handler))
    yield client
    await client.aclose()


@pytest.fixture
async def db(settings):
    manager = DatabaseManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def app(settings, http_client):
    """Create a test app with an in-memory DB and the fake receiver."""
    from orderdesk.app import create_app
    return create_app(settings, http_client=http_client)


@pytest.fixture
async def client(app):
    # ASGITransport doesn't run lifespan, so start the container by hand
    container = app.state.container
    await container.startup()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test/api") as ac:
        yield ac

    await container.shutdown()
