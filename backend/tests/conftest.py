"""
Test Configuration — Fixtures for an embedded test database, the broadcast
channel, a test client and seeded entities.

Each test gets its own SQLite file under tmp_path, opened through the same
init_storage path the application uses at startup.
"""

import asyncio
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from api.main import create_app
from core.config import Settings, resolve_storage_config
from db.storage import init_storage
from monitoring.broadcast import BroadcastChannel
from monitoring.registry import SessionRegistry
from monitoring.service import MonitoringService


class FakeTransport:
    """In-memory stand-in for a WebSocket connection."""

    def __init__(self, fail: bool = False, hang: bool = False):
        self.fail = fail
        self.hang = hang
        self.accepted = False
        self.sent: list[dict] = []
        self.closed_with: int | None = None

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data) -> None:
        if self.fail:
            raise RuntimeError("connection reset by peer")
        if self.hang:
            await asyncio.sleep(3600)
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        database_url="",
        use_embedded_db=True,
        database_path=str(tmp_path / "data" / "pos-system.db"),
        ws_send_timeout_seconds=0.2,
        device_simulation_enabled=False,
    )


@pytest.fixture
def storage_config(test_settings):
    return resolve_storage_config(test_settings)


@pytest.fixture
async def storage(storage_config):
    """Initialized embedded storage; disposed after the test."""
    handle = await init_storage(storage_config)
    yield handle
    await handle.dispose()


@pytest.fixture
def channel():
    return BroadcastChannel(SessionRegistry(), send_timeout=0.2)


@pytest.fixture
def monitoring(storage, channel):
    return MonitoringService(storage, channel)


@pytest.fixture
async def client(test_settings, storage_config, storage, channel, monitoring):
    """Async test client wired to the per-test storage and channel."""
    app = create_app(test_settings)
    app.state.storage_config = storage_config
    app.state.storage = storage
    app.state.broadcast = channel
    app.state.monitoring = monitoring

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def seeded(storage):
    """A branch with one customer and one active terminal."""
    branch = await storage.branches.insert(
        {
            "name": "Tabriz Central",
            "code": "TBR-001",
            "type": "branch",
            "latitude": Decimal("38.08000000"),
            "longitude": Decimal("46.29190000"),
        }
    )
    customer = await storage.customers.insert(
        {
            "shop_name": "Golestan Bakery",
            "owner_name": "Ali Ahmadi",
            "phone": "09141234567",
            "business_type": "Bakery",
            "branch_id": branch.id,
        }
    )
    device = await storage.pos_devices.insert(
        {"customer_id": customer.id, "device_code": "POS-0001", "status": "active"}
    )
    return {"branch": branch, "customer": customer, "device": device}
