"""
End-to-end tests for /ws/monitoring through the full application lifespan.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from core.config import Settings
from core.errors import ConfigurationError


@pytest.fixture
def app_client(test_settings):
    with TestClient(create_app(test_settings)) as client:
        yield client


def _seed_device(client: TestClient) -> dict:
    branch = client.post("/api/v1/branches/", json={"name": "Central", "code": "TBR-001", "type": "branch"}).json()
    customer = client.post(
        "/api/v1/customers/",
        json={
            "shop_name": "Golestan Bakery",
            "owner_name": "Ali Ahmadi",
            "phone": "09141234567",
            "business_type": "Bakery",
            "branch_id": branch["id"],
        },
    ).json()
    device = client.post("/api/v1/pos-devices/", json={"customer_id": customer["id"], "device_code": "POS-0001"})
    assert device.status_code == 201
    return device.json()


class TestMonitoringSocket:
    def test_first_message_is_initial_status(self, app_client):
        with app_client.websocket_connect("/ws/monitoring") as ws:
            message = ws.receive_json()
        assert message["type"] == "initial_status"
        assert message["message"] == "Connected to POS monitoring system"
        assert "timestamp" in message

    def test_status_change_reaches_every_dashboard(self, app_client):
        device = _seed_device(app_client)

        with app_client.websocket_connect("/ws/monitoring") as first, app_client.websocket_connect(
            "/ws/monitoring"
        ) as second:
            assert first.receive_json()["type"] == "initial_status"
            assert second.receive_json()["type"] == "initial_status"

            resp = app_client.patch(f"/api/v1/pos-devices/{device['id']}", json={"status": "offline"})
            assert resp.status_code == 200

            for ws in (first, second):
                message = ws.receive_json()
                assert message["type"] == "device_status_change"
                assert message["deviceId"] == device["id"]
                assert message["oldStatus"] == "active"
                assert message["newStatus"] == "offline"

    def test_reconnected_dashboard_refetches_missed_alert(self, app_client):
        with app_client.websocket_connect("/ws/monitoring") as ws:
            assert ws.receive_json()["type"] == "initial_status"

        # Created while no dashboard is connected; nothing is replayed later
        created = app_client.post(
            "/api/v1/alerts/", json={"title": "Offline", "message": "Terminal down", "type": "error", "priority": "high"}
        )
        assert created.status_code == 201

        with app_client.websocket_connect("/ws/monitoring") as ws:
            assert ws.receive_json()["type"] == "initial_status"
            alerts = app_client.get("/api/v1/alerts/").json()
            assert [a["id"] for a in alerts] == [created.json()["id"]]

            second = app_client.post("/api/v1/alerts/", json={"title": "Low paper", "message": "m", "type": "warning"})
            message = ws.receive_json()
            assert message["type"] == "new_alert"
            assert message["alert"]["id"] == second.json()["id"]

    def test_health_reports_embedded_backend(self, app_client):
        body = app_client.get("/health").json()
        assert body["backend"] == "embedded"


class TestStartup:
    def test_unusable_database_location_aborts_startup(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        settings = Settings(database_url="", database_path=str(blocker / "pos-system.db"))
        with pytest.raises(ConfigurationError):
            with TestClient(create_app(settings)):
                pass

    def test_malformed_remote_url_aborts_startup(self):
        settings = Settings(database_url="mysql://u:p@localhost/pos", use_embedded_db=False, database_path="")
        with pytest.raises(ConfigurationError):
            with TestClient(create_app(settings)):
                pass
