"""
Tests for the HTTP and WebSocket surface.

The browser is never started here; the coordinator is replaced with a mock.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

import main


class TestServer:
    """Tests for the FastAPI app."""

    @pytest.fixture
    def client(self):
        return TestClient(main.app)

    @pytest.fixture
    def coordinator(self, monkeypatch):
        coordinator = MagicMock()
        coordinator.dispatch = AsyncMock(return_value={"success": True, "message": "Coordinator is alive"})
        coordinator.session.agents = {"page": "agent"}
        coordinator.session.aux_window_open = False
        monkeypatch.setattr(main, "coordinator", coordinator)
        return coordinator

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_messages_before_startup(self, client, monkeypatch):
        monkeypatch.setattr(main, "coordinator", None)

        response = client.post("/api/messages", json={"action": "PING"})

        assert response.status_code == 503

    def test_messages(self, client, coordinator):
        response = client.post("/api/messages", json={"action": "PING"})

        assert response.json()["message"] == "Coordinator is alive"
        coordinator.dispatch.assert_awaited_once_with({"action": "PING", "data": None})

    def test_health(self, client, coordinator):
        data = client.get("/health").json()

        assert data["attached_pages"] == 1
        assert data["aux_window_open"] is False

    def test_upload_page_before_startup(self, client, monkeypatch):
        monkeypatch.setattr(main, "panel", None)

        assert client.get("/api/upload-page").status_code == 503

    def test_metrics(self, client):
        assert "commands" in client.get("/api/metrics").json()


class TestWebSocket:
    """Tests for the /ws protocol."""

    @pytest.fixture
    def client(self):
        return TestClient(main.app)

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            assert websocket.receive_json() == {"type": "error", "message": "Invalid JSON"}

    def test_missing_action(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text('{"data": {}}')
            assert websocket.receive_json() == {"type": "error", "message": "Missing action"}

    def test_browser_not_started(self, client, monkeypatch):
        monkeypatch.setattr(main, "coordinator", None)

        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"action": "PING"})
            assert websocket.receive_json() == {"type": "error", "message": "Browser not started"}

    def test_response(self, client, monkeypatch):
        coordinator = MagicMock()
        coordinator.dispatch = AsyncMock(return_value={"success": True})
        monkeypatch.setattr(main, "coordinator", coordinator)

        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"action": "GET_PAGE_INFO", "data": {}})
            assert websocket.receive_json() == {
                "type": "response",
                "action": "GET_PAGE_INFO",
                "result": {"success": True},
            }
