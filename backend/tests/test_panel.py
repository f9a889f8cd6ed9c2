"""
Tests for ControllerPanel.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agent.models import Task
from coordinator.panel import ControllerPanel


class TestControllerPanel:
    """The panel only ever sends messages through the coordinator."""

    @pytest.fixture
    def coordinator(self):
        coordinator = MagicMock()
        coordinator.dispatch = AsyncMock(return_value={"success": True})
        return coordinator

    @pytest.fixture
    def panel(self, coordinator):
        return ControllerPanel(coordinator)

    async def test_upload_sends_task_payload(self, panel, coordinator):
        task = Task(id="42", video_url="https://cdn.example.com/42.mp4", caption="Nice", product_id="1729")

        await panel.upload(task)

        coordinator.dispatch.assert_awaited_once_with({
            "action": "UPLOAD_VIDEO",
            "data": {
                "taskId": "42",
                "videoUrl": "https://cdn.example.com/42.mp4",
                "caption": "Nice",
                "productId": "1729",
            },
        })

    @pytest.mark.parametrize("method, args, expected", [
        ("fill_caption", ("Hello",), {"action": "SET_CAPTION", "data": {"caption": "Hello"}}),
        ("add_product", ("1729",), {"action": "ADD_PRODUCT", "data": {"productId": "1729"}}),
        ("toggle_ai_content", (), {"action": "TOGGLE_AI_CONTENT", "data": {}}),
        ("post", (), {"action": "CLICK_POST", "data": {}}),
    ])
    async def test_commands(self, panel, coordinator, method, args, expected):
        await getattr(panel, method)(*args)

        coordinator.dispatch.assert_awaited_once_with(expected)

    async def test_get_user_id(self, panel, coordinator):
        coordinator.dispatch.return_value = {"success": True, "userId": 7, "email": "a@b.c"}

        assert await panel.get_user_id() == "7"

    async def test_get_user_id_signed_out(self, panel, coordinator):
        coordinator.dispatch.return_value = {"success": False, "error": "Not signed in"}

        assert await panel.get_user_id() is None

    async def test_fetch(self, panel, coordinator):
        coordinator.dispatch.return_value = {"ok": True, "status": 200, "data": []}

        response = await panel.fetch("https://api.example.com/videos")

        assert response["ok"] is True
        coordinator.dispatch.assert_awaited_once_with({
            "action": "FETCH_API",
            "data": {"url": "https://api.example.com/videos", "options": {}},
        })

    def test_upload_page_status(self, panel, coordinator):
        page = MagicMock()
        page.url = "https://www.tiktok.com/upload"
        coordinator.find_upload_page.return_value = page

        status = panel.upload_page_status()

        assert status["present"] is True
        assert status["url"] == "https://www.tiktok.com/upload"

    def test_no_upload_page(self, panel, coordinator):
        coordinator.find_upload_page.return_value = None

        assert panel.upload_page_status()["present"] is False


class TestTask:
    """Tests for building tasks from upstream records."""

    def test_from_upstream(self):
        task = Task.from_upstream({
            "id": 42,
            "complete_video": "https://cdn.example.com/42.mp4",
            "tone": "Best blender ever",
            "product_id": 1729,
        })

        assert task.id == "42"
        assert task.caption == "Best blender ever"
        assert task.product_id == "1729"

    def test_caption_falls_back_to_title_and_price(self):
        task = Task.from_upstream({"id": "7", "video_url": "v.mp4", "title": "Blender", "price": "$19"})

        assert task.caption == "Blender - $19"
        assert "productId" not in task.to_payload()
