"""
Controller Panel - the high-level commands a human operator issues.

The panel never touches a page itself; every command goes through the
coordinator.
"""

import logging
import time
from typing import Any, Dict, Optional

from agent.models import Task

logger = logging.getLogger(__name__)


class ControllerPanel:
    """Task-level commands on top of the coordinator's message protocol."""

    def __init__(self, coordinator):
        self.coordinator = coordinator

    def upload_page_status(self) -> Dict[str, Any]:
        """Presence poll: is an upload page open right now?"""
        page = self.coordinator.find_upload_page()
        return {
            "present": page is not None,
            "url": page.url if page is not None else None,
            "timestamp": int(time.time() * 1000),
        }

    async def send(self, action: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self.coordinator.dispatch({"action": action, "data": data or {}})
        if not response.get("success", response.get("ok", False)):
            logger.error(f"{action} failed: {response.get('message') or response.get('error')}")
        return response

    async def upload(self, task: Task) -> Dict[str, Any]:
        logger.info(f"Uploading task {task.id}")
        return await self.send("UPLOAD_VIDEO", task.to_payload())

    async def fill_caption(self, caption: str) -> Dict[str, Any]:
        return await self.send("SET_CAPTION", {"caption": caption})

    async def add_product(self, product_id: str) -> Dict[str, Any]:
        return await self.send("ADD_PRODUCT", {"productId": product_id})

    async def toggle_ai_content(self) -> Dict[str, Any]:
        return await self.send("TOGGLE_AI_CONTENT")

    async def post(self) -> Dict[str, Any]:
        return await self.send("CLICK_POST")

    async def get_user_id(self) -> Optional[str]:
        """The signed-in web-app user's id, or None."""
        response = await self.send("GET_USER_ID")
        if response.get("success") and response.get("userId"):
            return str(response["userId"])
        return None

    async def fetch(self, url: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.send("FETCH_API", {"url": url, "options": options or {}})
