"""
Identity Bridge - who is signed in to the companion web app.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

from agent.router import CommandRouter

logger = logging.getLogger(__name__)


USER_STORAGE_KEY = "user"
AUTH_HELPER_PATH = "__TIKTOK_AUTOMATOR_AUTH__.getCurrentUser"
USER_GLOBAL_PATH = "tiktokAutomatorUser"

NOT_SIGNED_IN_ERROR = "User not logged in or user data not accessible"

# Installed as an init script, so it exists before the app's own code runs
AUTH_HELPER_JS = """
(() => {
    function getUserFromLocalStorage() {
        try {
            const userData = localStorage.getItem('user');
            return userData ? JSON.parse(userData) : null;
        } catch (e) {
            return null;
        }
    }

    window.__TIKTOK_AUTOMATOR_AUTH__ = {
        getCurrentUser: function() {
            return getUserFromLocalStorage();
        }
    };
})();
"""


def _identity_response(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": True,
        "userId": user.get("id"),
        "email": user.get("email"),
        "name": user.get("name"),
    }


class IdentityBridge:
    """Answers GET_USER_ID and PING for one companion web-app page."""

    def __init__(self, dom, tracer=None):
        self.dom = dom
        self.router = CommandRouter(name="identity-bridge", tracer=tracer)
        self.router.register_handler("GET_USER_ID", self._handle_get_user_id)
        self.router.register_handler("PING", self._handle_ping)

    @staticmethod
    async def install(page) -> None:
        """Expose the auth helper on every document the page loads."""
        await page.add_init_script(AUTH_HELPER_JS)

    async def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return await self.router.execute(message.get("action"), message.get("data"))

    async def _user_from_storage(self) -> Optional[Dict[str, Any]]:
        raw = await self.dom.local_storage_get(USER_STORAGE_KEY)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing stored user data: {e}")
            return None
        return user if isinstance(user, dict) else None

    async def get_user_id(self) -> Dict[str, Any]:
        """Lookup order: stored user record, auth helper, app-provided global."""
        user = await self._user_from_storage()
        if user:
            logger.info("Found user in localStorage")
            return _identity_response(user)

        user = await self.dom.window_value(AUTH_HELPER_PATH, call=True)
        if user:
            logger.info("Found user through auth helper")
            return _identity_response(user)

        user = await self.dom.window_value(USER_GLOBAL_PATH)
        if user:
            logger.info("Found user in window object")
            return _identity_response(user)

        logger.info("No signed-in user on the web app page")
        return {"success": False, "error": NOT_SIGNED_IN_ERROR}

    async def _handle_get_user_id(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.get_user_id()

    async def _handle_ping(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "success": True,
            "message": "Web app bridge is alive",
            "timestamp": int(time.time() * 1000),
        }
