"""
Coordinator - process-wide message router and network/cookie broker.

The coordinator has no DOM access of its own. It relays commands to the
page agent of an upload page or to the identity bridge of the web-app
page, performs outbound HTTP for both, injects cookies into the browser
context, and keeps the single auxiliary window.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from playwright.async_api import Page

from agent.classifier import classify_url
from agent.clock import Clock, SystemClock
from agent.models import AutomationResult, ErrorKind, PageType
from agent.page_agent import AGENT_ACTIONS, READ_ONLY_ACTIONS, PageAgent
from agent.router import CommandRouter
from bridge.identity import IdentityBridge
from browser.controller import BrowserController
from browser.dom import PageDom
from targets.base import TargetConfig
from targets.tiktok import TIKTOK_CONFIG
from utils.settings import AutomatorSettings
from .fetch import FetchRelay

logger = logging.getLogger(__name__)


BRIDGE_ACTIONS = ("GET_USER_ID",)

NO_UPLOAD_PAGE_MESSAGE = "Please open TikTok upload page first"
APP_PAGE_LOAD_WAIT_S = 2.0

# Chrome cookie API spellings -> Playwright
SAME_SITE_VALUES = {
    "lax": "Lax",
    "strict": "Strict",
    "none": "None",
    "no_restriction": "None",
    "unspecified": "Lax",
}


def to_browser_cookie(cookie: Dict[str, Any], config: TargetConfig) -> Dict[str, Any]:
    """Apply the cookie defaults: target domain, path "/", secure unless false, SameSite Lax."""
    same_site = SAME_SITE_VALUES.get(str(cookie.get("sameSite") or "lax").lower(), "Lax")
    result = {
        "name": cookie.get("name"),
        "value": str(cookie.get("value", "")),
        "domain": cookie.get("domain") or config.cookie_domain,
        "path": cookie.get("path") or "/",
        "secure": cookie.get("secure") is not False,
        "httpOnly": bool(cookie.get("httpOnly", False)),
        "sameSite": same_site,
    }
    expires = cookie.get("expirationDate", cookie.get("expires"))
    if expires is not None:
        result["expires"] = float(expires)
    return result


@dataclass
class CoordinatorSession:
    """Everything the coordinator remembers between messages."""
    aux_window: Optional[Page] = None
    agents: Dict[Page, PageAgent] = field(default_factory=dict)
    bridges: Dict[Page, IdentityBridge] = field(default_factory=dict)

    @property
    def aux_window_open(self) -> bool:
        return self.aux_window is not None and not self.aux_window.is_closed()

    def forget(self, page: Page) -> None:
        self.agents.pop(page, None)
        self.bridges.pop(page, None)
        if self.aux_window is page:
            self.aux_window = None


class Coordinator:
    """
    Routes {action, data} messages.

    Coordinator actions are handled here; page agent actions are relayed to
    the first upload page; GET_USER_ID is relayed to the web-app page.
    """

    def __init__(
        self,
        controller: BrowserController,
        settings: AutomatorSettings,
        config: TargetConfig = TIKTOK_CONFIG,
        relay: Optional[FetchRelay] = None,
        tracer=None,
        clock: Optional[Clock] = None,
    ):
        self.controller = controller
        self.settings = settings
        self.config = config
        self.relay = relay or FetchRelay(timeout_s=settings.fetch_timeout_s)
        self.tracer = tracer
        self.clock = clock or SystemClock()
        self.session = CoordinatorSession()

        self.router = CommandRouter(name="coordinator", tracer=tracer)
        self.router.register_handler("PING", self._handle_ping)
        self.router.register_handler("FETCH_API", self._handle_fetch)
        self.router.register_handler("SET_COOKIES", self._handle_set_cookies, aliases=("SET_TIKTOK_COOKIES",))
        self.router.register_handler("POST_VIDEO", self._handle_post_video)
        self.router.register_handler("OPEN_PERSISTENT_WINDOW", self._handle_open_window)
        self.router.register_handler("CLOSE_PERSISTENT_WINDOW", self._handle_close_window)

    def start(self) -> None:
        """Attach to pages already open and to every page opened later."""
        for page in self.controller.pages:
            self.attach_page(page)
        self.controller.on_page(self.attach_page)

    # --- page bookkeeping ---

    def attach_page(self, page: Page) -> PageAgent:
        """Bind a page agent to page (idempotent)."""
        agent = self.session.agents.get(page)
        if agent is not None:
            return agent

        agent = PageAgent.from_settings(
            PageDom(page),
            self.settings,
            transport=self.relay.fetch,
            download=self.relay.download,
            config=self.config,
            clock=self.clock,
            tracer=self.tracer,
        )
        self.session.agents[page] = agent

        async def on_load(loaded: Page) -> None:
            try:
                await agent.on_load()
            except Exception as e:
                logger.error(f"Load check failed on {loaded.url}: {e}")

        page.on("load", on_load)
        page.on("close", self.session.forget)
        logger.debug(f"Attached page agent to {page.url}")
        return agent

    def is_upload_page(self, url: str) -> bool:
        return classify_url(url, self.config) != PageType.OTHER

    def is_app_page(self, url: str) -> bool:
        return url.startswith(self.settings.app_url)

    def find_upload_page(self) -> Optional[Page]:
        return self.controller.find_page(self.is_upload_page)

    def latest_page(self) -> Optional[Page]:
        """Most recently opened page, not counting the auxiliary window."""
        pages = [page for page in self.controller.pages if page is not self.session.aux_window]
        return pages[-1] if pages else None

    def bridge_for(self, page: Page) -> IdentityBridge:
        bridge = self.session.bridges.get(page)
        if bridge is None:
            bridge = IdentityBridge(PageDom(page), tracer=self.tracer)
            self.session.bridges[page] = bridge
        return bridge

    # --- relaying ---

    async def dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Single entry point used by the panel and the HTTP surface."""
        action = message.get("action")
        if self.router.resolve(action) is not None:
            return await self.router.execute(action, message.get("data"))
        if action in BRIDGE_ACTIONS:
            return await self.relay_to_bridge(message)
        if action in AGENT_ACTIONS:
            return await self.relay_to_agent(message)

        logger.warning(f"Unknown action: {action}")
        return AutomationResult.fail(
            ErrorKind.UNKNOWN_ACTION,
            f"Unknown action: {action}",
            receivedAction=action,
        ).to_dict()

    async def relay_to_agent(self, message: Dict[str, Any]) -> Dict[str, Any]:
        page = self.find_upload_page()
        if page is None and message.get("action") in READ_ONLY_ACTIONS:
            page = self.latest_page()
        if page is None:
            logger.warning(f"No upload page to receive {message.get('action')}")
            return AutomationResult.fail(ErrorKind.TRANSPORT_ERROR, NO_UPLOAD_PAGE_MESSAGE).to_dict()
        return await self.attach_page(page).handle(message)

    async def relay_to_bridge(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Relay to the web-app page, opening its dashboard in the background if none is open."""
        page = self.controller.find_page(self.is_app_page)
        if page is None:
            logger.info("Web app is not open, opening the dashboard")
            page = await self.controller.new_page()
            await IdentityBridge.install(page)
            navigation = await self.controller.goto(page, f"{self.settings.app_url}/dashboard")
            if not navigation["success"]:
                return AutomationResult.fail(
                    ErrorKind.TRANSPORT_ERROR,
                    f"Could not open the web app: {navigation['error']}",
                ).to_dict()
            await self.clock.sleep(APP_PAGE_LOAD_WAIT_S)
        return await self.bridge_for(page).handle(message)

    # --- coordinator actions ---

    async def _handle_ping(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "success": True,
            "message": "Coordinator is alive",
            "timestamp": int(time.time() * 1000),
        }

    async def _handle_fetch(self, data: Dict[str, Any]) -> Dict[str, Any]:
        url = data.get("url")
        if not url:
            return AutomationResult.fail(ErrorKind.INVALID_REQUEST, "Missing url").to_dict()
        return await self.relay.fetch(url, data.get("options") or {})

    async def set_cookies(self, cookies: List[Dict[str, Any]]) -> Dict[str, Any]:
        logger.info(f"Setting {len(cookies)} cookies for {self.config.cookie_domain}")
        browser_cookies = [to_browser_cookie(cookie, self.config) for cookie in cookies]
        results = await self.controller.add_cookies(browser_cookies)

        has_session_cookie = any(
            "session" in str(c.get("name", "")).lower() or "login" in str(c.get("name", "")).lower()
            for c in cookies
        )
        succeeded = sum(1 for r in results if r["success"])

        return {
            "success": all(r["success"] for r in results),
            "results": results,
            "hasSessionCookie": has_session_cookie,
            "message": f"Set {succeeded} of {len(cookies)} cookies",
        }

    async def _handle_set_cookies(self, data: Dict[str, Any]) -> Any:
        cookies = data.get("cookies")
        if not isinstance(cookies, list):
            return AutomationResult.fail(ErrorKind.INVALID_REQUEST, "Invalid cookies data")
        return await self.set_cookies(cookies)

    async def _handle_post_video(self, data: Dict[str, Any]) -> Any:
        """Open a fresh upload page (after optional cookie injection) and start the upload on it."""
        if not data.get("videoUrl") or not data.get("caption"):
            return AutomationResult.fail(ErrorKind.INVALID_REQUEST, "Missing required data: videoUrl or caption")

        cookies = data.get("cookies")
        if cookies:
            cookie_result = await self.set_cookies(cookies)
            if not cookie_result["success"]:
                logger.warning(f"Cookie injection incomplete: {cookie_result['message']}")

        page = await self.controller.new_page()
        agent = self.attach_page(page)
        navigation = await self.controller.goto(page, self.settings.upload_url)
        if not navigation["success"]:
            return AutomationResult.fail(
                ErrorKind.TRANSPORT_ERROR,
                f"Failed to open the upload page: {navigation['error']}",
            )

        upload_data = {key: value for key, value in data.items() if key != "cookies"}
        return await agent.handle({"action": "UPLOAD_VIDEO", "data": upload_data})

    async def open_aux_window(self) -> Dict[str, Any]:
        """Create the auxiliary window, or focus it when it already exists."""
        if self.session.aux_window_open:
            await self.session.aux_window.bring_to_front()
            logger.info("Persistent window already exists, focusing it")
            return {"success": True, "message": "Persistent window focused"}

        page = await self.controller.new_page()
        await page.set_viewport_size({
            "width": self.settings.aux_window_width,
            "height": self.settings.aux_window_height,
        })
        await self.controller.goto(page, self.settings.aux_window_url)
        self.session.aux_window = page
        logger.info("Created persistent window")
        return {"success": True, "message": "Opening persistent window"}

    async def close_aux_window(self) -> Dict[str, Any]:
        if not self.session.aux_window_open:
            self.session.aux_window = None
            return {"success": True, "message": "No persistent window open"}

        await self.session.aux_window.close()
        self.session.aux_window = None
        logger.info("Closed persistent window")
        return {"success": True, "message": "Closing persistent window"}

    async def _handle_open_window(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.open_aux_window()

    async def _handle_close_window(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.close_aux_window()

