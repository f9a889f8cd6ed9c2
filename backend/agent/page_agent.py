"""
Page Agent - everything the automator does inside one upload page.

The agent owns the page's DOM interactions. It never talks to the network
itself: the video download and the success webhook go through callables
supplied by the coordinator.
"""

import asyncio
import logging
import random
from typing import Any, Dict, Optional

from targets.base import TargetConfig
from targets.tiktok import TIKTOK_CONFIG
from .caption import set_caption
from .classifier import PageClassifier
from .clock import Clock, SystemClock
from .models import AutomationResult, ErrorKind, LoginState
from .product import add_product
from .router import CommandRouter
from .submission import SuccessWatcher, click_post
from .toggle import toggle_ai_content
from .upload import Downloader, upload_video
from .webhook import FetchTransport, LastTaskMarker, RunContext, SuccessNotifier

logger = logging.getLogger(__name__)


WRONG_PAGE_MESSAGE = (
    "Not on TikTok upload page. Please navigate to:\n"
    "1. https://www.tiktok.com/upload (regular upload)\n"
    "2. https://www.tiktok.com/tiktokstudio/upload (studio upload)\n\n"
    "URLs with query parameters like ?from=creator_center are also supported."
)
NOT_LOGGED_IN_MESSAGE = "Not logged into TikTok. Please log in first."

AGENT_ACTIONS = (
    "UPLOAD_VIDEO",
    "SET_CAPTION",
    "ADD_PRODUCT",
    "CLICK_POST",
    "CLICK_POST_BUTTON",
    "TOGGLE_AI_CONTENT",
    "CHECK_LOGIN_STATUS",
    "GET_PAGE_INFO",
)

# Safe to answer from any page, upload page or not
READ_ONLY_ACTIONS = ("CHECK_LOGIN_STATUS", "GET_PAGE_INFO")


class PageAgent:
    """
    Command handler bound to one target page.

    Mutating commands (upload, caption, product, post, toggle) first resolve
    the page context and refuse to touch the DOM on the wrong page or
    without a logged-in session.
    """

    def __init__(
        self,
        dom,
        transport: FetchTransport,
        download: Downloader,
        webhook_url: str,
        config: TargetConfig = TIKTOK_CONFIG,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        tracer=None,
        element_timeout_s: float = 10.0,
        success_poll_interval_s: float = 2.0,
        success_timeout_s: float = 60.0,
    ):
        self.dom = dom
        self.download = download
        self.config = config
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.tracer = tracer
        self.element_timeout_s = element_timeout_s
        self.success_poll_interval_s = success_poll_interval_s
        self.success_timeout_s = success_timeout_s

        self.run = RunContext()
        self.marker = LastTaskMarker(dom, config.marker_key)
        self.classifier = PageClassifier(dom, config)
        self.notifier = SuccessNotifier(dom, self.marker, self.run, transport, webhook_url)
        self.watcher: Optional[SuccessWatcher] = None
        self.watcher_task: Optional[asyncio.Task] = None

        self.router = CommandRouter(name="page-agent", tracer=tracer)
        self.router.register_handler("UPLOAD_VIDEO", self._handle_upload)
        self.router.register_handler("SET_CAPTION", self._handle_caption)
        self.router.register_handler("ADD_PRODUCT", self._handle_product)
        self.router.register_handler("CLICK_POST", self._handle_post, aliases=("CLICK_POST_BUTTON",))
        self.router.register_handler("TOGGLE_AI_CONTENT", self._handle_toggle)
        self.router.register_handler("CHECK_LOGIN_STATUS", self._handle_login_status)
        self.router.register_handler("GET_PAGE_INFO", self._handle_page_info)

    @classmethod
    def from_settings(cls, dom, settings, transport: FetchTransport, download: Downloader, **kwargs) -> 'PageAgent':
        return cls(
            dom,
            transport=transport,
            download=download,
            webhook_url=settings.webhook_url,
            element_timeout_s=settings.element_timeout_s,
            success_poll_interval_s=settings.success_poll_interval_s,
            success_timeout_s=settings.success_timeout_s,
            **kwargs,
        )

    async def handle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Entry point for relayed messages of the form {action, data}."""
        return await self.router.execute(message.get("action"), message.get("data"))

    async def on_load(self) -> bool:
        """
        Called after every navigation.

        A successful post redirects to the content page; if a task was in
        flight the webhook is sent from here.
        """
        url = await self.dom.url()
        if self.config.success_location not in url:
            return False

        task_id = await self.marker.get()
        if not task_id:
            return False

        logger.info(f"Detected redirect to content page for task: {task_id}")
        return await self.notifier.notify("redirect_on_load", task_id=task_id)

    async def _guard(self) -> Optional[AutomationResult]:
        """Failure result when mutating the page is not allowed, else None."""
        context = await self.classifier.resolve()
        if not context.is_upload_page:
            return AutomationResult.fail(ErrorKind.WRONG_PAGE, WRONG_PAGE_MESSAGE, url=context.url)
        if context.login_state != LoginState.LOGGED_IN:
            return AutomationResult.fail(
                ErrorKind.NOT_LOGGED_IN,
                NOT_LOGGED_IN_MESSAGE,
                loginState=context.login_state.value,
            )
        return None

    # --- commands ---

    async def upload_video(self, video_url: str, task_id: Optional[str] = None) -> AutomationResult:
        refusal = await self._guard()
        if refusal is not None:
            return refusal

        if task_id:
            self.run.current_task_id = task_id
            await self.marker.set(task_id)
            logger.info(f"Recorded task id: {task_id}")

        await self.dom.wait_for_load()

        result = await upload_video(
            self.dom,
            video_url,
            self.download,
            self.clock,
            self.config,
            element_timeout_s=self.element_timeout_s,
        )

        # Give the form time to render the caption editor
        await self.clock.sleep(3.0)

        return AutomationResult.ok(
            "Video uploaded! The caption can be filled now.",
            steps={"upload": result.to_dict()},
        )

    async def set_caption(self, caption: str) -> AutomationResult:
        refusal = await self._guard()
        if refusal is not None:
            return refusal
        return await set_caption(self.dom, caption, self.clock, rng=self.rng, tracer=self.tracer)

    async def add_product(self, product_id: str) -> AutomationResult:
        refusal = await self._guard()
        if refusal is not None:
            return refusal
        return await add_product(self.dom, product_id, self.clock, tracer=self.tracer)

    async def click_post(self) -> AutomationResult:
        refusal = await self._guard()
        if refusal is not None:
            return refusal

        result = await click_post(self.dom, self.clock)
        if result.success:
            self.watcher = SuccessWatcher(
                self.dom,
                self.config,
                self.notifier,
                self.clock,
                interval_s=self.success_poll_interval_s,
                timeout_s=self.success_timeout_s,
            )
            self.watcher_task = self.watcher.start()
        return result

    async def toggle_setting(self) -> AutomationResult:
        refusal = await self._guard()
        if refusal is not None:
            return refusal
        return await toggle_ai_content(self.dom, self.clock)

    async def check_login_status(self) -> Dict[str, Any]:
        status = await self.classifier.check_login_status()
        return {"success": True, **status.to_dict()}

    async def get_page_info(self) -> Dict[str, Any]:
        info = await self.classifier.get_page_info()
        return {"success": True, **info}

    # --- router handlers ---

    async def _handle_upload(self, data: Dict[str, Any]) -> AutomationResult:
        return await self.upload_video(data.get("videoUrl", ""), task_id=data.get("taskId"))

    async def _handle_caption(self, data: Dict[str, Any]) -> AutomationResult:
        return await self.set_caption(data.get("caption") or "")

    async def _handle_product(self, data: Dict[str, Any]) -> AutomationResult:
        return await self.add_product(str(data.get("productId") or ""))

    async def _handle_post(self, data: Dict[str, Any]) -> AutomationResult:
        return await self.click_post()

    async def _handle_toggle(self, data: Dict[str, Any]) -> AutomationResult:
        return await self.toggle_setting()

    async def _handle_login_status(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.check_login_status()

    async def _handle_page_info(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.get_page_info()
