"""
Submission - press Post, confirm the follow-up dialog, and watch for success.
"""

import asyncio
import logging
from typing import Any, Optional

from targets.base import TargetConfig
from .clock import Clock
from .models import AutomationResult, ElementNotFoundError, ErrorKind
from .rules import LocatorRule, locate, text_contains
from .webhook import SuccessNotifier

logger = logging.getLogger(__name__)


POST_BUTTON_SELECTOR = '[data-e2e="post_video_button"]'
POST_BUTTON_CONTENT_SELECTOR = ".Button__content"
CONFIRM_MODAL_SELECTOR = ".common-modal-confirm-modal"
SUCCESS_MODAL_SELECTOR = '.common-modal-confirm-modal, [class*="success"]'

CONFIRM_PROMPT = "Continue to post?"
CONFIRM_BUTTON_LABEL = "Post now"

POST_BUTTON_RULES = [LocatorRule(POST_BUTTON_SELECTOR, visible_only=True)]


async def is_locked(dom, button: Any) -> bool:
    """The post button stays disabled until the page's own checks (copyright etc.) finish."""
    if await dom.is_disabled(button):
        return True
    if await dom.get_attribute(button, "aria-disabled") == "true":
        return True
    if await dom.get_attribute(button, "data-disabled") == "true":
        return True
    class_name = await dom.get_attribute(button, "class") or ""
    return "Button--disabled" in class_name.split()


async def confirm_post_dialog(dom) -> bool:
    """Click "Post now" in the "Continue to post?" dialog. Returns True if it was clicked."""
    modal = await dom.query(CONFIRM_MODAL_SELECTOR)
    if modal is None or CONFIRM_PROMPT not in await dom.text_content(modal):
        return False

    logger.info(f"Found '{CONFIRM_PROMPT}' dialog, clicking '{CONFIRM_BUTTON_LABEL}'...")
    button = await LocatorRule("button", text_contains(CONFIRM_BUTTON_LABEL)).find(dom, within=modal)
    if button is None:
        logger.warning(f"'{CONFIRM_PROMPT}' dialog has no '{CONFIRM_BUTTON_LABEL}' button")
        return False

    await dom.click(button)
    return True


async def click_post(dom, clock: Clock) -> AutomationResult:
    """
    Press the post button the way a user would.

    Fails with StillLocked, without dispatching anything, while the button is disabled.
    """
    button = await locate(dom, POST_BUTTON_RULES)
    if button is None:
        raise ElementNotFoundError("Post button not found (has the video finished loading?)")

    if await is_locked(dom, button):
        logger.warning("Post button is still disabled")
        return AutomationResult.fail(
            ErrorKind.STILL_LOCKED,
            "Post button is still disabled; wait for the page's copyright check to finish",
        )

    await dom.scroll_into_view(button)
    await clock.sleep(0.4)

    await dom.focus(button)
    await dom.dispatch(button, "mousedown", kind="MouseEvent")
    await dom.dispatch(button, "mouseup", kind="MouseEvent")
    await dom.click(button)

    inner = await dom.query_within(button, POST_BUTTON_CONTENT_SELECTOR)
    if inner is not None:
        await dom.click(inner)

    # The confirmation dialog, when shown, needs a moment to appear
    await clock.sleep(2.0)
    confirmed = await confirm_post_dialog(dom)

    message = "Post button clicked and confirmed in dialog" if confirmed else "Post button clicked"
    return AutomationResult.ok(message, confirmedDialog=confirmed)


class SuccessWatcher:
    """
    Polls the page after a post until it shows success or the timeout passes.

    Signals in priority order: the success location in the URL (``redirect``),
    a success dialog (``modal``), success text anywhere on the page (``text``).
    On the first positive poll the webhook is fired through the notifier.
    On timeout nothing is sent and the marker is left in place.
    """

    def __init__(
        self,
        dom,
        config: TargetConfig,
        notifier: SuccessNotifier,
        clock: Clock,
        interval_s: float = 2.0,
        timeout_s: float = 60.0,
    ):
        self.dom = dom
        self.config = config
        self.notifier = notifier
        self.clock = clock
        self.interval_s = interval_s
        self.timeout_s = timeout_s

        self.detection_method: Optional[str] = None
        self.polls = 0

    async def _modal_success(self) -> bool:
        modal = await self.dom.query(SUCCESS_MODAL_SELECTOR)
        if modal is None:
            return False
        text = await self.dom.text_content(modal)
        return any(word in text for word in self.config.success_modal_words)

    async def _text_success(self) -> bool:
        page_text = await self.dom.body_text()
        return any(phrase in page_text for phrase in self.config.success_phrases)

    async def detect(self) -> Optional[str]:
        """One poll: the detection method if the page shows success, else None."""
        if self.config.success_location in await self.dom.url():
            return "redirect"
        if await self._modal_success():
            return "modal"
        if await self._text_success():
            return "text"
        return None

    async def run(self) -> Optional[str]:
        logger.info("Checking for post success...")
        started = self.clock.now()

        while True:
            await self.clock.sleep(self.interval_s)
            self.polls += 1

            try:
                method = await self.detect()
            except Exception as e:
                # Navigation after Post can destroy the page context mid-poll
                logger.warning(f"Success check failed, retrying: {e}")
                method = None

            if method is not None:
                logger.info(f"Post success detected via {method}, sending webhook...")
                self.detection_method = method
                await self.notifier.notify(method)
                return method

            if self.clock.now() - started > self.timeout_s:
                logger.info("Post success check timed out")
                return None

    def start(self) -> 'asyncio.Task':
        """Run the watcher as an independent task; it is not cancelled with the command."""
        return asyncio.get_running_loop().create_task(self.run())
