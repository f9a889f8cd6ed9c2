"""
AI-generated content toggle on the upload form.
"""

import logging

from .clock import Clock
from .models import AutomationResult, ElementNotFoundError
from .rules import LocatorRule, locate

logger = logging.getLogger(__name__)


AI_CONTAINER_SELECTOR = '[data-e2e="aigc_container"]'
SWITCH_SELECTOR = '.Switch__content, [role="switch"]'

SHOW_MORE_RULES = [
    LocatorRule('[data-e2e="advanced_settings_container"] .more-btn', description="advanced settings"),
    LocatorRule(
        "div, span, button",
        lambda text: text.strip().lower() == "show more",
        description="show more text",
    ),
]

EXPAND_DELAY_S = 1.2


async def _is_hidden(dom, container) -> bool:
    if container is None:
        return True
    return not await dom.is_visible(container) or await dom.in_hidden_subtree(container)


async def toggle_ai_content(dom, clock: Clock) -> AutomationResult:
    """Switch the AI-generated content setting on; a no-op when it is already on."""
    container = await dom.query(AI_CONTAINER_SELECTOR)

    if await _is_hidden(dom, container):
        logger.info("AI content setting is collapsed, clicking 'Show more'")
        show_more = await locate(dom, SHOW_MORE_RULES)
        if show_more is None:
            raise ElementNotFoundError("Could not find 'Show more' button")

        await dom.click(show_more)
        await clock.sleep(EXPAND_DELAY_S)
        container = await dom.query(AI_CONTAINER_SELECTOR)

    if container is None:
        raise ElementNotFoundError("Could not find AI content setting even after expansion")

    switch = await dom.query_within(container, SWITCH_SELECTOR)
    if switch is None:
        raise ElementNotFoundError("Could not find AI content switch")

    checked = (
        await dom.get_attribute(switch, "aria-checked") == "true"
        or await dom.get_attribute(switch, "data-state") == "checked"
    )
    if checked:
        logger.info("AI content is already enabled")
        return AutomationResult.ok("AI content is already enabled", changed=False)

    await dom.focus(switch)
    await dom.click(switch)
    await dom.dispatch(switch, "mousedown", kind="MouseEvent")
    await dom.dispatch(switch, "mouseup", kind="MouseEvent")

    logger.info("AI content enabled")
    return AutomationResult.ok("AI content enabled successfully", changed=True)
