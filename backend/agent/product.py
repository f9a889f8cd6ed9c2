"""
Product Wizard - attach a showcase product to the post.

The "Add link" flow is a chain of modals. Each step finds its control with
an ordered list of locator rules and acts on it; a missing control stops
the wizard with ElementNotFound naming the step. Nothing is retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .clock import Clock
from .models import AutomationResult, ErrorKind
from .rules import LocatorRule, locate, text_contains, text_equals

logger = logging.getLogger(__name__)


SEARCH_INPUT_SELECTOR = ".TUXTextInputCore-input"
SEARCH_INPUT_FALLBACK_SELECTOR = 'input[placeholder*="Search"], input[placeholder*="product"]'
TRAILING_ICON_SELECTOR = ".TUXTextInputCore-trailingIconWrapper"
PRODUCT_ROW_SELECTOR = "tr.product-tb-row"
RADIO_SELECTOR = '.TUXRadioStandalone-input, input[type="radio"]'
RADIO_CONTAINER_SELECTOR = ".TUXRadioStandalone"
FOOTER_BUTTON_SELECTOR = '.common-modal-footer button, [class*="common-modal-footer"] button'
FOOTER_PRIMARY_SELECTOR = ".common-modal-footer .TUXButton--primary"

CATALOG_TAB_LABEL = "Showcase products"


StepAction = Callable[[Optional[Any]], Awaitable[None]]


@dataclass
class WizardStep:
    """
    One wizard step.

    A step without rules has nothing to locate; its action runs with None.
    """
    name: str
    rules: List[LocatorRule]
    action: StepAction
    missing_message: str = ""
    settle_s: float = 0.0


class ProductWizard:
    """Runs the add-product steps for one product id."""

    def __init__(self, dom, product_id: str, clock: Clock, tracer=None):
        self.dom = dom
        self.product_id = product_id
        self.clock = clock
        self.tracer = tracer

        self.located: Dict[str, Any] = {}
        self.completed: List[str] = []
        self.steps = self.build_steps()

    def build_steps(self) -> List[WizardStep]:
        product_id = self.product_id
        return [
            WizardStep(
                name="open_add_link",
                rules=[LocatorRule('button, [role="button"]', text_equals("Add", "+ Add"))],
                action=self._click,
                missing_message="Could not find '+ Add' link button",
                settle_s=1.0,
            ),
            WizardStep(
                name="confirm_link_type",
                rules=[LocatorRule("button", text_equals("Next"))],
                action=self._click,
                missing_message="Could not find 'Next' button on Link type modal",
                settle_s=1.5,
            ),
            WizardStep(
                name="select_catalog_tab",
                rules=[
                    LocatorRule("button", text_contains(CATALOG_TAB_LABEL), description="tab button"),
                    LocatorRule("div, span, p, li", text_equals(CATALOG_TAB_LABEL), description="tab label"),
                ],
                action=self._select_tab,
                missing_message=f"Could not find '{CATALOG_TAB_LABEL}' tab",
                settle_s=1.0,
            ),
            WizardStep(
                name="enter_product_id",
                rules=[
                    LocatorRule(SEARCH_INPUT_SELECTOR),
                    LocatorRule(SEARCH_INPUT_FALLBACK_SELECTOR),
                ],
                action=self._enter_product_id,
                missing_message="Could not find product search input",
                settle_s=0.8,
            ),
            WizardStep(
                name="trigger_search",
                rules=[],
                action=self._trigger_search,
                settle_s=2.5,
            ),
            WizardStep(
                name="select_product_row",
                rules=[LocatorRule(PRODUCT_ROW_SELECTOR, text_contains(product_id))],
                action=self._select_row,
                missing_message=f"Product {product_id} not found in results table",
                settle_s=1.0,
            ),
            WizardStep(
                name="confirm_selection",
                rules=[
                    LocatorRule(FOOTER_BUTTON_SELECTOR, text_equals("Next")),
                    LocatorRule(FOOTER_PRIMARY_SELECTOR),
                ],
                action=self._focus_and_click,
                missing_message="Could not find 'Next' button. DOM might have changed.",
                settle_s=3.0,
            ),
            WizardStep(
                name="confirm_add",
                rules=[
                    LocatorRule(".common-modal-footer button", text_equals("Add"), visible_only=True),
                    LocatorRule(FOOTER_PRIMARY_SELECTOR, text_contains("Add")),
                ],
                action=self._press,
                missing_message="Could not find 'Add' button on final confirmation screen",
            ),
        ]

    async def run(self) -> AutomationResult:
        if not self.product_id.strip():
            # An empty search term matches every row
            logger.error("Product wizard needs a product id")
            return AutomationResult.fail(ErrorKind.INVALID_REQUEST, "Missing productId")

        logger.info(f"Adding product step-by-step: {self.product_id}")

        for step in self.steps:
            element = None
            if step.rules:
                element = await locate(self.dom, step.rules)
                if element is None:
                    logger.error(f"Product wizard stopped at {step.name}: {step.missing_message}")
                    return AutomationResult.fail(
                        ErrorKind.ELEMENT_NOT_FOUND,
                        step.missing_message,
                        step=step.name,
                        completedSteps=list(self.completed),
                    )
                self.located[step.name] = element

            logger.info(f"Product wizard step: {step.name}")
            if self.tracer is not None:
                with self.tracer.span(f"product_{step.name}"):
                    await step.action(element)
            else:
                await step.action(element)

            self.completed.append(step.name)
            if step.settle_s:
                await self.clock.sleep(step.settle_s)

        logger.info("Final Add button clicked successfully!")
        return AutomationResult.ok("Product added successfully", completedSteps=list(self.completed))

    # --- step actions ---

    async def _click(self, element: Any) -> None:
        await self.dom.click(element)

    async def _focus_and_click(self, element: Any) -> None:
        await self.dom.focus(element)
        await self.dom.click(element)

    async def _select_tab(self, element: Any) -> None:
        await self.dom.click(element)
        # The label may sit inside the tab button
        button = await self.dom.closest(element, "button")
        if button is not None:
            await self.dom.click(button)

    async def _enter_product_id(self, element: Any) -> None:
        await self.dom.focus(element)
        await self.dom.exec_command("selectAll")
        await self.dom.exec_command("insertText", self.product_id)

        if await self.dom.get_value(element) != self.product_id:
            await self.dom.set_value(element, self.product_id)

        await self.dom.dispatch(element, "input")
        await self.dom.dispatch(element, "change")

    async def _trigger_search(self, element: Any) -> None:
        search_input = self.located["enter_product_id"]

        icon = None
        container = await self.dom.parent(search_input)
        if container is not None:
            icon = await self.dom.query_within(container, "svg")

        if icon is None:
            logger.debug("No search icon next to the input, pressing Enter")
            await self.dom.dispatch(
                search_input, "keydown", kind="KeyboardEvent", init={"key": "Enter"}
            )
            return

        icon_parent = await self.dom.parent(icon)
        if icon_parent is not None:
            await self.dom.click(icon_parent)
        wrapper = await self.dom.closest(icon, TRAILING_ICON_SELECTOR)
        if wrapper is not None:
            await self.dom.click(wrapper)

    async def _select_row(self, row: Any) -> None:
        radio = await self.dom.query_within(row, RADIO_SELECTOR)
        if radio is None:
            await self.dom.click(row)
            return

        await self.dom.click(radio)

        # The drawn circles are the real click targets of the TUX radio
        for circle in await self.dom.query_all_within(row, "svg circle"):
            circle_parent = await self.dom.parent(circle)
            if circle_parent is not None:
                await self.dom.click(circle_parent)

        container = await self.dom.closest(radio, RADIO_CONTAINER_SELECTOR)
        if container is not None:
            await self.dom.click(container)

    async def _press(self, element: Any) -> None:
        await self.dom.focus(element)
        for event_type in ("mousedown", "mouseup", "click"):
            await self.dom.dispatch(element, event_type, kind="MouseEvent")


async def add_product(dom, product_id: str, clock: Clock, tracer=None) -> AutomationResult:
    return await ProductWizard(dom, product_id, clock, tracer=tracer).run()
