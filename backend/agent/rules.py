"""
Locator rules - declarative "find by selector + visible text" lookups.

The target UI does not give most controls a stable attribute, so elements
are found by their text. A step is described by an ordered list of rules;
the first rule that yields a matching element wins.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .clock import Clock
from .models import WaitTimeoutError

logger = logging.getLogger(__name__)


TextPredicate = Callable[[str], bool]


def any_text(text: str) -> bool:
    return True


def text_equals(*options: str) -> TextPredicate:
    """Trimmed text equals one of the options."""
    def predicate(text: str) -> bool:
        return text.strip() in options
    return predicate


def text_contains(needle: str) -> TextPredicate:
    def predicate(text: str) -> bool:
        return needle in text
    return predicate


def text_contains_any(needles: List[str], lowercase: bool = True) -> TextPredicate:
    def predicate(text: str) -> bool:
        haystack = text.lower() if lowercase else text
        return any(needle in haystack for needle in needles)
    return predicate


@dataclass
class LocatorRule:
    """One way of finding an element: a selector, a text test, and a visibility filter."""
    selector: str
    predicate: TextPredicate = any_text
    visible_only: bool = False
    description: str = ""

    async def find(self, dom, within: Any = None) -> Optional[Any]:
        if within is not None:
            elements = await dom.query_all_within(within, self.selector)
        else:
            elements = await dom.query_all(self.selector)

        for element in elements:
            if self.predicate is not any_text:
                text = await dom.text_content(element)
                if not self.predicate(text):
                    continue
            if self.visible_only and not await dom.is_visible(element):
                continue
            return element
        return None


async def locate(dom, rules: List[LocatorRule], within: Any = None) -> Optional[Any]:
    """Return the element matched by the first rule that matches anything."""
    for rule in rules:
        element = await rule.find(dom, within=within)
        if element is not None:
            logger.debug(f"Located element with rule: {rule.description or rule.selector}")
            return element
    return None


async def any_match(dom, rules: List[LocatorRule]) -> bool:
    return await locate(dom, rules) is not None


async def wait_for_element(
    dom,
    selector: str,
    clock: Clock,
    timeout_s: float = 10.0,
    poll_s: float = 0.1,
) -> Any:
    """Poll for selector until it exists; raises WaitTimeoutError after timeout_s."""
    deadline = clock.now() + timeout_s
    while True:
        element = await dom.query(selector)
        if element is not None:
            return element
        if clock.now() >= deadline:
            raise WaitTimeoutError(f"Timeout waiting for element: {selector}")
        await clock.sleep(poll_s)
