"""
Page DOM - Playwright-backed DOM primitives used by the page agent.

Every operation the agent performs on the target page goes through this
class. Most primitives run a small script inside the page so the events the
page sees are the same ones a script running in the page would produce
(programmatic click(), synthetic KeyboardEvent/ClipboardEvent, execCommand).
"""

import logging
from typing import Any, Dict, List, Optional

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)


_DISPATCH_JS = """
(el, args) => {
    const Ctor = window[args.kind] || Event;
    const init = Object.assign({ bubbles: true, cancelable: true }, args.init || {});
    if (args.kind === 'MouseEvent') init.view = window;
    return el.dispatchEvent(new Ctor(args.type, init));
}
"""

_PASTE_JS = """
(el, text) => {
    const dataTransfer = new DataTransfer();
    dataTransfer.setData('text/plain', text);
    const pasteEvent = new ClipboardEvent('paste', {
        clipboardData: dataTransfer,
        bubbles: true,
        cancelable: true,
    });
    return el.dispatchEvent(pasteEvent);
}
"""

_SELECT_CONTENTS_JS = """
el => {
    if (el.tagName === 'TEXTAREA' || el.tagName === 'INPUT') {
        el.setSelectionRange(0, el.value.length);
        return;
    }
    const range = document.createRange();
    range.selectNodeContents(el);
    const selection = window.getSelection();
    selection.removeAllRanges();
    selection.addRange(range);
}
"""

_CLEAR_TEXT_NODES_JS = """
el => {
    let cleared = 0;
    el.querySelectorAll('span[data-text="true"]').forEach((span) => {
        if (span.textContent.length > 0) cleared++;
        span.textContent = '';
    });
    const walker = document.createTreeWalker(el, NodeFilter.SHOW_TEXT, null, false);
    let node;
    while ((node = walker.nextNode())) {
        if (node.textContent.length > 0) cleared++;
        node.textContent = '';
    }
    return cleared;
}
"""

# One empty Draft.js block, the shape the editor renders for an empty document
_RESEED_JS = """
el => {
    const contents = el.querySelector('div[data-contents="true"]');
    if (!contents) return false;
    contents.innerHTML =
        '<div data-block="true" data-editor="blqce" data-offset-key="amitv-0-0">' +
        '<div data-offset-key="amitv-0-0" class="public-DraftStyleDefault-block public-DraftStyleDefault-ltr">' +
        '<span data-offset-key="amitv-0-0"><span data-text="true"></span></span></div></div>';
    return true;
}
"""

_WINDOW_PATH_JS = """
([path, call]) => {
    let owner = null;
    let value = window;
    for (const part of path.split('.')) {
        if (value === null || value === undefined) return null;
        owner = value;
        value = value[part];
    }
    if (call) {
        if (typeof value !== 'function') return null;
        value = value.call(owner);
    }
    if (value === undefined) return null;
    try {
        return JSON.parse(JSON.stringify(value));
    } catch (e) {
        return null;
    }
}
"""


class PageDom:
    """
    DOM primitives over one Playwright page.

    Elements are Playwright ElementHandles; callers treat them as opaque.
    """

    def __init__(self, page: Page):
        self.page = page

    # --- page level ---

    async def url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    async def wait_for_load(self, timeout_ms: int = 30000) -> None:
        """Wait for the window load event; a slow page is not an error."""
        try:
            await self.page.wait_for_load_state('load', timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("Load state not reached, continuing")

    async def body_text(self) -> str:
        return await self.page.evaluate("() => document.body ? document.body.innerText : ''")

    async def html_contains(self, needle: str) -> bool:
        return await self.page.evaluate(
            "(needle) => !!document.body && document.body.innerHTML.includes(needle)",
            needle,
        )

    async def exec_command(self, command: str, value: Optional[str] = None) -> bool:
        """Run document.execCommand against the focused element."""
        try:
            return bool(await self.page.evaluate(
                "([command, value]) => document.execCommand(command, false, value)",
                [command, value],
            ))
        except PlaywrightError as e:
            logger.debug(f"execCommand {command} failed: {e}")
            return False

    async def clear_selection(self) -> None:
        await self.page.evaluate("() => window.getSelection().removeAllRanges()")

    async def local_storage_get(self, key: str) -> Optional[str]:
        return await self.page.evaluate("(key) => window.localStorage.getItem(key)", key)

    async def local_storage_set(self, key: str, value: str) -> None:
        await self.page.evaluate("([key, value]) => window.localStorage.setItem(key, value)", [key, value])

    async def local_storage_remove(self, key: str) -> None:
        await self.page.evaluate("(key) => window.localStorage.removeItem(key)", key)

    async def window_value(self, path: str, call: bool = False) -> Any:
        """Read a dotted window property (optionally calling it) as plain JSON data."""
        return await self.page.evaluate(_WINDOW_PATH_JS, [path, call])

    # --- queries ---

    async def query(self, selector: str) -> Optional[ElementHandle]:
        return await self.page.query_selector(selector)

    async def query_all(self, selector: str) -> List[ElementHandle]:
        return await self.page.query_selector_all(selector)

    async def query_within(self, element: ElementHandle, selector: str) -> Optional[ElementHandle]:
        return await element.query_selector(selector)

    async def query_all_within(self, element: ElementHandle, selector: str) -> List[ElementHandle]:
        return await element.query_selector_all(selector)

    async def closest(self, element: ElementHandle, selector: str) -> Optional[ElementHandle]:
        handle = await element.evaluate_handle("(el, selector) => el.closest(selector)", selector)
        return handle.as_element()

    async def parent(self, element: ElementHandle) -> Optional[ElementHandle]:
        handle = await element.evaluate_handle("el => el.parentElement")
        return handle.as_element()

    # --- element state ---

    async def text_content(self, element: ElementHandle) -> str:
        return (await element.text_content()) or ""

    async def tag_name(self, element: ElementHandle) -> str:
        return await element.evaluate("el => el.tagName")

    async def get_attribute(self, element: ElementHandle, name: str) -> Optional[str]:
        return await element.get_attribute(name)

    async def is_visible(self, element: ElementHandle) -> bool:
        """Rendered in layout (offsetParent set), the check the target UI itself relies on."""
        return await element.evaluate("el => el.offsetParent !== null")

    async def in_hidden_subtree(self, element: ElementHandle) -> bool:
        return await element.evaluate("el => el.closest('[hidden]') !== null")

    async def is_disabled(self, element: ElementHandle) -> bool:
        return await element.evaluate("el => !!el.disabled")

    async def get_value(self, element: ElementHandle) -> str:
        return await element.evaluate("el => el.value === undefined ? '' : String(el.value)")

    # --- interaction ---

    async def focus(self, element: ElementHandle) -> None:
        await element.evaluate("el => el.focus()")

    async def blur(self, element: ElementHandle) -> None:
        await element.evaluate("el => el.blur()")

    async def click(self, element: ElementHandle) -> bool:
        """Programmatic click(), no pointer movement. False for nodes without click() (SVG)."""
        return await element.evaluate(
            "el => { if (typeof el.click !== 'function') return false; el.click(); return true; }"
        )

    async def scroll_into_view(self, element: ElementHandle) -> None:
        await element.evaluate("el => el.scrollIntoView({ behavior: 'smooth', block: 'center' })")

    async def dispatch(
        self,
        element: ElementHandle,
        event_type: str,
        kind: str = "Event",
        init: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Dispatch a synthetic event built with the named constructor (KeyboardEvent, MouseEvent...)."""
        return await element.evaluate(_DISPATCH_JS, {"type": event_type, "kind": kind, "init": init or {}})

    async def paste(self, element: ElementHandle, text: str) -> bool:
        """Dispatch a paste event whose clipboard carries text/plain."""
        return await element.evaluate(_PASTE_JS, text)

    async def select_contents(self, element: ElementHandle) -> None:
        await element.evaluate(_SELECT_CONTENTS_JS)

    async def set_value(self, element: ElementHandle, value: str) -> None:
        await element.evaluate("(el, value) => { el.value = value; }", value)

    async def set_text_content(self, element: ElementHandle, text: str) -> None:
        await element.evaluate("(el, text) => { el.textContent = text; }", text)

    async def clear_text_nodes(self, element: ElementHandle) -> int:
        """Empty every data-text span and text node under element; returns how many held text."""
        return await element.evaluate(_CLEAR_TEXT_NODES_JS)

    async def reseed_editor(self, element: ElementHandle) -> bool:
        """Replace the editor's content container with a single empty block."""
        return await element.evaluate(_RESEED_JS)

    async def set_input_files(self, element: ElementHandle, name: str, mime_type: str, data: bytes) -> None:
        """Attach an in-memory file to a file input; Playwright fires input and change."""
        await element.set_input_files({"name": name, "mimeType": mime_type, "buffer": data})
