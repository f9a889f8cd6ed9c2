"""
In-memory page model with the PageDom surface, and a fake clock.

FakeElement matches a selector when the selector (or one of its
comma-separated parts) was registered on the element, or equals its tag.
"""

import asyncio
from typing import Any, Dict, List, Optional


class FakeElement:
    def __init__(
        self,
        tag: str = "div",
        text: str = "",
        selectors=(),
        attrs: Optional[Dict[str, Any]] = None,
        visible: bool = True,
        value: str = "",
        children=(),
    ):
        self.tag = tag.upper()
        self.own_text = text
        self.selectors = set(selectors)
        self.attrs = dict(attrs or {})
        self.visible = visible
        self.value = value
        self.parent: Optional["FakeElement"] = None
        self.children: List["FakeElement"] = []
        self.events: List[tuple] = []
        self.clicks = 0
        self.files: List[tuple] = []
        self.paste_inserts = True
        self.raise_on: set = set()
        self.on_click = None
        self.append(*children)

    def append(self, *children: "FakeElement") -> "FakeElement":
        for child in children:
            child.parent = self
            self.children.append(child)
        return self

    @property
    def text(self) -> str:
        return self.own_text + "".join(child.text for child in self.children)

    def matches(self, selector: str) -> bool:
        for part in selector.split(","):
            part = part.strip()
            if part in self.selectors or part.upper() == self.tag:
                return True
        return False

    def iter_tree(self):
        yield self
        for child in self.children:
            yield from child.iter_tree()

    def descendants(self):
        for child in self.children:
            yield from child.iter_tree()

    def event_types(self) -> List[str]:
        return [event[0] for event in self.events]

    def __repr__(self):
        return f"<FakeElement {self.tag} {sorted(self.selectors)} {self.text[:20]!r}>"


class FakeDom:
    """In-memory stand-in for browser.dom.PageDom."""

    def __init__(self, url: str = "https://www.tiktok.com/upload", title: str = "TikTok"):
        self.current_url = url
        self.page_title = title
        self.root = FakeElement("body")
        self.extra_text = ""
        self.html = ""
        self.storage: Dict[str, str] = {}
        self.window: Dict[str, Any] = {}
        self.focused: Optional[FakeElement] = None
        self.commands: List[tuple] = []
        self.disabled_commands: set = set()
        self.loads = 0

    def add(self, *elements: FakeElement) -> "FakeDom":
        self.root.append(*elements)
        return self

    def _record(self, element: FakeElement, event_type: str, kind: str = "", init=None):
        if event_type in element.raise_on:
            raise RuntimeError(f"{event_type} rejected")
        element.events.append((event_type, kind, init or {}))

    # --- page level ---

    async def url(self) -> str:
        return self.current_url

    async def title(self) -> str:
        return self.page_title

    async def wait_for_load(self, timeout_ms: int = 30000) -> None:
        self.loads += 1

    async def body_text(self) -> str:
        return self.root.text + self.extra_text

    async def html_contains(self, needle: str) -> bool:
        return needle in self.html

    async def exec_command(self, command: str, value: Optional[str] = None) -> bool:
        self.commands.append((command, value))
        if command in self.disabled_commands:
            return False
        if command == "insertText" and self.focused is not None:
            if self.focused.tag in ("INPUT", "TEXTAREA"):
                self.focused.value = value
            else:
                self.focused.own_text += value
            return True
        return self.focused is not None

    async def clear_selection(self) -> None:
        pass

    async def local_storage_get(self, key: str) -> Optional[str]:
        return self.storage.get(key)

    async def local_storage_set(self, key: str, value: str) -> None:
        self.storage[key] = value

    async def local_storage_remove(self, key: str) -> None:
        self.storage.pop(key, None)

    async def window_value(self, path: str, call: bool = False) -> Any:
        return self.window.get(path)

    # --- queries ---

    async def query(self, selector: str) -> Optional[FakeElement]:
        for element in self.root.iter_tree():
            if element.matches(selector):
                return element
        return None

    async def query_all(self, selector: str) -> List[FakeElement]:
        return [element for element in self.root.iter_tree() if element.matches(selector)]

    async def query_within(self, element: FakeElement, selector: str) -> Optional[FakeElement]:
        for child in element.descendants():
            if child.matches(selector):
                return child
        return None

    async def query_all_within(self, element: FakeElement, selector: str) -> List[FakeElement]:
        return [child for child in element.descendants() if child.matches(selector)]

    async def closest(self, element: FakeElement, selector: str) -> Optional[FakeElement]:
        current = element
        while current is not None:
            if current.matches(selector):
                return current
            current = current.parent
        return None

    async def parent(self, element: FakeElement) -> Optional[FakeElement]:
        return element.parent

    # --- element state ---

    async def text_content(self, element: FakeElement) -> str:
        return element.text

    async def tag_name(self, element: FakeElement) -> str:
        return element.tag

    async def get_attribute(self, element: FakeElement, name: str) -> Optional[str]:
        value = element.attrs.get(name)
        return None if value is None else str(value)

    async def is_visible(self, element: FakeElement) -> bool:
        return element.visible

    async def in_hidden_subtree(self, element: FakeElement) -> bool:
        current = element
        while current is not None:
            if "hidden" in current.attrs:
                return True
            current = current.parent
        return False

    async def is_disabled(self, element: FakeElement) -> bool:
        return bool(element.attrs.get("disabled"))

    async def get_value(self, element: FakeElement) -> str:
        return element.value

    # --- interaction ---

    async def focus(self, element: FakeElement) -> None:
        self._record(element, "focus")
        self.focused = element

    async def blur(self, element: FakeElement) -> None:
        self._record(element, "blur")
        if self.focused is element:
            self.focused = None

    async def click(self, element: FakeElement) -> bool:
        self._record(element, "click", "programmatic")
        element.clicks += 1
        if element.on_click is not None:
            element.on_click()
        return True

    async def scroll_into_view(self, element: FakeElement) -> None:
        self._record(element, "scroll")

    async def dispatch(self, element: FakeElement, event_type: str, kind: str = "Event", init=None) -> bool:
        self._record(element, event_type, kind, init)
        if event_type == "keydown" and element.on_click is not None and (init or {}).get("key") == "Enter":
            element.on_click()
        return True

    async def paste(self, element: FakeElement, text: str) -> bool:
        self._record(element, "paste", "ClipboardEvent", {"text": text})
        if element.paste_inserts:
            element.own_text += text
        return True

    async def select_contents(self, element: FakeElement) -> None:
        self._record(element, "select")

    async def set_value(self, element: FakeElement, value: str) -> None:
        element.value = value

    async def set_text_content(self, element: FakeElement, text: str) -> None:
        element.own_text = text
        element.children = []

    async def clear_text_nodes(self, element: FakeElement) -> int:
        cleared = 0
        for node in element.iter_tree():
            if node.own_text:
                cleared += 1
            node.own_text = ""
        return cleared

    async def reseed_editor(self, element: FakeElement) -> bool:
        contents = await self.query_within(element, 'div[data-contents="true"]')
        if contents is None:
            return False
        contents.children = []
        contents.append(FakeElement("div", selectors={'div[data-block="true"]'}, children=[
            FakeElement("span", selectors={'span[data-text="true"]'}),
        ]))
        return True

    async def set_input_files(self, element: FakeElement, name: str, mime_type: str, data: bytes) -> None:
        element.files.append((name, mime_type, data))
        self._record(element, "change")


class FakeClock:
    """Virtual time: sleep() advances now() instantly."""

    def __init__(self):
        self.time = 0.0
        self.sleeps: List[float] = []
        self.on_sleep = None

    def now(self) -> float:
        return self.time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.time += seconds
        if self.on_sleep is not None:
            self.on_sleep(self.time)
        await asyncio.sleep(0)


def draft_editor(*paragraphs: str) -> FakeElement:
    """A Draft.js editor holding one block per paragraph (one empty block by default)."""
    blocks = [
        FakeElement("div", selectors={'div[data-block="true"]'}, children=[
            FakeElement("span", text=text, selectors={'span[data-text="true"]'}),
        ])
        for text in paragraphs or ("",)
    ]
    return FakeElement(
        "div",
        selectors={'.public-DraftEditor-content[contenteditable="true"]', '[contenteditable="true"]'},
        attrs={"class": "notranslate public-DraftEditor-content", "contenteditable": "true"},
        children=[
            FakeElement("div", selectors={'div[data-contents="true"]'}, children=blocks),
        ],
    )


def user_avatar() -> FakeElement:
    return FakeElement("img", selectors={'[data-e2e="user-avatar"]'})


def file_input() -> FakeElement:
    return FakeElement("input", selectors={'input[type="file"]'}, attrs={"type": "file"})


def upload_page(url: str = "https://www.tiktok.com/upload", logged_in: bool = True) -> FakeDom:
    dom = FakeDom(url=url)
    if logged_in:
        dom.add(user_avatar())
    return dom
