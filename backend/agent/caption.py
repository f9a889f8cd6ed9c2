"""
Caption Injection - fill the caption widget, whatever kind the page renders.

The upload page uses a Draft.js editor. Draft.js keeps its own document
model and rebuilds the DOM from it, so writing to the DOM alone does not
stick: the text has to arrive through events the editor reconciles
(paste, input, composition), and the old content has to be removed from
both the model and the DOM. That sequence is modeled as a state machine:

    Focus -> Clear(1..3) -> Insert(paste|fallback) -> Settle -> Verify -> Done
       \\________________ any exception ________________/-> Fallback (typing)
"""

import logging
import random
from contextlib import nullcontext
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock
from .models import AutomationResult, EditorHandle, EditorKind, ElementNotFoundError

logger = logging.getLogger(__name__)


# Probed in order; the first selector that matches decides the editor
EDITOR_SELECTORS = [
    '.public-DraftEditor-content[contenteditable="true"]',
    '[contenteditable="true"].DraftEditor-content',
    '[contenteditable="true"]',
    "textarea",
    'input[type="text"]',
    ".caption-input",
    ".caption-editor",
]

RICH_TEXT_CLASS = "public-DraftEditor-content"

KEY_CODES = {
    "Backspace": 8,
    "Enter": 13,
    "ArrowLeft": 37,
    "ArrowRight": 39,
    "Delete": 46,
}


def key_event_init(key: str) -> Dict[str, Any]:
    """KeyboardEvent init for a named key or a single printable character."""
    if key in KEY_CODES:
        code = key
        key_code = KEY_CODES[key]
    else:
        code = f"Key{key.upper()}"
        key_code = ord(key[0])
    return {"key": key, "code": code, "keyCode": key_code, "which": key_code}


async def press_key(dom, element: Any, key: str) -> None:
    await dom.dispatch(element, "keydown", kind="KeyboardEvent", init=key_event_init(key))


async def type_character(dom, element: Any, char: str) -> None:
    """keydown, keypress and input for one character."""
    init = key_event_init(char)
    await dom.dispatch(element, "keydown", kind="KeyboardEvent", init=init)
    await dom.dispatch(element, "keypress", kind="KeyboardEvent", init=init)
    await dom.dispatch(element, "input", kind="InputEvent", init={"inputType": "insertText", "data": char})


async def resolve_editor(dom) -> Optional[EditorHandle]:
    """Probe EDITOR_SELECTORS in order and classify the first match."""
    for selector in EDITOR_SELECTORS:
        element = await dom.query(selector)
        if element is None:
            continue

        class_name = await dom.get_attribute(element, "class") or ""
        tag = (await dom.tag_name(element)).upper()

        if RICH_TEXT_CLASS in class_name:
            kind = EditorKind.RICH_TEXT
        elif tag in ("TEXTAREA", "INPUT"):
            kind = EditorKind.PLAIN_INPUT
        else:
            kind = EditorKind.GENERIC_EDITABLE

        logger.info(f"Found caption editor with selector: {selector} ({kind.value})")
        return EditorHandle(kind=kind, element=element, selector=selector)
    return None


class CaptionState(str, Enum):
    FOCUS = "Focus"
    CLEAR = "Clear"
    INSERT = "Insert"
    SETTLE = "Settle"
    VERIFY = "Verify"
    FALLBACK = "Fallback"
    DONE = "Done"


class RichTextCaptionMachine:
    """
    Caption injection for the Draft.js editor.

    Every transition is appended to ``history`` (e.g. ``"Clear(2)"``,
    ``"Insert(paste)"``) so a run can be inspected after the fact.
    """

    CLEAR_ATTEMPTS = 3
    PARTIAL_TYPING_CHARS = 10

    # Pauses in seconds
    TIMING = {
        "after_focus": 0.3,
        "between_clears": 0.15,
        "after_clear": 1.0,
        "before_paste": 0.3,
        "after_paste": 0.2,
        "partial_typing": 0.01,
        "focus_cycle": 0.2,
        "final_settle": 0.5,
        "fallback_after_focus": 0.2,
        "fallback_after_clear": 0.5,
        "typing_min": 0.02,
        "typing_max": 0.05,
    }

    def __init__(
        self,
        dom,
        editor: EditorHandle,
        text: str,
        clock: Clock,
        rng: Optional[random.Random] = None,
        tracer=None,
    ):
        self.dom = dom
        self.editor = editor.element
        self.text = text
        self.clock = clock
        self.rng = rng or random.Random()
        self.tracer = tracer

        self.state = CaptionState.FOCUS
        self.history: List[str] = []
        self.insert_method: Optional[str] = None
        self.cleared_nodes = 0
        self.final_text: Optional[str] = None

    def _record(self, label: str) -> None:
        self.history.append(label)
        logger.debug(f"Caption state: {label}")

    def _span(self, name: str):
        if self.tracer is None:
            return nullcontext()
        return self.tracer.span(name)

    async def run(self) -> AutomationResult:
        handlers = {
            CaptionState.FOCUS: self._focus,
            CaptionState.CLEAR: self._clear,
            CaptionState.INSERT: self._insert,
            CaptionState.SETTLE: self._settle,
            CaptionState.VERIFY: self._verify,
        }

        try:
            while self.state != CaptionState.DONE:
                with self._span(f"caption_{self.state.value.lower()}"):
                    self.state = await handlers[self.state]()
        except Exception as e:
            logger.warning(f"Rich text injection failed in state {self.state.value}: {e}")
            logger.info("Falling back to character-by-character typing...")
            self.state = CaptionState.FALLBACK
            self._record(CaptionState.FALLBACK.value)
            return await self._fallback_typing()

        self._record(CaptionState.DONE.value)
        return AutomationResult.ok(
            "Caption set successfully in rich text editor",
            editor=EditorKind.RICH_TEXT.value,
            insertMethod=self.insert_method,
            length=len(self.final_text or ""),
        )

    async def _focus(self) -> CaptionState:
        self._record(CaptionState.FOCUS.value)
        await self.dom.focus(self.editor)
        await self.clock.sleep(self.TIMING["after_focus"])
        return CaptionState.CLEAR

    async def _clear(self) -> CaptionState:
        # Select-all + delete keys; each pass lets the editor drop part of its model
        for attempt in range(1, self.CLEAR_ATTEMPTS + 1):
            self._record(f"{CaptionState.CLEAR.value}({attempt})")
            await self.dom.focus(self.editor)
            await self.dom.select_contents(self.editor)
            await press_key(self.dom, self.editor, "Backspace")
            await press_key(self.dom, self.editor, "Delete")
            await self.dom.exec_command("delete")
            await self.clock.sleep(self.TIMING["between_clears"])

        # Any text node the passes above left behind
        self.cleared_nodes = await self.dom.clear_text_nodes(self.editor)

        # Content container back to one empty block
        await self.dom.reseed_editor(self.editor)
        await self.dom.set_text_content(self.editor, "")

        await self.clock.sleep(self.TIMING["after_clear"])
        return CaptionState.INSERT

    async def _insert(self) -> CaptionState:
        await self.dom.focus(self.editor)
        await self.clock.sleep(self.TIMING["before_paste"])

        try:
            await self.dom.paste(self.editor, self.text)
            self.insert_method = "paste"
            await self.clock.sleep(self.TIMING["after_paste"])
            if len(await self.dom.text_content(self.editor)) == 0:
                logger.info("Editor still empty after paste, using insertText")
                await self.dom.exec_command("insertText", self.text)
                self.insert_method = "fallback"
        except Exception as e:
            logger.warning(f"Paste simulation failed: {e}")
            await self.dom.exec_command("insertText", self.text)
            self.insert_method = "fallback"

        self._record(f"{CaptionState.INSERT.value}({self.insert_method})")
        return CaptionState.SETTLE

    async def _settle(self) -> CaptionState:
        """Events that make the character counter and validation state catch up."""
        self._record(CaptionState.SETTLE.value)
        editor = self.editor

        await self.dom.dispatch(editor, "input", kind="InputEvent", init={"inputType": "insertText", "data": self.text})

        for char in self.text[:self.PARTIAL_TYPING_CHARS]:
            await type_character(self.dom, editor, char)
            await self.clock.sleep(self.TIMING["partial_typing"])

        for event_type in ("compositionstart", "compositionupdate", "compositionend"):
            await self.dom.dispatch(editor, event_type, kind="CompositionEvent")
        await self.dom.dispatch(editor, "change")

        await self.dom.dispatch(editor, "click", kind="MouseEvent")
        await self.dom.focus(editor)
        await self.clock.sleep(self.TIMING["focus_cycle"])
        await press_key(self.dom, editor, "ArrowRight")
        await press_key(self.dom, editor, "ArrowLeft")

        for _ in range(2):
            await self.dom.blur(editor)
            await self.clock.sleep(self.TIMING["focus_cycle"])
            await self.dom.focus(editor)
            await self.clock.sleep(self.TIMING["focus_cycle"])
        await self.dom.blur(editor)

        await self.clock.sleep(self.TIMING["final_settle"])
        return CaptionState.VERIFY

    async def _verify(self) -> CaptionState:
        self._record(CaptionState.VERIFY.value)
        self.final_text = await self.dom.text_content(self.editor)
        if self.final_text.strip() != self.text:
            logger.warning(f"Editor shows {len(self.final_text)} chars after injection, expected {len(self.text)}")
        return CaptionState.DONE

    async def _fallback_typing(self) -> AutomationResult:
        editor = self.editor

        await self.dom.focus(editor)
        await self.clock.sleep(self.TIMING["fallback_after_focus"])

        await self.dom.select_contents(editor)
        await press_key(self.dom, editor, "Delete")
        await self.dom.clear_selection()
        await self.clock.sleep(self.TIMING["fallback_after_clear"])

        for char in self.text:
            await type_character(self.dom, editor, char)
            await self.clock.sleep(self.rng.uniform(self.TIMING["typing_min"], self.TIMING["typing_max"]))

        await self.dom.blur(editor)
        await self.clock.sleep(self.TIMING["focus_cycle"])
        await self.dom.focus(editor)

        logger.info("Character-by-character fallback completed")
        return AutomationResult.ok(
            "Caption set via character-by-character typing",
            editor=EditorKind.RICH_TEXT.value,
            insertMethod="typing",
        )


async def inject_plain(dom, editor: EditorHandle, text: str, clock: Clock) -> AutomationResult:
    """Caption injection for textareas, inputs and plain contenteditable elements."""
    element = editor.element
    is_input = editor.kind == EditorKind.PLAIN_INPUT

    await dom.focus(element)
    await clock.sleep(0.2)

    await dom.select_contents(element)
    await clock.sleep(0.2)

    await press_key(dom, element, "Delete")
    if is_input:
        await dom.set_value(element, "")
    else:
        await dom.set_text_content(element, "")
    await clock.sleep(0.3)

    inserted = await dom.exec_command("insertText", text)
    if inserted:
        logger.info("Text inserted via insertText")
    elif is_input:
        await dom.set_value(element, text)
    else:
        await dom.set_text_content(element, text)

    await dom.dispatch(element, "input")
    await dom.dispatch(element, "change")

    await dom.blur(element)
    await clock.sleep(0.2)

    return AutomationResult.ok(
        "Caption set successfully in generic editor",
        editor=editor.kind.value,
        insertMethod="insertText" if inserted else "assign",
    )


async def set_caption(
    dom,
    caption: str,
    clock: Clock,
    rng: Optional[random.Random] = None,
    tracer=None,
) -> AutomationResult:
    """Find the caption widget and fill it with caption (trimmed)."""
    text = caption.strip()

    editor = await resolve_editor(dom)
    if editor is None:
        raise ElementNotFoundError("Could not find caption input field")

    if editor.kind == EditorKind.RICH_TEXT:
        machine = RichTextCaptionMachine(dom, editor, text, clock, rng=rng, tracer=tracer)
        return await machine.run()

    return await inject_plain(dom, editor, text, clock)
