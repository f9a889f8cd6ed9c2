"""
Tests for caption injection.
"""

import random

import pytest

from agent.caption import (
    RichTextCaptionMachine,
    key_event_init,
    resolve_editor,
    set_caption,
)
from agent.models import EditorKind, ElementNotFoundError

from fakes import FakeDom, FakeElement, draft_editor


class TestResolveEditor:
    """Tests for editor discovery."""

    async def test_draft_editor_is_rich_text(self):
        dom = FakeDom().add(draft_editor("old"))

        handle = await resolve_editor(dom)

        assert handle.kind == EditorKind.RICH_TEXT
        assert handle.selector == '.public-DraftEditor-content[contenteditable="true"]'

    async def test_contenteditable_is_generic(self):
        dom = FakeDom().add(FakeElement("div", selectors={'[contenteditable="true"]'}))

        handle = await resolve_editor(dom)

        assert handle.kind == EditorKind.GENERIC_EDITABLE

    async def test_textarea_is_plain_input(self):
        dom = FakeDom().add(FakeElement("textarea"))

        handle = await resolve_editor(dom)

        assert handle.kind == EditorKind.PLAIN_INPUT

    async def test_nothing_found(self):
        assert await resolve_editor(FakeDom()) is None

    def test_key_event_init(self):
        assert key_event_init("Backspace")["keyCode"] == 8
        assert key_event_init("a") == {"key": "a", "code": "KeyA", "keyCode": 97, "which": 97}


class TestRichTextCaption:
    """Tests for the Draft.js state machine."""

    @pytest.fixture
    def dom(self):
        return FakeDom()

    @pytest.fixture
    def editor(self, dom):
        element = draft_editor("An old caption #tag")
        dom.add(element)
        return element

    async def machine(self, dom, text, clock, rng=None):
        handle = await resolve_editor(dom)
        return RichTextCaptionMachine(dom, handle, text, clock, rng=rng)

    async def test_replaces_old_text(self, dom, editor, clock):
        machine = await self.machine(dom, "Hello world", clock)

        result = await machine.run()

        assert result.success is True
        assert editor.text == "Hello world"
        assert "An old caption" not in editor.text
        assert machine.cleared_nodes == 1
        assert result.data == {"editor": "RichTextEditor", "insertMethod": "paste", "length": 11}

    async def test_multi_paragraph_caption_is_fully_cleared(self, dom, clock):
        old = ["First paragraph", "Second paragraph", "Third one"]
        editor = draft_editor(*old)
        blocks = editor.children[0].children
        blocks[1].append(FakeElement("span", text="#styled", selectors={'span[data-text="true"]'}))
        dom.add(editor)

        seen = {}
        paste = dom.paste

        async def paste_after_clear(element, text):
            seen["before_insert"] = element.text
            return await paste(element, text)

        dom.paste = paste_after_clear
        machine = await self.machine(dom, "Fresh caption", clock)

        result = await machine.run()

        assert result.success is True
        assert machine.cleared_nodes == 4
        assert seen["before_insert"] == ""
        assert editor.text == "Fresh caption"
        for paragraph in old + ["#styled"]:
            assert paragraph not in editor.text

    async def test_history(self, dom, editor, clock):
        machine = await self.machine(dom, "Hello world", clock)

        await machine.run()

        assert machine.history == [
            "Focus", "Clear(1)", "Clear(2)", "Clear(3)",
            "Insert(paste)", "Settle", "Verify", "Done",
        ]

    async def test_clear_runs_select_and_delete_three_times(self, dom, editor, clock):
        machine = await self.machine(dom, "x", clock)

        await machine.run()

        assert editor.event_types().count("select") == 3
        assert dom.commands.count(("delete", None)) == 3

    async def test_insert_text_when_paste_leaves_editor_empty(self, dom, editor, clock):
        editor.paste_inserts = False
        machine = await self.machine(dom, "Hello", clock)

        result = await machine.run()

        assert "Insert(fallback)" in machine.history
        assert result.data["insertMethod"] == "fallback"
        assert ("insertText", "Hello") in dom.commands
        assert editor.text == "Hello"

    async def test_insert_text_when_paste_raises(self, dom, editor, clock):
        editor.raise_on.add("paste")
        machine = await self.machine(dom, "Hello", clock)

        result = await machine.run()

        assert result.data["insertMethod"] == "fallback"
        assert editor.text == "Hello"

    async def test_partial_typing_is_capped(self, dom, editor, clock):
        machine = await self.machine(dom, "A caption longer than ten characters", clock)

        await machine.run()

        assert editor.event_types().count("keypress") == RichTextCaptionMachine.PARTIAL_TYPING_CHARS

    async def test_short_caption_types_every_character(self, dom, editor, clock):
        machine = await self.machine(dom, "Hey", clock)

        await machine.run()

        assert editor.event_types().count("keypress") == 3

    async def test_settle_ends_blurred(self, dom, editor, clock):
        machine = await self.machine(dom, "Hey", clock)

        await machine.run()

        settle_events = editor.event_types()
        assert "compositionend" in settle_events
        assert settle_events[-1] == "blur"

    async def test_exception_falls_back_to_typing(self, dom, editor, clock):
        editor.raise_on.add("compositionstart")
        text = "Typed caption"
        machine = await self.machine(dom, text, clock, rng=random.Random(7))

        result = await machine.run()

        assert result.success is True
        assert result.data["insertMethod"] == "typing"
        assert machine.history[-1] == "Fallback"
        assert "Done" not in machine.history

        typing_delays = clock.sleeps[-(len(text) + 1):-1]
        assert len(typing_delays) == len(text)
        assert all(0.02 <= delay <= 0.05 for delay in typing_delays)

    async def test_set_caption_trims(self, dom, editor, clock):
        result = await set_caption(dom, "   Hello   ", clock)

        assert result.success is True
        assert editor.text == "Hello"
        assert result.data["length"] == 5


class TestPlainCaption:
    """Tests for textareas and plain contenteditable elements."""

    async def test_textarea_insert_text(self, clock):
        textarea = FakeElement("textarea", value="old")
        dom = FakeDom().add(textarea)

        result = await set_caption(dom, "New caption", clock)

        assert textarea.value == "New caption"
        assert result.data == {"editor": "PlainInput", "insertMethod": "insertText"}
        assert textarea.event_types()[-3:] == ["input", "change", "blur"]

    async def test_textarea_assign_when_insert_text_unsupported(self, clock):
        textarea = FakeElement("textarea", value="old")
        dom = FakeDom().add(textarea)
        dom.disabled_commands.add("insertText")

        result = await set_caption(dom, "New caption", clock)

        assert textarea.value == "New caption"
        assert result.data["insertMethod"] == "assign"

    async def test_generic_editable(self, clock):
        editable = FakeElement("div", text="old", selectors={'[contenteditable="true"]'})
        dom = FakeDom().add(editable)

        result = await set_caption(dom, "Fresh", clock)

        assert editable.text == "Fresh"
        assert result.data["editor"] == "GenericEditable"

    async def test_missing_editor_raises(self, clock):
        with pytest.raises(ElementNotFoundError, match="Could not find caption input field"):
            await set_caption(FakeDom(), "Hello", clock)
