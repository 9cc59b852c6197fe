"""
Blockbook Assembly -- Round Trip Tests

fresh → edit → save → load with the standard top-level block: a history
log around a document of selector pages.

Covers:
  - Missing keys load a fresh document
  - A saved document loads back with the same results and JSON
  - Past entries load lazily and can be restored after a reload
"""

import json

import pytest

from blockbook.kernel.assembly import DocumentAssembly, MemoryStorage
from blockbook.kernel.blocks.command import set_expr
from blockbook.kernel.blocks.selector import update_block
from blockbook.kernel.environment import EMPTY
from blockbook.kernel.library import toplevel_block
from blockbook.kernel.types import CURRENT, SelectorState


# ============================================================================
# Helpers
# ============================================================================


class Editor:
    """Builds the actions a host would commit to the top-level block."""

    def __init__(self, block):
        self.block = block
        self.document = block.inner
        self.selector = self.document.inner
        self.sheet = self.selector.library.get("Sheet")

    def choose(self, name):
        return lambda doc: self.document.update_open_page(
            doc, lambda sel: self.selector.choose_block(name, sel, EMPTY), EMPTY
        )

    def set_line(self, line_id, text):
        def edit_sheet(sheet_state):
            return self.sheet.update_line_block(sheet_state, line_id, lambda c: set_expr(c, text), EMPTY)

        return lambda doc: self.document.update_open_page(doc, lambda sel: update_block(sel, edit_sheet), EMPTY)

    def add_line(self, name, text):
        def append(sheet_state):
            line = self.sheet.new_line(name, set_expr(self.sheet.inner.init, text))
            return self.sheet.append_line(sheet_state, EMPTY, line=line)[1]

        return lambda doc: self.document.update_open_page(doc, lambda sel: update_block(sel, append), EMPTY)


@pytest.fixture
def block():
    return toplevel_block()


@pytest.fixture
def editor(block):
    return Editor(block)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def assembly(storage, block):
    return DocumentAssembly(storage, block)


# ============================================================================
# Fresh documents
# ============================================================================


class TestFresh:
    @pytest.mark.asyncio
    async def test_missing_key_loads_fresh(self, assembly, block):
        state = await assembly.load("nothing-here")

        assert state.mode == CURRENT
        assert len(state.log) == 1
        page = state.current.pages[0]
        assert isinstance(page.state, SelectorState)
        assert page.state.mode == "choose"
        assert block.get_result(state) is None

    @pytest.mark.asyncio
    async def test_load_does_not_write(self, assembly, storage):
        await assembly.load()
        assert storage.items == {}


# ============================================================================
# Save and load
# ============================================================================


class TestSaveLoad:
    @pytest.mark.asyncio
    async def test_round_trip(self, assembly, storage, block, editor):
        state = await assembly.load()
        state = block.commit(state, editor.choose("Sheet"), EMPTY)
        state = block.commit(state, editor.set_line(0, "21"), EMPTY)
        state = block.commit(state, editor.add_line("double", "_0 * 2"), EMPTY)
        assert block.get_result(state) == 42

        await assembly.save(state)
        saved = json.loads(storage.items["block"])
        assert saved["inner"]["pages"][0]["state"]["expr"] == "Sheet"

        loaded = await assembly.load()
        assert block.get_result(loaded) == 42
        assert block.to_json(loaded) == block.to_json(state)

    @pytest.mark.asyncio
    async def test_restore_after_reload(self, assembly, block, editor):
        state = await assembly.load()
        state = block.commit(state, editor.choose("Sheet"), EMPTY)
        state = block.commit(state, editor.set_line(0, "1"), EMPTY)
        state = block.commit(state, editor.set_line(0, "2"), EMPTY)
        await assembly.save(state, "notes")

        loaded = await assembly.load("notes")
        assert all(entry.is_json for entry in loaded.log)

        viewed = block.undo(loaded)
        assert block.inner.get_result(block.get_viewed_state(viewed, EMPTY)) == 1

        restored = block.restore(viewed, EMPTY)
        assert block.get_result(restored) == 1

    @pytest.mark.asyncio
    async def test_dumps_loads(self, assembly, block, editor):
        state = block.commit(await assembly.load(), editor.choose("Command"), EMPTY)
        text = assembly.dumps(state)

        assert block.to_json(assembly.loads(text)) == block.to_json(state)

    @pytest.mark.asyncio
    async def test_delete(self, assembly, storage):
        await assembly.save(await assembly.load(), "gone")
        await assembly.delete("gone")
        assert "gone" not in storage.items
