"""
Document block — a tree of named pages, one of them open.

Pages see the pages before them, and a page sees its own sub-pages, so a
document is a forest that recomputes like a sheet but on every level.
New pages are cloned from the document's template page, which can be
replaced by any existing page (`save_as_template`).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from blockbook.kernel import forest
from blockbook.kernel.block import Block, field_updater, ignore_update
from blockbook.kernel.environment import Environment, as_environment
from blockbook.kernel.schemas import DocumentJSON, EntryJSON, ValidationError, validate
from blockbook.kernel.types import Action, DocumentState, Entry, Path, Updater


def _repath(path: Path, old_prefix: Path, new_prefix: Path) -> Path:
    """Rewrite `path` when the subtree at `old_prefix` moved to `new_prefix`."""
    if path[: len(old_prefix)] == old_prefix:
        return (*new_prefix, *path[len(old_prefix) :])
    return path


class DocumentBlock(Block):
    tag = "document"

    def __init__(self, inner: Block):
        self.inner = inner

    def _pages_update(self, update: Updater | None) -> Updater | None:
        return field_updater(update, "pages") if update is not None else None

    def blank_page(self) -> Entry:
        return Entry(id=0, name="", state=self.inner.init)

    def new_page(self, state: DocumentState) -> Entry:
        return replace(state.template, id=0, name="")

    # -- pages --

    def get_open_page(self, state: DocumentState) -> Entry | None:
        return forest.get_entry_at(state.open_page, state.pages)

    def get_open_env(self, state: DocumentState, env: Environment) -> Environment | None:
        """What the open page sees."""
        return forest.get_env_at(state.open_page, state.pages, env, self.inner)

    def add_page(
        self,
        state: DocumentState,
        parent_path: Path,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        """Add a page as the last child of `parent_path` (top level when empty) and open it."""
        path, pages = forest.insert_child(
            state.pages, parent_path, self.new_page(state), env, self.inner, self._pages_update(update)
        )
        if pages is state.pages:
            return state
        if parent_path:
            pages = forest.apply(pages, parent_path, lambda parent: replace(parent, is_collapsed=False))
        return replace(state, pages=pages, open_page=path)

    def delete_page(
        self,
        state: DocumentState,
        path: Path,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        selected, pages = forest.delete(state.pages, path, env, self.inner, self._pages_update(update))
        if pages is state.pages:
            return state
        open_page = selected if state.open_page[: len(path)] == path else state.open_page
        return replace(state, pages=pages, open_page=open_page)

    def rename_page(
        self,
        state: DocumentState,
        path: Path,
        name: str,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        pages = forest.rename(state.pages, path, name, env, self.inner, self._pages_update(update))
        return replace(state, pages=pages)

    def open_page(self, state: DocumentState, path: Path) -> DocumentState:
        if forest.get_entry_at(path, state.pages) is None:
            return state
        return replace(state, open_page=tuple(path))

    def toggle_collapsed(self, state: DocumentState, path: Path) -> DocumentState:
        return replace(state, pages=forest.toggle_collapsed(state.pages, path))

    def nest_page(
        self,
        state: DocumentState,
        path: Path,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        new_path, pages = forest.nest(state.pages, path, env, self.inner, self._pages_update(update))
        return replace(state, pages=pages, open_page=_repath(state.open_page, path, new_path))

    def unnest_page(
        self,
        state: DocumentState,
        path: Path,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        new_path, pages = forest.unnest(state.pages, path, env, self.inner, self._pages_update(update))
        return replace(state, pages=pages, open_page=_repath(state.open_page, path, new_path))

    def move_page(
        self,
        state: DocumentState,
        path: Path,
        delta: int,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        _, pages = forest.move(delta, state.pages, path, env, self.inner, self._pages_update(update))
        return replace(state, pages=pages)

    def update_page_state(
        self,
        state: DocumentState,
        path: Path,
        action: Action,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        pages = forest.update_entry_state(path, state.pages, action, env, self.inner, self._pages_update(update))
        return replace(state, pages=pages)

    def update_open_page(
        self,
        state: DocumentState,
        action: Action,
        env: Environment,
        update: Updater | None = None,
    ) -> DocumentState:
        return self.update_page_state(state, state.open_page, action, env, update)

    def save_as_template(self, state: DocumentState, path: Path) -> DocumentState:
        page = forest.get_entry_at(path, state.pages)
        if page is None:
            return state
        return replace(state, template=replace(page, id=0, name=""))

    def set_name(self, state: DocumentState, name: str) -> DocumentState:
        return replace(state, name=name)

    # -- block --

    @property
    def init(self) -> DocumentState:
        page = self.blank_page()
        return DocumentState(pages=(page,), template=page, open_page=(page.id,))

    def recompute(self, state: DocumentState, update: Updater, env: Environment) -> DocumentState:
        return replace(
            state,
            pages=forest.recompute_all(state.pages, env, self.inner, self._pages_update(update)),
        )

    def get_result(self, state: DocumentState) -> Any:
        page = self.get_open_page(state)
        if page is None:
            return None
        return self.inner.get_result(page.state)

    def _page_to_json(self, page: Entry) -> dict[str, Any]:
        return {
            "id": page.id,
            "name": page.name,
            "state": self.inner.to_json(page.state),
            "children": [self._page_to_json(child) for child in page.children],
            "collapsed": page.is_collapsed,
        }

    def to_json(self, state: DocumentState) -> dict[str, Any]:
        return {
            "name": state.name,
            "pages": [self._page_to_json(page) for page in state.pages],
            "open_page": list(state.open_page),
            "template": self._page_to_json(state.template),
        }

    def _pages_from_json(
        self,
        items: list[EntryJSON],
        env: Environment,
        root_env: Environment,
        pages_update: Updater,
        prefix: Path,
        location: tuple[str | int, ...],
    ) -> tuple[Entry, ...]:
        local_env = env
        pages: list[Entry] = []
        for index, item in enumerate(items):
            here = (*prefix, item.id)
            item_location = (*location, index)
            children = self._pages_from_json(
                item.children or [], local_env, root_env, pages_update, here, (*item_location, "children")
            )
            page_update = forest.path_updater(pages_update, here, root_env, self.inner)
            try:
                page_state = self.inner.from_json(
                    item.state, page_update, forest.get_siblings_env(children, local_env, self.inner)
                )
            except ValidationError as e:
                raise e.within(*item_location, "state") from e
            page = Entry(
                id=item.id,
                name=item.name,
                state=page_state,
                children=children,
                is_collapsed=True if item.collapsed is None else item.collapsed,
            )
            pages.append(page)
            local_env = local_env.extend(forest.entry_to_env(page, self.inner))

        ids = [page.id for page in pages]
        if len(set(ids)) != len(ids):
            raise ValidationError("page ids must be unique among siblings", location)
        return tuple(pages)

    def from_json(self, json: Any, update: Updater, env: Environment) -> DocumentState:
        parsed = validate(DocumentJSON, json)
        env = as_environment(env)
        pages_update = field_updater(update or ignore_update, "pages")

        pages = self._pages_from_json(parsed.pages, env, env, pages_update, (), ("pages",))
        if parsed.template is None:
            template = self.blank_page()
        else:
            (template,) = self._pages_from_json([parsed.template], env, env, ignore_update, (), ("template",))

        open_page = tuple(parsed.open_page)
        if forest.get_entry_at(open_page, pages) is None:
            open_page = (pages[0].id,) if pages else ()
        return DocumentState(pages=pages, template=template, open_page=open_page, name=parsed.name)
