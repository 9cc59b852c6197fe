"""
Sheet block — an ordered list of named lines, each holding an inner block.

Each line sees the lines above it by name. Every edit recomputes only from
the first line whose environment could have changed; lines above it are
kept as they are. The sheet's result is the result of its last line.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from blockbook.kernel import forest
from blockbook.kernel.block import Block, field_updater, ignore_update
from blockbook.kernel.environment import Environment, as_environment
from blockbook.kernel.schemas import SheetJSON, ValidationError, validate
from blockbook.kernel.types import VISIBILITY_STATES, Action, SheetLine, SheetState, Updater


def next_line_visibility(visibility: str) -> str:
    index = VISIBILITY_STATES.index(visibility) if visibility in VISIBILITY_STATES else -1
    return VISIBILITY_STATES[(index + 1) % len(VISIBILITY_STATES)]


def next_free_id(state: SheetState) -> int:
    return forest.next_free_id(state.lines)


class SheetBlock(Block):
    tag = "sheet"

    def __init__(self, inner: Block):
        self.inner = inner

    # -- lines --

    def new_line(self, name: str = "", inner_state: Any = None) -> SheetLine:
        return SheetLine(
            id=0,
            name=name,
            state=self.inner.init if inner_state is None else inner_state,
        )

    def _lines_update(self, update: Updater | None) -> Updater | None:
        return field_updater(update, "lines") if update is not None else None

    def insert_line_before(
        self,
        state: SheetState,
        line_id: int,
        env: Environment,
        update: Updater | None = None,
        line: SheetLine | None = None,
    ) -> tuple[int, SheetState]:
        """Insert a line above `line_id`. Returns the new line's id."""
        path, lines = forest.insert_before(
            state.lines, (line_id,), line or self.new_line(), env, self.inner, self._lines_update(update)
        )
        return path[-1], replace(state, lines=lines)

    def insert_line_after(
        self,
        state: SheetState,
        line_id: int,
        env: Environment,
        update: Updater | None = None,
        line: SheetLine | None = None,
    ) -> tuple[int, SheetState]:
        """Insert a line below `line_id`. Returns the new line's id."""
        path, lines = forest.insert_after(
            state.lines, (line_id,), line or self.new_line(), env, self.inner, self._lines_update(update)
        )
        return path[-1], replace(state, lines=lines)

    def append_line(
        self,
        state: SheetState,
        env: Environment,
        update: Updater | None = None,
        line: SheetLine | None = None,
    ) -> tuple[int, SheetState]:
        path, lines = forest.insert_child(
            state.lines, (), line or self.new_line(), env, self.inner, self._lines_update(update)
        )
        return path[-1], replace(state, lines=lines)

    def delete_line(
        self,
        state: SheetState,
        line_id: int,
        env: Environment,
        update: Updater | None = None,
    ) -> tuple[int | None, SheetState]:
        """Remove a line. Returns the id of the line to focus next (None when empty)."""
        path, lines = forest.delete(state.lines, (line_id,), env, self.inner, self._lines_update(update))
        return (path[-1] if path else None), replace(state, lines=lines)

    def move_line(
        self,
        state: SheetState,
        line_id: int,
        delta: int,
        env: Environment,
        update: Updater | None = None,
    ) -> SheetState:
        _, lines = forest.move(delta, state.lines, (line_id,), env, self.inner, self._lines_update(update))
        return replace(state, lines=lines)

    def update_line(
        self,
        state: SheetState,
        line_id: int,
        transform: Callable[[SheetLine], SheetLine],
    ) -> SheetState:
        """Change display-only parts of a line. Nothing is recomputed."""
        return replace(state, lines=forest.apply(state.lines, (line_id,), transform))

    def update_line_with_id(
        self,
        state: SheetState,
        line_id: int,
        transform: Callable[[SheetLine], SheetLine],
        env: Environment,
        update: Updater | None = None,
    ) -> SheetState:
        """Change a line and recompute every line below it."""
        lines = forest.apply(state.lines, (line_id,), transform)
        if lines is state.lines:
            return state
        return replace(
            state,
            lines=forest.recompute_from((line_id,), lines, env, self.inner, self._lines_update(update)),
        )

    def update_line_block(
        self,
        state: SheetState,
        line_id: int,
        action: Action,
        env: Environment,
        update: Updater | None = None,
    ) -> SheetState:
        """Apply `action` to a line's inner state and recompute the lines below."""
        lines = forest.update_entry_state(
            (line_id,), state.lines, action, env, self.inner, self._lines_update(update)
        )
        return replace(state, lines=lines)

    def rename_line(
        self,
        state: SheetState,
        line_id: int,
        name: str,
        env: Environment,
        update: Updater | None = None,
    ) -> SheetState:
        lines = forest.rename(state.lines, (line_id,), name, env, self.inner, self._lines_update(update))
        return replace(state, lines=lines)

    def cycle_line_visibility(self, state: SheetState, line_id: int) -> SheetState:
        return self.update_line(
            state,
            line_id,
            lambda line: replace(line, visibility=next_line_visibility(line.visibility)),
        )

    def get_line_result(self, line: SheetLine) -> Any:
        return self.inner.get_result(line.state)

    def get_line(self, state: SheetState, line_id: int) -> SheetLine | None:
        return forest.get_entry_at((line_id,), state.lines)

    # -- block --

    @property
    def init(self) -> SheetState:
        return SheetState(lines=(self.new_line(),))

    def recompute(self, state: SheetState, update: Updater, env: Environment) -> SheetState:
        return replace(
            state,
            lines=forest.recompute_all(state.lines, env, self.inner, self._lines_update(update)),
        )

    def get_result(self, state: SheetState) -> Any:
        return forest.get_last_result(state.lines, self.inner)

    def to_json(self, state: SheetState) -> dict[str, Any]:
        return {
            "lines": [
                {
                    "id": line.id,
                    "name": line.name,
                    "visibility": line.visibility,
                    "state": self.inner.to_json(line.state),
                }
                for line in state.lines
            ]
        }

    def from_json(self, json: Any, update: Updater, env: Environment) -> SheetState:
        parsed = validate(SheetJSON, json)
        lines_update = field_updater(update or ignore_update, "lines")
        local_env = as_environment(env)

        lines: list[SheetLine] = []
        for index, line_json in enumerate(parsed.lines):
            line_update = forest.path_updater(lines_update, (line_json.id,), env, self.inner)
            try:
                inner_state = self.inner.from_json(line_json.state, line_update, local_env)
            except ValidationError as e:
                raise e.within("lines", index, "state") from e
            line = SheetLine(
                id=line_json.id,
                name=line_json.name,
                state=inner_state,
                visibility=line_json.visibility,
            )
            lines.append(line)
            local_env = local_env.extend(forest.entry_to_env(line, self.inner))

        ids = [line.id for line in lines]
        if len(set(ids)) != len(ids):
            raise ValidationError("line ids must be unique", ("lines",))
        return SheetState(lines=tuple(lines))
