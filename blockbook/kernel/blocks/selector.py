"""
Selector block — hosts one inner block picked by a user expression.

The expression is evaluated against the block library layered under the
environment; when it names a block, that block runs inside the selector.

Modes:
  choose    no block picked yet (or the user is picking another one)
  run       a block is picked and running
  loading   PendingSelector: loaded from JSON before the expression could be
            resolved; the inner JSON is kept until a recompute resolves it
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Union

from blockbook.kernel.block import Block, BlockRegistry, is_block
from blockbook.kernel.environment import Environment, as_environment
from blockbook.kernel.evaluator import Evaluator, evaluate
from blockbook.kernel.schemas import SelectorJSON, ValidationError, validate
from blockbook.kernel.types import Action, PendingSelector, SelectorState, Updater

logger = logging.getLogger(__name__)

AnySelectorState = Union[SelectorState, PendingSelector]


def update_block(state: AnySelectorState, action: Action) -> AnySelectorState:
    """Apply `action` to the inner block's state. Pending selectors have none yet."""
    if isinstance(state, PendingSelector):
        return state
    return replace(state, inner_state=action(state.inner_state))


def start_choosing(state: AnySelectorState) -> AnySelectorState:
    """Switch to choose mode, keeping the running block until another is picked."""
    if isinstance(state, PendingSelector):
        return replace(state, mode_after="choose")
    return replace(state, mode="choose")


def inner_updater(update: Updater) -> Updater:
    def update_inner(action: Action) -> None:
        update(lambda state: update_block(state, action))

    return update_inner


class SelectorBlock(Block):
    tag = "selector"

    def __init__(self, library: BlockRegistry | None = None, evaluate: Evaluator = evaluate):
        self.library = library or BlockRegistry()
        self.evaluate = evaluate

    def initial(self, expr: str = "", inner_block: Block | None = None) -> SelectorState:
        return SelectorState(
            mode="run" if inner_block is not None else "choose",
            expr=expr,
            inner_block=inner_block,
            inner_state=inner_block.init if inner_block is not None else None,
        )

    def resolve(self, expr: str, env: Environment) -> Block | None:
        """The block `expr` names, or None when it evaluates to anything else."""
        value = self.evaluate(expr, self.library.as_environment().extend(as_environment(env)))
        return value if is_block(value) else None

    def choose_block(self, expr: str, state: AnySelectorState, env: Environment) -> AnySelectorState:
        """Run the block `expr` names, from its initial state. Unchanged if it names none."""
        block = self.resolve(expr, env)
        if block is None:
            return state
        return SelectorState(mode="run", expr=expr, inner_block=block, inner_state=block.init)

    # -- block --

    @property
    def init(self) -> SelectorState:
        return self.initial()

    def recompute(self, state: AnySelectorState, update: Updater, env: Environment) -> AnySelectorState:
        block = self.resolve(state.expr, env)
        if block is None:
            return state

        if isinstance(state, PendingSelector):
            try:
                inner_state = self._load_inner(block, state.json_to_load, update, env)
            except ValidationError as e:
                # keep the stored JSON until another block is picked
                logger.warning("Selector %r resolved but its saved state does not load: %s", state.expr, e)
                return state
            logger.info("Selector %r resolved, loaded its pending state", state.expr)
            return SelectorState(mode=state.mode_after, expr=state.expr, inner_block=block, inner_state=inner_state)

        if state.inner_block is None:
            # nothing picked yet: choosing is an explicit step
            return state

        inner_state = state.inner_state
        if block is not state.inner_block:
            inner_state = self._migrate(state, block, update, env)
        return replace(
            state,
            inner_block=block,
            inner_state=block.recompute(inner_state, inner_updater(update), env),
        )

    def _load_inner(self, block: Block, json: Any, update: Updater, env: Environment) -> Any:
        if json is None:
            return block.init
        return block.from_json(json, inner_updater(update), env)

    def _migrate(self, state: SelectorState, block: Block, update: Updater, env: Environment) -> Any:
        """Carry the running state over to the block the expression now names."""
        try:
            return self._load_inner(block, state.inner_block.to_json(state.inner_state), update, env)
        except ValidationError as e:
            logger.warning("Selector %r now names another block that cannot load its state: %s", state.expr, e)
            return block.init

    def get_result(self, state: AnySelectorState) -> Any:
        if isinstance(state, PendingSelector) or state.inner_block is None:
            return None
        return state.inner_block.get_result(state.inner_state)

    def to_json(self, state: AnySelectorState) -> dict[str, Any]:
        if isinstance(state, PendingSelector):
            return {"mode": state.mode_after, "expr": state.expr, "inner": state.json_to_load}
        inner = state.inner_block.to_json(state.inner_state) if state.inner_block is not None else None
        return {"mode": state.mode, "expr": state.expr, "inner": inner}

    def from_json(self, json: Any, update: Updater, env: Environment) -> AnySelectorState:
        parsed = validate(SelectorJSON, json)

        block = self.resolve(parsed.expr, env)
        if block is None:
            return PendingSelector(expr=parsed.expr, mode_after=parsed.mode, json_to_load=parsed.inner)

        try:
            inner_state = self._load_inner(block, parsed.inner, update, env)
        except ValidationError as e:
            raise e.within("inner") from e
        return SelectorState(mode=parsed.mode, expr=parsed.expr, inner_block=block, inner_state=inner_state)
