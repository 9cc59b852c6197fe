"""
History block — wraps any block with an undo/redo log.

Edits go through `commit`, which records them. While the user looks at a
past entry the wrapped block still computes from `current`; the viewed
state is only for display until it is restored or edited.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from blockbook.kernel import history
from blockbook.kernel.block import Block, ignore_update
from blockbook.kernel.environment import Environment
from blockbook.kernel.types import Action, HistoryWrapper, Updater


class HistoryBlock(Block):
    tag = "history"

    def __init__(self, inner: Block):
        self.inner = inner

    def load_inner(self, json: Any, env: Environment) -> Any:
        """Load a past state. Past states are read-only, so their updates go nowhere."""
        return self.inner.from_json(json, ignore_update, env)

    # -- transitions --

    def commit(
        self,
        state: HistoryWrapper,
        action: Action,
        env: Environment,
        now: int | None = None,
    ) -> HistoryWrapper:
        return history.commit(state, action, env, self.load_inner, now=now)

    def open(self, state: HistoryWrapper) -> HistoryWrapper:
        return history.open_history(state)

    def close(self, state: HistoryWrapper) -> HistoryWrapper:
        return history.close_history(state)

    def go_back(self, state: HistoryWrapper) -> HistoryWrapper:
        return history.move_in_history(-1, state)

    def go_forward(self, state: HistoryWrapper) -> HistoryWrapper:
        return history.move_in_history(1, state)

    def restore(self, state: HistoryWrapper, env: Environment, now: int | None = None) -> HistoryWrapper:
        return history.restore_from_history(state, env, self.load_inner, now=now)

    def undo(self, state: HistoryWrapper) -> HistoryWrapper:
        """Step back: open the log on the first undo, go further back after that."""
        if state.mode.type == "history":
            return self.go_back(state)
        return self.open(state)

    def get_viewed_state(self, state: HistoryWrapper, env: Environment) -> Any:
        return history.get_viewed_state(state, env, self.load_inner)

    # -- block --

    @property
    def init(self) -> HistoryWrapper:
        return history.init_history(self.inner.init)

    def recompute(self, state: HistoryWrapper, update: Updater, env: Environment) -> HistoryWrapper:
        update_inner = history.history_updater(update, env, self.load_inner)
        return replace(state, current=self.inner.recompute(state.current, update_inner, env))

    def get_result(self, state: HistoryWrapper) -> Any:
        return self.inner.get_result(state.current)

    def to_json(self, state: HistoryWrapper) -> dict[str, Any]:
        return history.history_to_json(state, self.inner.to_json)

    def from_json(self, json: Any, update: Updater, env: Environment) -> HistoryWrapper:
        update_inner = history.history_updater(update or ignore_update, env, self.load_inner)
        return history.history_from_json(
            json,
            env,
            lambda inner_json, inner_env: self.inner.from_json(inner_json, update_inner, inner_env),
        )
