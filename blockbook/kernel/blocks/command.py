"""
Command block — a single expression whose value is its result.

The result is derived, never persisted: it is re-evaluated on every
recompute, so loading a command gives the same value once its environment
is recomputed.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from blockbook.kernel.block import Block
from blockbook.kernel.environment import Environment
from blockbook.kernel.evaluator import Evaluator, evaluate
from blockbook.kernel.schemas import CommandJSON, validate
from blockbook.kernel.types import CommandState, Updater


def set_expr(state: CommandState, expr: str) -> CommandState:
    return replace(state, expr=expr)


class CommandBlock(Block):
    tag = "command"

    def __init__(self, evaluate: Evaluator = evaluate):
        self.evaluate = evaluate

    @property
    def init(self) -> CommandState:
        return CommandState()

    def recompute(self, state: CommandState, update: Updater, env: Environment) -> CommandState:
        return replace(state, result=self.evaluate(state.expr, env))

    def get_result(self, state: CommandState) -> Any:
        return state.result

    def to_json(self, state: CommandState) -> dict[str, Any]:
        return {"expr": state.expr}

    def from_json(self, json: Any, update: Updater, env: Environment) -> CommandState:
        parsed = validate(CommandJSON, json)
        return self.recompute(CommandState(expr=parsed.expr), update, env)
