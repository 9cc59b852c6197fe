"""
Blockbook Kernel — Block Contract

Every kind of block (command, sheet, selector, document, history) implements
the same five capabilities:

  init                                   default inner state
  recompute(state, update, env) → state  re-derive state for a new env
  get_result(state) → value              what siblings see under its name
  to_json(state) → json
  from_json(json, update, env) → state   may raise ValidationError

`update` is the sink for changes the block starts on its own later
(e.g. after an async load). It is never called during recompute.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from blockbook.kernel.environment import Environment
from blockbook.kernel.types import Action, Updater


class Block:
    """
    Abstract block interface.
    Subclasses provide the state shape and the five capabilities.
    """

    tag: str = ""

    @property
    def init(self) -> Any:
        raise NotImplementedError

    def recompute(self, state: Any, update: Updater, env: Environment) -> Any:
        raise NotImplementedError

    def get_result(self, state: Any) -> Any:
        raise NotImplementedError

    def to_json(self, state: Any) -> Any:
        raise NotImplementedError

    def from_json(self, json: Any, update: Updater, env: Environment) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} block>"


def is_block(value: Any) -> bool:
    return isinstance(value, Block)


def ignore_update(action: Any) -> None:
    """Update sink for states nobody may change (e.g. history views)."""


def field_updater(update: Updater, field: str) -> Updater:
    """Update sink for one field of a dataclass state, forwarding to `update`."""

    def update_field(action: Action) -> None:
        update(lambda state: replace(state, **{field: action(getattr(state, field))}))

    return update_field


class BlockRegistry:
    """
    Named block values available to selector expressions.

    The registry is merged under the user environment when a selector
    evaluates its expression, so `Sheet` or `Command` resolve to blocks.
    """

    def __init__(self, blocks: Mapping[str, Block] | None = None):
        self._blocks: dict[str, Block] = {}
        for name, block in (blocks or {}).items():
            self.register(name, block)

    def register(self, name: str, block: Block) -> None:
        if not is_block(block):
            raise TypeError(f"{name!r} is not a block: {block!r}")
        self._blocks[name] = block

    def get(self, name: str) -> Block | None:
        return self._blocks.get(name)

    def names(self) -> list[str]:
        return list(self._blocks)

    def as_environment(self) -> Environment:
        return Environment(self._blocks)

    def __contains__(self, name: object) -> bool:
        return name in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)
