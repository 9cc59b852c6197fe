"""
Blockbook Kernel — Session

The host side of the update contract. A session owns the one state value
of a top-level block and is the `update` sink handed to every block.

Transforms are applied one at a time, in the order they were issued. A
transform issued while another one is being applied is queued behind it,
never nested. A transform that raises leaves the state as it was; the
error is logged and kept in `last_error` for the host to show.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from typing import Any

from blockbook.kernel.block import Block
from blockbook.kernel.environment import as_environment
from blockbook.kernel.schemas import ValidationError
from blockbook.kernel.types import Action, SessionError

logger = logging.getLogger(__name__)


class Session:
    def __init__(self, block: Block, env: Mapping[str, Any] | None = None, state: Any = None):
        self.block = block
        self.env = as_environment(env)
        self.state = block.init if state is None else state
        self.last_error: SessionError | None = None
        self._queue: deque[Action] = deque()
        self._applying = False

    # -- update sink --

    def update(self, transform: Action) -> None:
        self._queue.append(transform)
        if self._applying:
            return

        self._applying = True
        try:
            while self._queue:
                self._apply(self._queue.popleft())
        finally:
            self._applying = False

    def _apply(self, transform: Action) -> None:
        try:
            self.state = transform(self.state)
        except Exception as e:
            logger.exception("Update could not be completed")
            self.last_error = SessionError(message=f"Last action could not be completed: {e}", exception=e)

    def dismiss_error(self) -> None:
        self.last_error = None

    # -- block --

    def recompute(self) -> None:
        self.update(lambda state: self.block.recompute(state, self.update, self.env))

    @property
    def result(self) -> Any:
        return self.block.get_result(self.state)

    def to_json(self) -> Any:
        return self.block.to_json(self.state)

    def load_json(self, json: Any) -> bool:
        """
        Replace the state with one loaded from JSON.
        On a malformed document the current state is kept and False returned.
        """
        try:
            state = self.block.from_json(json, self.update, self.env)
        except ValidationError as e:
            logger.warning("Could not load state: %s", e)
            self.last_error = SessionError(message=f"Could not load: {e}", exception=e, details={"path": e.location})
            return False
        self.update(lambda _: state)
        return True
