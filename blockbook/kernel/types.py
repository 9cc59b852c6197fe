"""
Blockbook Kernel — Shared Types

Data classes used across the forest, history, blocks and assembly.
These are the contracts that bind the kernel together.

All state objects are frozen. Every operation returns a new value and leaves
its input usable, so an older tree can still be shown from the history log
while a newer one is being edited. Unchanged subtrees are shared, not copied.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

# ---------------------------------------------------------------------------
# Aliases
# ---------------------------------------------------------------------------

EntryId = int
Path = tuple[int, ...]

# A transform handed to an update sink: state -> state
Action = Callable[[Any], Any]
Updater = Callable[[Action], None]

# Display modes for a sheet line, cycled in this order
VISIBILITY_STATES: tuple[str, ...] = ("block", "result", "hidden")


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class EvaluationError:
    """
    A user expression failed to compile or raised while running.

    Returned as a value, never raised: getters surface it to the user
    like any other result. Two errors are equal when the same expression
    failed the same way, so a reloaded document compares equal to the one
    that was saved.
    """

    exception: BaseException
    expression: str = ""

    @property
    def message(self) -> str:
        return f"{type(self.exception).__name__}: {self.exception}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EvaluationError):
            return NotImplemented
        return (
            type(self.exception) is type(other.exception)
            and self.exception.args == other.exception.args
            and self.expression == other.expression
        )

    def __hash__(self) -> int:
        return hash((type(self.exception), self.expression))

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Entry:
    """
    A named, identified block instance inside an ordered sibling list.

    `id` is unique among siblings only. `children` makes the list a forest;
    flat lists simply never have any.
    """

    id: EntryId
    name: str
    state: Any
    children: tuple[Entry, ...] = ()
    is_collapsed: bool = True


@dataclass(frozen=True)
class SheetLine(Entry):
    """A sheet line: an entry with a display mode."""

    visibility: str = VISIBILITY_STATES[0]


@dataclass(frozen=True)
class At:
    """
    Recompute anchor addressing a position rather than an id.

    Used when the entry that changed no longer exists at its old place
    (delete, move). `parent` locates the sibling list; ancestors on it are
    recomputed after their children.
    """

    index: int
    parent: Path = ()


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoryEntry:
    """
    One snapshot in the history log.

    When `is_json` is set, `state` holds the persisted JSON form and is only
    turned back into block state when someone looks at it.
    """

    time: int  # epoch milliseconds
    state: Any
    prev: int | None = None
    is_json: bool = False


@dataclass(frozen=True)
class HistoryMode:
    type: str = "current"  # "current" or "history"
    position: int = 0


CURRENT = HistoryMode()


@dataclass(frozen=True)
class HistoryWrapper:
    mode: HistoryMode
    log: tuple[HistoryEntry, ...]
    current: Any


# ---------------------------------------------------------------------------
# Block states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandState:
    expr: str = ""
    result: Any = None


@dataclass(frozen=True)
class SheetState:
    lines: tuple[SheetLine, ...] = ()


@dataclass(frozen=True)
class SelectorState:
    """A selector that has (mode "run") or may have (mode "choose") an inner block."""

    mode: str
    expr: str = ""
    inner_block: Any = None
    inner_state: Any = None


@dataclass(frozen=True)
class PendingSelector:
    """
    A selector loaded before its block could be resolved.

    Holds the inner JSON until a later recompute resolves `expr` to a block,
    then becomes a SelectorState in `mode_after`.
    """

    expr: str
    mode_after: str
    json_to_load: Any = None

    mode = "loading"


@dataclass(frozen=True)
class DocumentState:
    """
    Pages plus the path of the page being looked at.

    `template` is the page new pages are cloned from.
    """

    pages: tuple[Entry, ...]
    template: Entry
    open_page: Path = ()
    name: str = "Untitled"


@dataclass
class SessionError:
    """Something a host update could not complete."""

    message: str
    exception: BaseException | None = None
    details: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def clamp(lower: int, upper: int, value: int) -> int:
    """Clamp value into the index range [lower, upper)."""
    return max(lower, min(upper - 1, value))
