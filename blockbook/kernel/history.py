"""
Blockbook Kernel — History Log

Every committed state is appended to a log. The log is compacted after each
commit so a long session keeps dense snapshots of the last few moments and
ever sparser ones further back.

Modes:

  current             editing the newest state
  history(position)   looking at log[position]; the log is left alone

  current  --commit-->   current       append + compact
  current  --open-->     history       position = len - 2 (only if len > 1)
  history  --move(d)-->  history       position clamped into the log
  history  --close-->    current       nothing else changes
  history  --restore-->  current       viewed entry appended as the newest
  history  --commit-->   current       edit applied to the viewed state

Navigation only moves `position`, so redo is always available: the future
is never cut off, restoring just adds a new tail.

Pure functions. The clock is a parameter (`now`, epoch ms) so tests and
replays are deterministic.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any, Callable

from blockbook.config import settings
from blockbook.kernel.environment import Environment
from blockbook.kernel.schemas import HistoryWrapperJSON, ValidationError, validate
from blockbook.kernel.types import (
    CURRENT,
    Action,
    HistoryEntry,
    HistoryMode,
    HistoryWrapper,
    Updater,
    clamp,
    now_ms,
)

FromJSON = Callable[[Any, Environment], Any]
ToJSON = Callable[[Any], Any]


# ---------------------------------------------------------------------------
# Construction and reading
# ---------------------------------------------------------------------------


def init_history(state: Any, now: int | None = None) -> HistoryWrapper:
    time = now_ms() if now is None else now
    return HistoryWrapper(
        mode=CURRENT,
        log=(HistoryEntry(time=time, state=state),),
        current=state,
    )


def get_history_state(entry: HistoryEntry, env: Environment, from_json: FromJSON) -> Any:
    """The block state of a log entry, loading it if it was persisted."""
    if entry.is_json:
        return from_json(entry.state, env)
    return entry.state


def get_viewed_state(wrapper: HistoryWrapper, env: Environment, from_json: FromJSON) -> Any:
    """The state on screen: the current one, or the log entry being looked at."""
    if wrapper.mode.type == "current":
        return wrapper.current
    if not 0 <= wrapper.mode.position < len(wrapper.log):
        return wrapper.current
    return get_history_state(wrapper.log[wrapper.mode.position], env, from_json)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def commit(
    wrapper: HistoryWrapper,
    action: Action,
    env: Environment,
    from_json: FromJSON,
    now: int | None = None,
    decay: float | None = None,
) -> HistoryWrapper:
    """
    Apply an edit and record the result.

    While looking at the past, the edit applies to the viewed state, which
    then becomes current.
    """
    time = now_ms() if now is None else now

    if wrapper.mode.type == "current":
        base_time = wrapper.log[-1].time if wrapper.log else None
        new_state = action(wrapper.current)
    else:
        position = wrapper.mode.position
        if not 0 <= position < len(wrapper.log):
            return wrapper
        viewed = wrapper.log[position]
        base_time = viewed.time
        new_state = action(get_history_state(viewed, env, from_json))

    entry = HistoryEntry(time=time, state=new_state, prev=base_time)
    return HistoryWrapper(
        mode=CURRENT,
        log=compact((*wrapper.log, entry), now=time, decay=decay),
        current=new_state,
    )


def history_updater(update: Updater, env: Environment, from_json: FromJSON) -> Updater:
    """Update sink for the wrapped block: every change it makes is committed."""

    def update_inner(action: Action) -> None:
        update(lambda wrapper: commit(wrapper, action, env, from_json))

    return update_inner


def open_history(wrapper: HistoryWrapper) -> HistoryWrapper:
    if len(wrapper.log) <= 1:
        return wrapper
    return replace(wrapper, mode=HistoryMode(type="history", position=len(wrapper.log) - 2))


def close_history(wrapper: HistoryWrapper) -> HistoryWrapper:
    return replace(wrapper, mode=CURRENT)


def move_in_history(delta: int, wrapper: HistoryWrapper) -> HistoryWrapper:
    if wrapper.mode.type != "history":
        return wrapper
    position = clamp(0, len(wrapper.log), wrapper.mode.position + delta)
    return replace(wrapper, mode=HistoryMode(type="history", position=position))


def restore_from_history(
    wrapper: HistoryWrapper,
    env: Environment,
    from_json: FromJSON,
    now: int | None = None,
) -> HistoryWrapper:
    """Make the viewed entry the newest one. Later entries stay in the log."""
    if wrapper.mode.type != "history":
        return wrapper
    position = wrapper.mode.position
    if not 0 <= position < len(wrapper.log):
        return wrapper

    viewed = wrapper.log[position]
    restored = replace(viewed, time=now_ms() if now is None else now, prev=viewed.time)
    return HistoryWrapper(
        mode=CURRENT,
        log=(*wrapper.log, restored),
        current=get_history_state(restored, env, from_json),
    )


# ---------------------------------------------------------------------------
# Compaction
# ---------------------------------------------------------------------------


def compact(
    log: tuple[HistoryEntry, ...] | list[HistoryEntry],
    now: int | None = None,
    decay: float | None = None,
) -> tuple[HistoryEntry, ...]:
    """
    Thin out the log so the gap kept before an entry grows with its age.

    Walking from the newest entry back, the ideal next snapshot lies
    age / decay before the one just kept. The entry closest to that point
    (from either side) is kept and everything in between is dropped. The
    newest and oldest entries always survive, and running it again with the
    same `now` keeps the same entries.
    """
    if len(log) <= 1:
        return tuple(log)
    now = now_ms() if now is None else now
    decay = settings.HISTORY_DECAY if decay is None else decay

    remaining = list(reversed(log))
    cursor = remaining.pop(0)
    kept = [cursor]

    while remaining:
        target = cursor.time - (now - cursor.time) / decay

        # oldest entry still newer than the target
        newer = [index for index, entry in enumerate(remaining) if entry.time > target]
        above = newer[-1] if newer else None
        above_distance = remaining[above].time - target if above is not None else math.inf

        # newest entry at or before the target, else the oldest of all
        below = next(
            (index for index, entry in enumerate(remaining) if entry.time <= target),
            len(remaining) - 1,
        )
        below_distance = target - remaining[below].time

        chosen = above if above_distance < below_distance else below
        cursor = remaining[chosen]
        kept.append(cursor)
        del remaining[: chosen + 1]

    kept.reverse()
    return tuple(kept)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def history_to_json(wrapper: HistoryWrapper, to_json: ToJSON) -> dict[str, Any]:
    entries: list[dict[str, Any]] = []
    for entry in wrapper.log:
        d: dict[str, Any] = {
            "time": entry.time,
            "state": entry.state if entry.is_json else to_json(entry.state),
        }
        if entry.prev is not None:
            d["prev"] = entry.prev
        entries.append(d)
    return {"history": entries, "inner": to_json(wrapper.current)}


def history_from_json(json: Any, env: Environment, from_json: FromJSON) -> HistoryWrapper:
    """
    Load a wrapper. Past entries stay as JSON until looked at; only the
    current state is loaded right away.
    """
    parsed = validate(HistoryWrapperJSON, json)
    try:
        current = from_json(parsed.inner, env)
    except ValidationError as e:
        raise e.within("inner") from e

    return HistoryWrapper(
        mode=CURRENT,
        log=tuple(
            HistoryEntry(time=entry.time, state=entry.state, prev=entry.prev, is_json=True)
            for entry in parsed.history
        ),
        current=current,
    )
