"""
Blockbook History -- Transition Tests

The log as a state machine over plain integer states. `from_json` is the
identity, so lazily stored entries load as themselves.

Covers:
  - commit appends and records the previous time
  - open / move / close only change the mode
  - restore appends the viewed entry and never cuts off the future
  - committing while looking at the past edits the viewed state
  - undo → restore → undo lands back on the state that was current
"""

import pytest

from blockbook.kernel import history
from blockbook.kernel.environment import Environment
from blockbook.kernel.types import CURRENT, HistoryEntry, HistoryMode, HistoryWrapper

ENV = Environment()


# ============================================================================
# Helpers
# ============================================================================


def identity(json, env):
    return json


def increment(state):
    return state + 1


def make_log(count=5):
    """States 0..count, one per second starting at t=0."""
    wrapper = history.init_history(0, now=0)
    for i in range(1, count + 1):
        wrapper = history.commit(wrapper, increment, ENV, identity, now=i * 1000)
    return wrapper


def viewed(wrapper):
    return history.get_viewed_state(wrapper, ENV, identity)


@pytest.fixture
def wrapper():
    return make_log()


# ============================================================================
# Commit
# ============================================================================


class TestCommit:
    def test_init(self):
        wrapper = history.init_history("s", now=10)
        assert wrapper.mode == CURRENT
        assert wrapper.log == (HistoryEntry(time=10, state="s"),)
        assert wrapper.current == "s"

    def test_commit_appends(self, wrapper):
        assert [entry.state for entry in wrapper.log] == [0, 1, 2, 3, 4, 5]
        assert wrapper.current == 5
        assert wrapper.mode == CURRENT

    def test_commit_records_previous_time(self, wrapper):
        assert wrapper.log[0].prev is None
        assert [entry.prev for entry in wrapper.log[1:]] == [0, 1000, 2000, 3000, 4000]

    def test_commit_compacts(self):
        """A day-old log keeps only a few of its entries after the next commit."""
        wrapper = HistoryWrapper(
            mode=CURRENT,
            log=tuple(HistoryEntry(time=i * 1000, state=i) for i in range(600)),
            current=599,
        )
        wrapper = history.commit(wrapper, increment, ENV, identity, now=86_400_000)

        assert len(wrapper.log) < 600
        assert wrapper.log[-1].state == 600
        assert wrapper.log[0].state == 0


# ============================================================================
# Navigation
# ============================================================================


class TestNavigation:
    def test_open_shows_previous_entry(self, wrapper):
        opened = history.open_history(wrapper)

        assert opened.mode == HistoryMode(type="history", position=4)
        assert viewed(opened) == 4
        assert opened.log is wrapper.log
        assert opened.current == 5

    def test_open_single_entry_is_noop(self):
        wrapper = history.init_history(0, now=0)
        assert history.open_history(wrapper) is wrapper

    def test_move_clamps_into_log(self, wrapper):
        opened = history.open_history(wrapper)

        assert history.move_in_history(-1, opened).mode.position == 3
        assert history.move_in_history(-100, opened).mode.position == 0
        assert history.move_in_history(100, opened).mode.position == 5

    def test_move_in_current_mode_is_noop(self, wrapper):
        assert history.move_in_history(-1, wrapper) is wrapper

    def test_close_keeps_everything_else(self, wrapper):
        moved = history.move_in_history(-2, history.open_history(wrapper))
        closed = history.close_history(moved)

        assert closed.mode == CURRENT
        assert closed.log is wrapper.log
        assert viewed(closed) == 5

    def test_viewed_state_out_of_range_falls_back(self, wrapper):
        broken = HistoryWrapper(mode=HistoryMode(type="history", position=42), log=wrapper.log, current=5)
        assert viewed(broken) == 5


# ============================================================================
# Restore
# ============================================================================


class TestRestore:
    def test_restore_appends_viewed(self, wrapper):
        opened = history.move_in_history(-2, history.open_history(wrapper))
        restored = history.restore_from_history(opened, ENV, identity, now=9000)

        assert restored.mode == CURRENT
        assert restored.current == 2
        assert len(restored.log) == len(wrapper.log) + 1
        assert restored.log[:-1] == wrapper.log
        assert restored.log[-1] == HistoryEntry(time=9000, state=2, prev=2000)

    def test_restore_in_current_mode_is_noop(self, wrapper):
        assert history.restore_from_history(wrapper, ENV, identity) is wrapper

    @pytest.mark.parametrize("steps", [0, 1, 2, 3, 4, 10])
    def test_undo_restore_undo_returns_to_newest(self, wrapper, steps):
        """Whatever was restored, undoing it shows the state that was newest before."""
        newest = wrapper.current
        state = history.open_history(wrapper)
        for _ in range(steps):
            state = history.move_in_history(-1, state)
        state = history.restore_from_history(state, ENV, identity, now=60_000)

        reopened = history.open_history(state)
        assert viewed(reopened) == newest

    def test_redo_after_undo(self, wrapper):
        back = history.move_in_history(-3, history.open_history(wrapper))
        forward = history.move_in_history(3, back)
        assert viewed(forward) == 4
        assert viewed(history.move_in_history(1, forward)) == 5

    def test_restore_loads_stored_json(self):
        wrapper = HistoryWrapper(
            mode=HistoryMode(type="history", position=0),
            log=(
                HistoryEntry(time=0, state={"n": 1}, is_json=True),
                HistoryEntry(time=1000, state=2),
            ),
            current=2,
        )
        restored = history.restore_from_history(wrapper, ENV, lambda json, env: json["n"], now=2000)

        assert restored.current == 1
        assert restored.log[-1].is_json


# ============================================================================
# Editing the past
# ============================================================================


class TestCommitWhileViewing:
    def test_edit_applies_to_viewed_state(self, wrapper):
        opened = history.move_in_history(-1, history.open_history(wrapper))
        edited = history.commit(opened, lambda s: s * 100, ENV, identity, now=6000)

        assert edited.mode == CURRENT
        assert edited.current == 300
        assert edited.log[-1].prev == 3000
        assert edited.log[-1].state == 300

    def test_future_entries_survive_edit(self, wrapper):
        opened = history.open_history(wrapper)
        edited = history.commit(opened, increment, ENV, identity, now=6000)
        assert [entry.state for entry in edited.log] == [0, 1, 2, 3, 4, 5, 5]

    def test_edit_of_stored_entry_loads_it(self):
        wrapper = HistoryWrapper(
            mode=HistoryMode(type="history", position=0),
            log=(
                HistoryEntry(time=0, state={"n": 7}, is_json=True),
                HistoryEntry(time=1000, state=8),
            ),
            current=8,
        )
        edited = history.commit(wrapper, increment, ENV, lambda json, env: json["n"], now=2000)

        assert edited.current == 8
        assert edited.log[-1] == HistoryEntry(time=2000, state=8, prev=0)


# ============================================================================
# Update sink
# ============================================================================


class TestHistoryUpdater:
    def test_updates_become_commits(self, wrapper):
        box = [wrapper]

        def update(transform):
            box[0] = transform(box[0])

        sink = history.history_updater(update, ENV, identity)
        sink(increment)

        assert box[0].current == 6
        assert box[0].log[-1].state == 6
        assert box[0].log[-1].prev == 5000
