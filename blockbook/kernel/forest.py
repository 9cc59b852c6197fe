"""
Blockbook Kernel — Named-Entry Forest

Ordered lists (sheet lines) and trees (document pages) of named entries,
and the incremental recomputation that keeps them consistent.

Visibility is top-to-bottom, outer-to-inner: an entry sees the enclosing
environment, then every sibling before it, then its own children. So when
something changes, only entries at or after it in document order can be
affected. `recompute_from` re-runs exactly that suffix and hands back the
untouched prefix as the very same objects.

Anchors (where recomputation resumes):

  None              everything
  ()                nothing at this level (the change is deeper)
  (id,)             the entry `id` already holds its new state → start after it
  (id, *rest)       start at `id`; its children resume from `rest`
  At(index, parent) start at a position in the list under `parent`

Every structural edit returns `(path, entries)`: the path of the entry the
edit was about (it may have moved or been given a new id) and the new list.

Pure functions. No IO. A path that does not resolve is logged and the
input is returned unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any, Callable, Union

from blockbook.kernel.block import Block, ignore_update
from blockbook.kernel.environment import Environment, as_environment
from blockbook.kernel.types import Action, At, Entry, Path, Updater, clamp

logger = logging.getLogger(__name__)

Anchor = Union[None, Path, At]
Entries = tuple[Entry, ...]


# ---------------------------------------------------------------------------
# Names and ids
# ---------------------------------------------------------------------------


def default_name(entry: Entry) -> str:
    """Placeholder name for an entry the user has not named."""
    return f"_{entry.id}"


def get_name(entry: Entry) -> str:
    """The name an entry is bound to in its siblings' environment."""
    return entry.name.strip() or default_name(entry)


def next_free_id(siblings: Sequence[Entry]) -> int:
    return max((entry.id for entry in siblings), default=-1) + 1


def index_of(siblings: Sequence[Entry], entry_id: int) -> int:
    for index, entry in enumerate(siblings):
        if entry.id == entry_id:
            return index
    return -1


# ---------------------------------------------------------------------------
# Environments
# ---------------------------------------------------------------------------


def entry_to_env(entry: Entry, block: Block) -> dict[str, Any]:
    return {get_name(entry): block.get_result(entry.state)}


def get_siblings_env(siblings: Sequence[Entry], env: Environment, block: Block) -> Environment:
    """`env` extended with the bindings of `siblings`, later ones shadowing earlier ones."""
    return as_environment(env).extend(*(entry_to_env(sibling, block) for sibling in siblings))


def get_env_at(path: Path, entries: Entries, env: Environment, block: Block) -> Environment | None:
    """
    The environment the entry at `path` is recomputed with: everything before
    it on every level down the path, plus its own children.
    """
    if not path:
        return None
    local_env = as_environment(env)
    siblings = entries
    entry = None
    for entry_id in path:
        index = index_of(siblings, entry_id)
        if index < 0:
            return None
        local_env = get_siblings_env(siblings[:index], local_env, block)
        entry = siblings[index]
        siblings = entry.children
    return get_siblings_env(entry.children, local_env, block)


def get_last_result(entries: Sequence[Entry], block: Block) -> Any:
    if not entries:
        return None
    return block.get_result(entries[-1].state)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def get_entry_at(path: Path, entries: Entries) -> Entry | None:
    if not path:
        return None
    index = index_of(entries, path[0])
    if index < 0:
        return None
    if len(path) == 1:
        return entries[index]
    return get_entry_at(path[1:], entries[index].children)


def get_siblings_at(parent_path: Path, entries: Entries) -> Entries | None:
    """The sibling list below `parent_path` (the top level for an empty path)."""
    if not parent_path:
        return entries
    parent = get_entry_at(parent_path, entries)
    if parent is None:
        return None
    return parent.children


def get_siblings_of(path: Path, entries: Entries) -> tuple[Entries, Entries]:
    """Siblings before and after the entry at `path`."""
    siblings = get_siblings_at(path[:-1], entries) or ()
    index = index_of(siblings, path[-1]) if path else -1
    if index < 0:
        return siblings, ()
    return siblings[:index], siblings[index + 1 :]


def get_all_paths(entries: Entries, prefix: Path = ()) -> list[Path]:
    paths: list[Path] = []
    for entry in entries:
        here = (*prefix, entry.id)
        paths.append(here)
        paths.extend(get_all_paths(entry.children, here))
    return paths


def get_expanded_paths(entries: Entries, open_path: Path = (), prefix: Path = ()) -> list[Path]:
    """
    Paths of every entry a sidebar would list: collapsed entries hide their
    children unless the open entry lies below them.
    """
    paths: list[Path] = []
    for entry in entries:
        here = (*prefix, entry.id)
        child_open_path = open_path[1:] if open_path[:1] == (entry.id,) else ()
        paths.append(here)
        if not entry.is_collapsed or child_open_path:
            paths.extend(get_expanded_paths(entry.children, child_open_path, here))
    return paths


# ---------------------------------------------------------------------------
# Path-addressed updates
# ---------------------------------------------------------------------------


def apply(entries: Entries, path: Path, transform: Callable[[Entry], Entry]) -> Entries:
    """Replace the entry at `path` with `transform(entry)`; everything else is shared."""
    if not path:
        return entries
    index = index_of(entries, path[0])
    if index < 0:
        logger.warning("No entry at path %r", path)
        return entries
    entry = entries[index]
    if len(path) == 1:
        new_entry = transform(entry)
    else:
        children = apply(entry.children, path[1:], transform)
        if children is entry.children:
            return entries
        new_entry = replace(entry, children=children)
    return (*entries[:index], new_entry, *entries[index + 1 :])


def update_siblings_at(
    parent_path: Path,
    entries: Entries,
    transform: Callable[[Entries], Entries],
) -> Entries:
    """Replace the sibling list below `parent_path` with `transform(siblings)`."""
    if not parent_path:
        return tuple(transform(entries))
    return apply(entries, parent_path, lambda parent: replace(parent, children=tuple(transform(parent.children))))


def path_updater(update: Updater, path: Path, env: Environment, block: Block) -> Updater:
    """
    The update sink handed to the block of the entry at `path`.

    It forwards a single transform of the whole entry list to `update`:
    apply `action` to the entry's state, then recompute from there.
    """

    def update_at(action: Action) -> None:
        update(lambda entries: update_entry_state(path, entries, action, env, block, update))

    return update_at


def update_entry_state(
    path: Path,
    entries: Entries,
    action: Action,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> Entries:
    """
    Apply `action` to the state at `path`, then recompute that entry and
    everything that can see it.

    Actions come from collaborators that do not know the entry's environment,
    so the entry itself is recomputed too rather than trusted as final.
    """
    changed = apply(entries, path, lambda entry: replace(entry, state=action(entry.state)))
    if changed is entries:
        return entries
    siblings = get_siblings_at(path[:-1], changed) or ()
    return recompute_from(At(index_of(siblings, path[-1]), path[:-1]), changed, env, block, update)


# ---------------------------------------------------------------------------
# Incremental recomputation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Context:
    block: Block
    update: Updater
    root_env: Environment


def recompute_from(
    anchor: Anchor,
    entries: Sequence[Entry],
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> Entries:
    """
    Recompute every entry at or after `anchor` in document order.
    Entries before it are returned unchanged (the same objects).
    """
    env = as_environment(env)
    context = _Context(block=block, update=update or ignore_update, root_env=env)
    return _recompute(anchor, tuple(entries), env, context, ())


def recompute_all(entries: Sequence[Entry], env: Environment, block: Block, update: Updater | None = None) -> Entries:
    return recompute_from(None, entries, env, block, update)


def _recompute(anchor: Anchor, entries: Entries, env: Environment, context: _Context, prefix: Path) -> Entries:
    start, first_child_anchor = _locate(anchor, entries, prefix)
    if start is None or start >= len(entries):
        return entries

    local_env = get_siblings_env(entries[:start], env, context.block)
    recomputed = list(entries[:start])

    for offset, entry in enumerate(entries[start:]):
        here = (*prefix, entry.id)
        child_anchor = first_child_anchor if offset == 0 else None

        children = entry.children
        if children:
            children = _recompute(child_anchor, children, local_env, context, here)

        child_env = get_siblings_env(children, local_env, context.block)
        update_here = path_updater(context.update, here, context.root_env, context.block)
        state = context.block.recompute(entry.state, update_here, child_env)

        new_entry = replace(entry, children=children, state=state)
        recomputed.append(new_entry)
        local_env = local_env.extend(entry_to_env(new_entry, context.block))

    return tuple(recomputed)


def _locate(anchor: Anchor, entries: Entries, prefix: Path) -> tuple[int | None, Anchor]:
    """Index to resume at in `entries`, and the anchor for that entry's children."""
    if anchor is None:
        return 0, None

    if isinstance(anchor, At):
        if not anchor.parent:
            return max(0, anchor.index), None
        index = index_of(entries, anchor.parent[0])
        if index < 0:
            logger.warning("Recompute anchor %r: no entry %r below %r", anchor, anchor.parent[0], prefix)
            return None, None
        return index, At(anchor.index, anchor.parent[1:])

    if len(anchor) == 0:
        # the change happened inside the entry owning this list
        return None, None

    index = index_of(entries, anchor[0])
    if index < 0:
        logger.warning("Recompute anchor %r: no entry %r below %r", anchor, anchor[0], prefix)
        return None, None
    if len(anchor) == 1:
        return index + 1, None
    return index, tuple(anchor[1:])


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


def _locate_sibling(entries: Entries, path: Path) -> tuple[Entries, int] | None:
    if not path:
        return None
    siblings = get_siblings_at(path[:-1], entries)
    if siblings is None:
        logger.warning("No sibling list at %r", path[:-1])
        return None
    index = index_of(siblings, path[-1])
    if index < 0:
        logger.warning("No entry at path %r", path)
        return None
    return siblings, index


def insert_before(
    entries: Entries,
    path: Path,
    new_entry: Entry,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """
    Insert `new_entry` before the entry at `path`, under a fresh sibling id.
    Recomputation starts at the new entry, which also covers the one it precedes.
    """
    found = _locate_sibling(entries, path)
    if found is None:
        return path, entries
    siblings, index = found
    parent = path[:-1]

    inserted = replace(new_entry, id=next_free_id(siblings))
    changed = update_siblings_at(parent, entries, lambda sibs: (*sibs[:index], inserted, *sibs[index:]))
    return (*parent, inserted.id), recompute_from(At(index, parent), changed, env, block, update)


def insert_after(
    entries: Entries,
    path: Path,
    new_entry: Entry,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """Insert `new_entry` after the entry at `path`; recompute from the new entry on."""
    found = _locate_sibling(entries, path)
    if found is None:
        return path, entries
    siblings, index = found
    parent = path[:-1]

    inserted = replace(new_entry, id=next_free_id(siblings))
    changed = update_siblings_at(parent, entries, lambda sibs: (*sibs[: index + 1], inserted, *sibs[index + 1 :]))
    return (*parent, inserted.id), recompute_from(At(index + 1, parent), changed, env, block, update)


def insert_child(
    entries: Entries,
    parent_path: Path,
    new_entry: Entry,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """Append `new_entry` as the last child of `parent_path` (top level for an empty path)."""
    siblings = get_siblings_at(parent_path, entries)
    if siblings is None:
        logger.warning("No entry at path %r", parent_path)
        return parent_path, entries

    inserted = replace(new_entry, id=next_free_id(siblings))
    changed = update_siblings_at(parent_path, entries, lambda sibs: (*sibs, inserted))
    return (*parent_path, inserted.id), recompute_from(At(len(siblings), parent_path), changed, env, block, update)


def delete(
    entries: Entries,
    path: Path,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """
    Remove the entry at `path` (with its subtree).

    Returns the path of the entry to select next: the previous sibling, else
    the first remaining sibling, else the parent.
    """
    found = _locate_sibling(entries, path)
    if found is None:
        return path, entries
    siblings, index = found
    parent = path[:-1]

    remaining = (*siblings[:index], *siblings[index + 1 :])
    changed = update_siblings_at(parent, entries, lambda _: remaining)

    if remaining:
        selected = (*parent, remaining[clamp(0, len(remaining), index - 1)].id)
    else:
        selected = parent
    return selected, recompute_from(At(index, parent), changed, env, block, update)


def move(
    delta: int,
    entries: Entries,
    path: Path,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """
    Move the entry at `path` by `delta` places among its siblings.

    Recomputation starts at whichever of the old and new positions comes
    first: every entry from there up to the other position gained or lost a
    preceding binding, and everything after follows.
    """
    found = _locate_sibling(entries, path)
    if found is None:
        return path, entries
    siblings, index = found
    parent = path[:-1]

    new_index = clamp(0, len(siblings), index + delta)
    if new_index == index:
        return path, entries

    entry = siblings[index]
    without = (*siblings[:index], *siblings[index + 1 :])
    changed = update_siblings_at(parent, entries, lambda _: (*without[:new_index], entry, *without[new_index:]))
    return path, recompute_from(At(min(index, new_index), parent), changed, env, block, update)


def nest(
    entries: Entries,
    path: Path,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """Make the entry at `path` the last child of its previous sibling."""
    found = _locate_sibling(entries, path)
    if found is None:
        return path, entries
    siblings, index = found
    if index == 0:
        return path, entries
    parent = path[:-1]

    new_parent = siblings[index - 1]
    moved = replace(siblings[index], id=next_free_id(new_parent.children))
    adopted = replace(new_parent, children=(*new_parent.children, moved))
    changed = update_siblings_at(
        parent,
        entries,
        lambda sibs: (*sibs[: index - 1], adopted, *sibs[index + 1 :]),
    )

    new_parent_path = (*parent, new_parent.id)
    anchor = At(len(new_parent.children), new_parent_path)
    return (*new_parent_path, moved.id), recompute_from(anchor, changed, env, block, update)


def unnest(
    entries: Entries,
    path: Path,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> tuple[Path, Entries]:
    """
    Move the entry at `path` out of its parent, right after it.

    Recomputation starts at the sibling that followed it; when it was the last
    child that is nothing at the child level, and the parent itself is next.
    """
    if len(path) < 2:
        return path, entries
    found = _locate_sibling(entries, path)
    if found is None:
        return path, entries
    siblings, index = found

    parent_path = path[:-1]
    grand_path = path[:-2]
    parent_id = parent_path[-1]
    grand_siblings = get_siblings_at(grand_path, entries) or ()
    parent_index = index_of(grand_siblings, parent_id)

    moved = replace(siblings[index], id=next_free_id(grand_siblings))
    parent = replace(grand_siblings[parent_index], children=(*siblings[:index], *siblings[index + 1 :]))
    changed = update_siblings_at(
        grand_path,
        entries,
        lambda sibs: (*sibs[:parent_index], parent, moved, *sibs[parent_index + 1 :]),
    )
    return (*grand_path, moved.id), recompute_from(At(index, parent_path), changed, env, block, update)


def rename(
    entries: Entries,
    path: Path,
    name: str,
    env: Environment,
    block: Block,
    update: Updater | None = None,
) -> Entries:
    """Change the name of the entry at `path`; everyone after it sees the new binding."""
    changed = apply(entries, path, lambda entry: replace(entry, name=name))
    if changed is entries:
        return entries
    return recompute_from(path, changed, env, block, update)


def toggle_collapsed(entries: Entries, path: Path) -> Entries:
    return apply(entries, path, lambda entry: replace(entry, is_collapsed=not entry.is_collapsed))
