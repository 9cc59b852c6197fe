"""
Blockbook Kernel — Environment

An immutable name → value mapping. Blocks see each other's results through
it. Environments are never changed in place; `extend` composes a new one
where later bindings shadow earlier ones.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any


class Environment(Mapping[str, Any]):
    __slots__ = ("_bindings",)

    def __init__(self, bindings: Mapping[str, Any] | None = None):
        self._bindings: dict[str, Any] = dict(bindings or {})

    def __getitem__(self, name: str) -> Any:
        return self._bindings[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"Environment({self._bindings!r})"

    def extend(self, *bindings: Mapping[str, Any]) -> Environment:
        """Return a new environment with `bindings` layered on top, in order."""
        merged = dict(self._bindings)
        for layer in bindings:
            merged.update(layer)
        return Environment(merged)

    def __or__(self, other: Mapping[str, Any]) -> Environment:
        return self.extend(other)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._bindings)


EMPTY = Environment()


def as_environment(env: Mapping[str, Any] | None) -> Environment:
    if isinstance(env, Environment):
        return env
    if not env:
        return EMPTY
    return Environment(env)
