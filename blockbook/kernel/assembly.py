"""
Blockbook Kernel — Assembly Layer

Sits between the pure kernel (blocks, forest, history) and storage.
Coordinates turning a top-level state into stored text and back.

Operations: load, save, delete, dumps, loads

This is where IO happens. Everything it calls into is pure.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from blockbook.config import settings
from blockbook.kernel.block import Block, ignore_update
from blockbook.kernel.environment import as_environment
from blockbook.kernel.schemas import ValidationError
from blockbook.kernel.types import Updater, now_ms

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParseError(Exception):
    """Stored text exists but is not JSON."""

    pass


# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class DocumentStorage:
    """
    Abstract key-value storage for serialized documents.
    Implement with whatever the host persists to; in-memory for tests.
    """

    async def get(self, key: str) -> str | None:
        """Fetch stored text. Returns None if not found."""
        raise NotImplementedError

    async def put(self, key: str, text: str) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def keys(self) -> list[str]:
        raise NotImplementedError


class MemoryStorage(DocumentStorage):
    """In-memory storage for testing."""

    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.items.get(key)

    async def put(self, key: str, text: str) -> None:
        self.items[key] = text

    async def delete(self, key: str) -> None:
        self.items.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self.items)


class DirectoryStorage(DocumentStorage):
    """One `<key>.json` file per key in a directory."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root if root is not None else settings.STORAGE_DIR)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    # -- blocking parts, run in a worker thread --

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    @staticmethod
    def _write(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)

    def _list(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(path.stem for path in self.root.glob("*.json"))

    # -- storage --

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, self._path(key))

    async def put(self, key: str, text: str) -> None:
        await asyncio.to_thread(self._write, self._path(key), text)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._list)


# ---------------------------------------------------------------------------
# Assembly class
# ---------------------------------------------------------------------------


class DocumentAssembly:
    """
    Loads and saves the state of one top-level block.
    Coordinates the block's JSON round-trip with storage.
    """

    def __init__(self, storage: DocumentStorage, block: Block, env: Mapping[str, Any] | None = None):
        self._storage = storage
        self.block = block
        self.env = as_environment(env)
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_lock(self, key: str) -> asyncio.Lock:
        """Per-key lock so a save never interleaves with a load of the same key."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def fresh(self, update: Updater | None = None) -> Any:
        return self.block.recompute(self.block.init, update or ignore_update, self.env)

    # -- text --

    def dumps(self, state: Any) -> str:
        return json.dumps(self.block.to_json(state), ensure_ascii=False)

    def loads(self, text: str, update: Updater | None = None) -> Any:
        """
        Parse stored text into a state.
        Raises ParseError for non-JSON text, ValidationError for the wrong shape.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Stored text is not JSON: {e}") from e
        return self.block.from_json(data, update or ignore_update, self.env)

    # -- load --

    async def load(self, key: str | None = None, update: Updater | None = None) -> Any:
        """
        Read a state from storage.

        Missing keys give a fresh state. Unreadable ones are copied to
        `<key>-backup-<ms>` before a fresh state is returned, so nothing the
        user wrote is lost.
        """
        key = key or settings.STORAGE_KEY
        async with self._get_lock(key):
            text = await self._storage.get(key)
            if text is None:
                return self.fresh(update)

            try:
                return self.loads(text, update)
            except (ParseError, ValidationError) as e:
                backup_key = f"{key}-backup-{now_ms()}"
                logger.warning("Could not load saved state %r: %s; saving backup as %r", key, e, backup_key)
                await self._storage.put(backup_key, text)
                return self.fresh(update)

    # -- save --

    async def save(self, state: Any, key: str | None = None) -> None:
        key = key or settings.STORAGE_KEY
        text = self.dumps(state)
        async with self._get_lock(key):
            try:
                await self._storage.put(key, text)
            except OSError:
                logger.warning("Saving %r failed, retrying once", key)
                await self._storage.put(key, text)

    # -- delete --

    async def delete(self, key: str | None = None) -> None:
        key = key or settings.STORAGE_KEY
        async with self._get_lock(key):
            await self._storage.delete(key)
