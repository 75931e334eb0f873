"""Read-through TTL cache for static reference data.

Two tiers are consulted in order: an in-process dict, then a durable tier
(JSON files on local disk). A miss or stale entry in both calls the fetch
function and writes the result through to both tiers.

Each ``ReferenceCache`` instance is independent. Nothing is broadcast
between processes, and concurrent ``set`` calls are last-write-wins; cached
values are idempotent re-fetch results, not accumulated state.
"""

import asyncio
import json
import re
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol

from pinranks.config import SEVEN_DAYS_SECONDS
from pinranks.logging import get_logger

log = get_logger(__name__)


class CacheTier(Protocol):
    """Durable storage for ``{"data": ..., "timestamp": ...}`` entries."""

    async def read(self, key: str) -> dict[str, Any] | None:
        ...

    async def write(self, key: str, entry: dict[str, Any]) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class FileCacheTier:
    """Durable tier storing one JSON file per key under ``base_dir``."""

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^\w.-]", "_", key)
        return self.base_dir / f"{safe}.json"

    def _read_sync(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _write_sync(self, key: str, entry: dict[str, Any]) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(entry, f, ensure_ascii=False)
        tmp_path.replace(path)

    def _remove_sync(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def read(self, key: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, entry: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_sync, key, entry)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_sync, key)


class ReferenceCache:
    """Two-tier read-through cache with a per-call maximum age."""

    def __init__(
        self,
        durable: CacheTier | None = None,
        default_max_age: float = SEVEN_DAYS_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            durable: Optional durable tier; None keeps only the memory tier
            default_max_age: Maximum entry age in seconds when ``get`` is
                called without one
            clock: Returns the current time in seconds
        """
        self.durable = durable
        self.default_max_age = default_max_age
        self.clock = clock
        self._memory: dict[str, dict[str, Any]] = {}

    def init(self) -> None:
        """Start from an empty memory tier (the durable tier is kept)."""
        self._memory = {}

    def _is_fresh(self, entry: dict[str, Any], max_age: float) -> bool:
        timestamp = entry.get("timestamp")
        if not isinstance(timestamp, (int, float)):
            return False
        return self.clock() - timestamp < max_age

    async def get(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
        max_age: float | None = None,
    ) -> Any:
        """Return the cached value for ``key``, fetching it when missing or stale."""
        max_age = self.default_max_age if max_age is None else max_age

        entry = self._memory.get(key)
        if entry is not None and self._is_fresh(entry, max_age):
            log.debug("cache_hit", key=key, tier="memory")
            return entry["data"]

        if self.durable is not None:
            try:
                stored = await self.durable.read(key)
            except (OSError, ValueError) as exc:
                log.warning("cache_read_failed", key=key, error=str(exc))
                stored = None
            if stored is not None and not isinstance(stored, dict):
                log.warning("cache_entry_malformed", key=key, entry_type=type(stored).__name__)
                stored = None
            if stored is None:
                log.debug("cache_miss", key=key, tier="durable")
            elif self._is_fresh(stored, max_age) and "data" in stored:
                log.debug("cache_hit", key=key, tier="durable")
                self._memory[key] = stored
                return stored["data"]
            else:
                log.debug("cache_expired", key=key, tier="durable")

        log.info("cache_fetch", key=key)
        data = await fetch_fn()
        await self.set(key, data)
        return data

    async def set(self, key: str, value: Any) -> None:
        """Write ``value`` through both tiers.

        A durable-tier failure (disk full, unserialisable value) is logged
        and swallowed; the memory tier still holds the value.
        """
        entry = {"data": value, "timestamp": self.clock()}
        self._memory[key] = entry
        if self.durable is None:
            return
        try:
            await self.durable.write(key, entry)
        except (OSError, TypeError, ValueError) as exc:
            log.warning("cache_write_failed", key=key, error=str(exc))

    async def clear(self, key: str) -> None:
        """Remove ``key`` from both tiers."""
        self._memory.pop(key, None)
        if self.durable is not None:
            try:
                await self.durable.remove(key)
            except OSError as exc:
                log.warning("cache_clear_failed", key=key, error=str(exc))
        log.debug("cache_cleared", key=key)

    async def clear_all(self, keys: list[str] | None = None) -> None:
        """Remove every memory entry and, for the given keys, durable entries too."""
        for key in list(keys if keys is not None else self._memory):
            await self.clear(key)
        self._memory = {}
