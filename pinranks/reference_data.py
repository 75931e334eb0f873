"""Fetching and caching the static Entities and Groups documents.

Both documents are flat JSON lists in OPDB shape. Fetches go through the
shared ``RetryPolicy`` with a bounded per-request timeout; when the budget
is spent the caller gets ``DataUnavailable`` rather than a hang.
"""

import asyncio
from typing import Any

import aiohttp

from pinranks.cache import ReferenceCache
from pinranks.config import EngineConfig
from pinranks.errors import DataUnavailable
from pinranks.logging import get_logger
from pinranks.models import Entity, Group
from pinranks.retry import RetryError, RetryPolicy

log = get_logger(__name__)

ENTITIES_KEY = "machines"
GROUPS_KEY = "groups"


class FetchError(Exception):
    """One failed attempt at fetching a reference document."""


class ReferenceDataClient:
    """HTTP client for the reference documents."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: EngineConfig | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.session = session
        self.config = config or EngineConfig()
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.config.retry_max_attempts,
            base_delay=self.config.retry_base_delay,
            multiplier=self.config.retry_multiplier,
            max_delay=self.config.retry_max_delay,
        )
        self._semaphore = asyncio.Semaphore(self.config.fetch_max_concurrent)

    async def _get_json_once(self, url: str) -> Any:
        timeout = aiohttp.ClientTimeout(total=self.config.fetch_timeout_seconds)
        try:
            async with self.session.get(url, timeout=timeout) as response:
                if response.status >= 400:
                    raise FetchError(f"HTTP {response.status}: {response.reason}")
                return await response.json(content_type=None)
        except TimeoutError as exc:
            raise FetchError(f"timed out after {self.config.fetch_timeout_seconds}s") from exc
        except aiohttp.ClientError as exc:
            raise FetchError(str(exc)) from exc

    async def fetch_json(self, key: str, url: str) -> Any:
        """GET ``url`` and decode JSON, retrying transient failures.

        Raises:
            DataUnavailable: every attempt failed
        """
        async with self._semaphore:
            try:
                return await self.retry_policy.run(
                    lambda: self._get_json_once(url),
                    context=f"fetch:{key}",
                    retry_on=(FetchError, ValueError),
                )
            except RetryError as exc:
                log.error("reference_fetch_failed", key=key, url=url, attempts=exc.attempts)
                raise DataUnavailable(key, str(exc)) from exc

    async def fetch_entities(self) -> list[dict[str, Any]]:
        return await self.fetch_json(ENTITIES_KEY, self.config.entities_url)

    async def fetch_groups(self) -> list[dict[str, Any]]:
        return await self.fetch_json(GROUPS_KEY, self.config.groups_url)


class ReferenceDataLoader:
    """Loads Entities and Groups through a ``ReferenceCache``.

    The cache stores the raw JSON lists; parsing into models happens on
    every load so the durable tier never holds pickled objects.
    """

    def __init__(
        self,
        client: ReferenceDataClient,
        cache: ReferenceCache,
        max_age: float | None = None,
    ):
        self.client = client
        self.cache = cache
        self.max_age = max_age

    async def load_entities(self) -> list[Entity]:
        raw = await self.cache.get(ENTITIES_KEY, self.client.fetch_entities, self.max_age)
        return [Entity.from_record(record) for record in raw]

    async def load_groups(self) -> list[Group]:
        raw = await self.cache.get(GROUPS_KEY, self.client.fetch_groups, self.max_age)
        return [Group.from_record(record) for record in raw]

    async def load(self) -> tuple[list[Entity], list[Group]]:
        """Both collections, fetched concurrently."""
        entities, groups = await asyncio.gather(self.load_entities(), self.load_groups())
        log.debug("reference_data_loaded", entities=len(entities), groups=len(groups))
        return entities, groups

    async def refresh(self) -> None:
        """Drop cached copies so the next load re-fetches."""
        await self.cache.clear(ENTITIES_KEY)
        await self.cache.clear(GROUPS_KEY)
