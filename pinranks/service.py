"""Wiring a MatchupEngine from an EngineConfig.

The engine itself never reads configuration or the environment; this module
is the one place that turns settings into concrete collaborators. Callers
own the ``aiohttp.ClientSession`` and its lifetime.
"""

import random

import aiohttp

from pinranks.cache import FileCacheTier, ReferenceCache
from pinranks.config import EngineConfig
from pinranks.engine import AuthContext, MatchupEngine, StaticAuthContext
from pinranks.events import EventHandler
from pinranks.logging import configure_logging, get_logger
from pinranks.rating.queue import VoteQueue
from pinranks.rating.service import RatingService
from pinranks.rating.stores import (
    InMemoryPreferencesStore,
    InMemoryRatingStore,
    InMemoryVoteLog,
    PreferencesStore,
    UserRatingStore,
    VoteLogStore,
)
from pinranks.reference_data import ReferenceDataClient, ReferenceDataLoader

log = get_logger(__name__)


def build_cache(config: EngineConfig) -> ReferenceCache:
    durable = FileCacheTier(config.cache_dir) if config.cache_dir else None
    return ReferenceCache(durable=durable, default_max_age=config.cache_max_age_seconds)


def build_engine(
    session: aiohttp.ClientSession,
    config: EngineConfig | None = None,
    *,
    auth: AuthContext | None = None,
    rating_store: UserRatingStore | None = None,
    vote_log: VoteLogStore | None = None,
    preferences: PreferencesStore | None = None,
    event_handler: EventHandler | None = None,
    rng: random.Random | None = None,
) -> MatchupEngine:
    """Assemble a MatchupEngine.

    Stores that are not supplied default to the in-memory implementations,
    which is what local runs and tests want.

    Args:
        session: HTTP session used for reference data fetches
        config: Engine settings (defaults to ``EngineConfig()``)
        auth: Source of the signed-in user id (defaults to signed out)
        rating_store: Per-user rating documents
        vote_log: Append-only vote log
        preferences: Per-user exclusion lists
        event_handler: Receives vote and matchup events
        rng: Random source for matchup and replacement draws

    Returns:
        A ready-to-use MatchupEngine
    """
    config = config or EngineConfig()

    client = ReferenceDataClient(session, config)
    loader = ReferenceDataLoader(client, build_cache(config), config.cache_max_age_seconds)
    rating_service = RatingService(
        rating_store or InMemoryRatingStore(max_attempts=config.transaction_attempts),
        vote_log or InMemoryVoteLog(),
        k_factor=config.k_factor,
    )

    log.info(
        "engine_built",
        entities_url=config.entities_url,
        durable_cache=config.cache_dir is not None,
        k_factor=config.k_factor,
    )
    return MatchupEngine(
        loader=loader,
        rating_service=rating_service,
        preferences=preferences or InMemoryPreferencesStore(),
        auth=auth or StaticAuthContext(),
        vote_queue=VoteQueue(event_handler),
        event_handler=event_handler,
        rng=rng,
    )


def build_engine_from_env(
    session: aiohttp.ClientSession,
    cli_mode: bool = False,
    **kwargs,
) -> MatchupEngine:
    """Configure logging and build an engine from ``PINRANKS_*`` variables."""
    config = EngineConfig.from_env()
    configure_logging(cli_mode=cli_mode, log_level=config.log_level)
    return build_engine(session, config, **kwargs)
